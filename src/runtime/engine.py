"""Host runtime that wires the timer, economy and persistence together."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import numpy as np

from economy import (
    BankConfig,
    BankService,
    MarketConfig,
    MarketService,
    RoomShop,
    WalletLedger,
)
from pomodoro import (
    CategoryRegistry,
    FocusAnalytics,
    FocusReward,
    PhaseCompletion,
    PomodoroActionResult,
    PomodoroConfig,
    PomodoroTimer,
    ThreadTickScheduler,
    TickScheduler,
)
from pomodoro.clock import NowFn, system_now
from storage import PendingActionMailbox, PersistenceController

from .config import RuntimeConfig


@dataclass(frozen=True)
class RuntimeBootstrap:
    """Dependency bundle required to construct the focus runtime."""
    persistence: PersistenceController
    mailbox: PendingActionMailbox
    timer_config: PomodoroConfig = PomodoroConfig()
    market_config: MarketConfig = MarketConfig()
    bank_config: BankConfig = BankConfig()
    runtime_config: RuntimeConfig = RuntimeConfig()
    scheduler: Optional[TickScheduler] = None
    market_rng: Optional[np.random.Generator] = None
    bank_rng: Optional[np.random.Generator] = None
    now_fn: Optional[NowFn] = None


class FocusRuntime:
    """Owns every stateful component for the process lifetime.

    Components are restored from persisted snapshots (or built fresh), the
    timer's reward stream is routed into the wallet, and each mutation writes
    the affected snapshot back through the persistence controller.
    """

    def __init__(
        self,
        bootstrap: RuntimeBootstrap,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self._bootstrap = bootstrap
        self._logger = logger or logging.getLogger("runtime")
        self._persistence = bootstrap.persistence
        self._mailbox = bootstrap.mailbox
        self._runtime_config = bootstrap.runtime_config
        now_fn = bootstrap.now_fn or system_now
        self._now_fn = now_fn

        self._categories = self._persistence.load_categories() or CategoryRegistry(
            logger=logging.getLogger("pomodoro")
        )
        scheduler = bootstrap.scheduler or ThreadTickScheduler(
            interval_seconds=self._runtime_config.tick_interval_seconds,
            logger=logging.getLogger("pomodoro"),
        )
        self._timer = PomodoroTimer(
            config=bootstrap.timer_config,
            snapshot=self._persistence.load_timer(),
            categories=self._categories,
            scheduler=scheduler,
            now_fn=now_fn,
            logger=logging.getLogger("pomodoro"),
        )
        self._wallet = WalletLedger(
            snapshot=self._persistence.load_wallet(),
            now_fn=now_fn,
            logger=logging.getLogger("wallet"),
        )
        self._bank = BankService(
            config=bootstrap.bank_config,
            snapshot=self._persistence.load_bank(),
            rng=bootstrap.bank_rng,
            now_fn=now_fn,
            logger=logging.getLogger("bank"),
        )
        self._market = MarketService(
            config=bootstrap.market_config,
            snapshot=self._persistence.load_market(),
            rng=bootstrap.market_rng,
            now_fn=now_fn,
            logger=logging.getLogger("market"),
        )
        self._room = RoomShop(
            snapshot=self._persistence.load_room(),
            logger=logging.getLogger("room"),
        )

        self._timer.add_reward_listener(self._on_focus_reward)
        self._timer.add_phase_listener(self._on_phase_completed)

    @property
    def timer(self) -> PomodoroTimer:
        return self._timer

    @property
    def wallet(self) -> WalletLedger:
        return self._wallet

    @property
    def bank(self) -> BankService:
        return self._bank

    @property
    def market(self) -> MarketService:
        return self._market

    @property
    def room(self) -> RoomShop:
        return self._room

    @property
    def categories(self) -> CategoryRegistry:
        return self._categories

    def analytics(self) -> FocusAnalytics:
        snapshot = self._timer.to_snapshot()
        return FocusAnalytics(
            snapshot.session_history,
            legacy_total_minutes=snapshot.total_focus_minutes,
            categories=self._categories,
            now_fn=self._now_fn,
        )

    # Host lifecycle

    def on_foreground(self) -> None:
        """Reconcile the timer and run the opportunistic economy checks."""
        self._timer.on_resume()
        self._bank.update_weekly_rate_if_needed()
        self._bank.apply_daily_interest_if_needed(self._wallet)
        self._market.refresh_prices()
        self.process_pending_action()
        self.save_all()

    def on_background(self) -> None:
        self._timer.on_suspend()
        self.save_all()

    def save_all(self) -> bool:
        return self._persistence.save_all(
            timer=self._timer,
            wallet=self._wallet,
            market=self._market,
            bank=self._bank,
            room=self._room,
            categories=self._categories,
        )

    # Timer actions

    def apply_action(self, action: str) -> PomodoroActionResult:
        result = self._timer.apply(action)
        self._logger.info(
            "Timer action applied: action=%s accepted=%s reason=%s",
            result.action,
            result.accepted,
            result.reason,
        )
        if result.accepted:
            self._persistence.save_timer(self._timer)
        return result

    def process_pending_action(self) -> Optional[PomodoroActionResult]:
        pending = self._mailbox.take()
        if pending is None:
            return None
        self._logger.info(
            "Processing pending action: %s requested_at=%s",
            pending.action,
            pending.requested_at,
        )
        return self.apply_action(pending.action)

    def skip_phase(self) -> PomodoroActionResult:
        result = self._timer.skip_phase()
        if result.accepted:
            self._persistence.save_timer(self._timer)
        return result

    # Economy actions

    def stake(self, amount: Decimal) -> bool:
        if not self._wallet.stake(amount):
            return False
        self._persistence.save_wallet(self._wallet)
        return True

    def unstake(self, amount: Decimal) -> bool:
        if not self._wallet.unstake(amount):
            return False
        self._persistence.save_wallet(self._wallet)
        return True

    def buy(self, symbol: str, amount: Decimal) -> Optional[Decimal]:
        spent = self._market.buy(symbol, amount, self._wallet)
        if spent is not None:
            self._persistence.save_market(self._market)
            self._persistence.save_wallet(self._wallet)
        return spent

    def sell(self, symbol: str, quantity: Decimal) -> bool:
        if not self._market.sell(symbol, quantity, self._wallet):
            return False
        self._persistence.save_market(self._market)
        self._persistence.save_wallet(self._wallet)
        return True

    def unlock_asset(self, asset_id: str) -> bool:
        if not self._room.unlock(asset_id, self._wallet):
            return False
        self._persistence.save_room(self._room)
        self._persistence.save_wallet(self._wallet)
        return True

    def switch_theme(self, theme_id: str) -> bool:
        if not self._room.switch_theme(theme_id, self._wallet):
            return False
        self._persistence.save_room(self._room)
        self._persistence.save_wallet(self._wallet)
        return True

    # Loop

    def run(self, stop_event: threading.Event) -> None:
        """Poll the pending-action mailbox and autosave until ``stop_event`` is set."""
        config = self._runtime_config
        self.on_foreground()
        self._logger.info("Focus runtime started")
        last_save = time.monotonic()
        try:
            while not stop_event.wait(config.pending_action_poll_seconds):
                self.process_pending_action()
                if time.monotonic() - last_save >= config.autosave_seconds:
                    self.save_all()
                    last_save = time.monotonic()
        finally:
            self.on_background()
            self._logger.info("Focus runtime stopped")

    def _on_focus_reward(self, reward: FocusReward) -> None:
        self._wallet.apply_focus_reward(reward)
        self._persistence.save_wallet(self._wallet)

    def _on_phase_completed(self, completion: PhaseCompletion) -> None:
        self._logger.info(
            "Phase completed: %s -> %s auto_started=%s",
            completion.completed_phase,
            completion.next_phase,
            completion.auto_started,
        )
        self._persistence.save_timer(self._timer)
