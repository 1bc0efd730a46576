"""Single-slot mailbox through which external triggers request a timer action."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Optional

from pomodoro.clock import NowFn, system_now
from pomodoro.constants import PENDING_ACTIONS
from shared.codec import datetime_field, encode_datetime, str_field

from .errors import StorageError, StorageReadError
from .persistence import decode_blob, encode_blob
from .stores import BlobStore

PENDING_ACTION_KEY = "pending_action"


@dataclass(frozen=True)
class PendingAction:
    action: str
    requested_at: Optional[dt.datetime] = None


class PendingActionMailbox:
    """Holds at most one request; a newer ``post`` replaces an unread one."""

    def __init__(
        self,
        store: BlobStore,
        *,
        now_fn: Optional[NowFn] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._store = store
        self._now_fn = now_fn or system_now
        self._logger = logger or logging.getLogger("storage")

    def post(self, action: str) -> bool:
        normalized = (action or "").strip().lower()
        if normalized not in PENDING_ACTIONS:
            self._logger.warning("Ignoring unsupported pending action: %s", action)
            return False
        payload = {
            "action": normalized,
            "requested_at": encode_datetime(self._now_fn()),
        }
        try:
            self._store.save(PENDING_ACTION_KEY, encode_blob(payload))
        except StorageError as error:
            self._logger.error("Failed to post pending action %s: %s", normalized, error)
            return False
        self._logger.info("Pending action posted: %s", normalized)
        return True

    def take(self) -> Optional[PendingAction]:
        """Return and clear the pending request, if any."""
        try:
            blob = self._store.take(PENDING_ACTION_KEY)
        except StorageError as error:
            self._logger.warning("Failed to take pending action: %s", error)
            return None
        if blob is None:
            return None

        try:
            payload = decode_blob(blob)
        except StorageReadError as error:
            self._logger.warning("Discarding malformed pending action: %s", error)
            return None

        action = str_field(payload, "action", "").lower()
        if action not in PENDING_ACTIONS:
            self._logger.warning("Discarding unsupported pending action: %s", action)
            return None
        return PendingAction(
            action=action,
            requested_at=datetime_field(payload, "requested_at", None),
        )
