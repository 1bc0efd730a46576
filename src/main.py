import logging
import signal
import sys
import threading

from app_config import AppConfigurationError, load_app_config, resolve_config_path
from economy import BankConfig, EconomyConfigurationError, MarketConfig
from pomodoro import PomodoroConfig, PomodoroConfigurationError
from runtime import (
    FocusRuntime,
    RuntimeBootstrap,
    RuntimeConfig,
    RuntimeConfigurationError,
)
from storage import FileBlobStore, PendingActionMailbox, PersistenceController


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("focus_app")


def setup_signal_handlers(stop_event: threading.Event, logger: logging.Logger) -> None:
    """Set up graceful shutdown on SIGTERM and SIGINT."""

    def signal_handler(signum: int, frame) -> None:
        logger.info("%s received, stopping...", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def main() -> int:
    """Run the focus timer host loop until a stop signal arrives."""
    logger = setup_logging(level=logging.INFO)

    try:
        config_path = resolve_config_path()
        app_config = load_app_config(str(config_path))
        logger.info("Loaded runtime config: %s", config_path)
    except AppConfigurationError as error:
        logger.error("App configuration error: %s", error)
        return 1

    try:
        timer_config = PomodoroConfig.from_settings(app_config.timer)
        market_config = MarketConfig.from_settings(app_config.market)
        bank_config = BankConfig.from_settings(app_config.bank)
        runtime_config = RuntimeConfig.from_settings(app_config.runtime)
    except (
        PomodoroConfigurationError,
        EconomyConfigurationError,
        RuntimeConfigurationError,
    ) as error:
        logger.error("Configuration error: %s", error)
        return 1

    store = FileBlobStore(app_config.storage.directory)
    storage_logger = logging.getLogger("storage")
    runtime = FocusRuntime(
        RuntimeBootstrap(
            persistence=PersistenceController(store, logger=storage_logger),
            mailbox=PendingActionMailbox(store, logger=storage_logger),
            timer_config=timer_config,
            market_config=market_config,
            bank_config=bank_config,
            runtime_config=runtime_config,
        ),
        logger=logging.getLogger("runtime"),
    )

    stop_event = threading.Event()
    setup_signal_handlers(stop_event, logger)
    logger.info("Snapshots stored in %s", store.directory)

    try:
        runtime.run(stop_event)
    except Exception as error:
        logger.error("Unexpected error: %s", error, exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
