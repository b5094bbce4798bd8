"""swayrd: main daemon entry point with systemd integration.

This module wires the sway connection, the tree model, the event processor,
the command dispatcher and the IPC server together and runs the event loop
(sd_notify, watchdog, journald logging when systemd-python is available).
"""

import asyncio
import logging
import os
import signal
import sys
import time
from typing import Optional

try:
    from systemd import journal
    JOURNAL_AVAILABLE = True
except ImportError:
    JOURNAL_AVAILABLE = False

from .config import ConfigHolder, ConfigWatcher, get_config_file_path, load_config
from .connection import SwayConnection
from .dispatcher import CommandDispatcher
from .errors import ConnectFailure
from .health import SystemdNotifier, watchdog_interval
from .ipc_server import IPCServer
from .models.config import SwayrConfig
from .services.app_icons import AppIconResolver
from .services.event_ingestor import EventIngestor
from .services.event_processor import EventProcessor
from .services.focus_tracker import FocusTracker
from .services.layout_engine import AutoTiler
from .state import StateManager

logger = logging.getLogger(__name__)

RECONNECT_ATTEMPTS = 10
RECONNECT_INTERVAL = 3.0



class SwayrDaemon:
    """Main daemon class."""

    def __init__(self) -> None:
        self.config_holder: Optional[ConfigHolder] = None
        self.config_watcher: Optional[ConfigWatcher] = None
        self.state_manager: Optional[StateManager] = None
        self.connection: Optional[SwayConnection] = None
        self.focus_tracker: Optional[FocusTracker] = None
        self.auto_tiler: Optional[AutoTiler] = None
        self.event_processor: Optional[EventProcessor] = None
        self.dispatcher: Optional[CommandDispatcher] = None
        self.ipc_server: Optional[IPCServer] = None
        self.notifier: Optional[SystemdNotifier] = None
        self.shutdown_event = asyncio.Event()
        self.sway_exited = False

    @property
    def config(self) -> SwayrConfig:
        return self.config_holder.config

    async def initialize(self) -> None:
        """Initialize daemon components.

        Raises:
            ConnectFailure: If sway cannot be reached
            OSError: If the IPC socket cannot be bound
        """
        start_time = time.perf_counter()
        logger.info("Initializing swayrd...")

        config_path = get_config_file_path()
        self.config_holder = ConfigHolder(load_config(config_path), config_path)
        config = self.config

        self.connection = SwayConnection()
        await self.connection.connect_with_retry(max_attempts=10)

        self.state_manager = StateManager()
        await self.state_manager.initialize(await self.connection.get_tree())

        self.focus_tracker = FocusTracker(
            self.state_manager,
            lockin_delay_ms=config.focus.lockin_delay,
            seq_inhibit=config.misc.seq_inhibit,
        )
        self.auto_tiler = AutoTiler(config.layout.min_width_table())
        self.event_processor = EventProcessor(
            self.state_manager,
            self.connection,
            EventIngestor(self.focus_tracker),
            auto_tiler=self.auto_tiler,
            auto_tile_enabled=lambda: self.config.layout.auto_tile,
            on_shutdown=self._on_sway_shutdown,
        )
        self.dispatcher = CommandDispatcher(
            self.state_manager,
            self.connection,
            lambda: self.config,
            focus_tracker=self.focus_tracker,
            icons=AppIconResolver.from_config(config.format),
        )

        self.ipc_server = await IPCServer.from_systemd_socket(
            self.state_manager,
            self.dispatcher,
            status_provider=self._status,
        )

        self.config_watcher = ConfigWatcher(self.config_holder, on_reload=self._on_config_reload)
        self.config_watcher.set_event_loop(asyncio.get_running_loop())
        self.config_watcher.start()

        await self.connection.subscribe(self.event_processor.queue)

        self.notifier = SystemdNotifier(
            self.state_manager, self.event_processor, interval=watchdog_interval()
        )

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"swayrd initialized in {duration_ms:.1f}ms")

    def _status(self) -> dict:
        return {
            "config_path": str(self.config_holder.path),
            "auto_tile": self.config.layout.auto_tile,
            "events": self.event_processor.metrics.to_dict(),
        }

    def _on_config_reload(self, config: SwayrConfig) -> None:
        self.focus_tracker.configure(config.focus.lockin_delay, config.misc.seq_inhibit)
        self.auto_tiler.configure(config.layout.min_width_table())
        if self.dispatcher.icons is not None and not self.dispatcher.icons.matches_config(config.format):
            self.dispatcher.icons = AppIconResolver.from_config(config.format)
        logger.info(f"Applied new config (auto_tile={config.layout.auto_tile})")

    def _on_sway_shutdown(self) -> None:
        self.sway_exited = True
        self.shutdown_event.set()

    async def _reconnect(self) -> bool:
        """Reconnect after sway's event connection went away and resync.

        Returns:
            True if the connection was restored
        """
        for attempt in range(1, RECONNECT_ATTEMPTS + 1):
            if self.shutdown_event.is_set():
                return False
            logger.info(f"Reconnecting to sway (attempt {attempt}/{RECONNECT_ATTEMPTS})")
            try:
                await self.connection.connect_with_retry(max_attempts=1)
                await self.connection.subscribe(self.event_processor.queue)
            except ConnectFailure as e:
                logger.warning(f"Reconnect failed: {e}")
                await asyncio.sleep(RECONNECT_INTERVAL)
                continue
            await self.event_processor.resync()
            logger.info("Reconnected to sway")
            return True
        return False

    async def run(self) -> None:
        """Main event loop."""
        logger.info("Starting daemon event loop...")

        await self.event_processor.start_processing()

        watchdog_task = None
        if self.notifier:
            await self.notifier.ready()
            watchdog_task = asyncio.create_task(self.notifier.watchdog_loop())

        try:
            while not self.shutdown_event.is_set():
                try:
                    await self.connection.main()
                except Exception as e:
                    logger.error(f"Error in main loop: {e}")

                if self.shutdown_event.is_set() or self.sway_exited:
                    break
                logger.warning("Lost connection to sway")
                if not await self._reconnect():
                    logger.error(f"Could not reconnect to sway after {RECONNECT_ATTEMPTS} attempts")
                    break

        finally:
            if watchdog_task:
                watchdog_task.cancel()
                try:
                    await watchdog_task
                except asyncio.CancelledError:
                    pass

    async def shutdown(self) -> None:
        """Graceful shutdown with timeouts to prevent hanging."""
        logger.info("Shutting down swayrd...")

        if self.notifier:
            self.notifier.stopping()

        if self.config_watcher:
            try:
                self.config_watcher.stop()
            except Exception as e:
                logger.error(f"Error stopping config watcher: {e}")

        if self.ipc_server:
            try:
                await asyncio.wait_for(self.ipc_server.stop(), timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("IPC server shutdown timed out after 5s (continuing)")
            except Exception as e:
                logger.error(f"Error stopping IPC server: {e}")

        if self.dispatcher:
            await self.dispatcher.stop()
        if self.focus_tracker:
            await self.focus_tracker.stop()

        if self.event_processor:
            try:
                await asyncio.wait_for(self.event_processor.stop_processing(), timeout=2.0)
            except asyncio.TimeoutError:
                logger.warning("Event processor shutdown timed out after 2s (continuing)")

        if self.connection:
            try:
                self.connection.close()
            except Exception as e:
                logger.error(f"Error closing sway connection: {e}")

        logger.info("Daemon shutdown complete")

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def shutdown_handler(signum: int) -> None:
            logger.info(f"Received signal {signum}, initiating shutdown...")
            self.shutdown_event.set()
            if self.connection:
                self.connection.close()

        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, shutdown_handler, signum)


def setup_logging() -> None:
    """Setup logging to systemd journal or stderr."""
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if JOURNAL_AVAILABLE and os.environ.get("INVOCATION_ID"):
        handler = journal.JournalHandler(SYSLOG_IDENTIFIER="swayrd")
        handler.setFormatter(logging.Formatter("%(levelname)s [%(name)s] %(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root_logger.addHandler(handler)

    logger.info(f"Logging configured: level={log_level}")


async def main_async() -> int:
    """Async main function.

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    daemon = SwayrDaemon()

    try:
        daemon.setup_signal_handlers()
        await daemon.initialize()
    except (ConnectFailure, OSError) as e:
        logger.error(f"Startup failed: {e}")
        await daemon.shutdown()
        return 1

    try:
        run_task = asyncio.create_task(daemon.run())
        shutdown_task = asyncio.create_task(daemon.shutdown_event.wait())

        done, pending = await asyncio.wait(
            [run_task, shutdown_task], return_when=asyncio.FIRST_COMPLETED
        )

        for task in pending:
            task.cancel()

        await daemon.shutdown()
        return 0

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


def main() -> None:
    """Main entry point."""
    setup_logging()

    logger.info("swayrd starting...")
    logger.info(f"PID: {os.getpid()}")

    try:
        exit_code = asyncio.run(main_async())
        sys.exit(exit_code)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
