"""systemd readiness, status and watchdog notifications for swayrd."""

import asyncio
import logging
import os
import time
from typing import Mapping, Optional

try:
    from systemd import daemon as sd_daemon
    SYSTEMD_AVAILABLE = True
except ImportError:
    SYSTEMD_AVAILABLE = False

from .services.event_processor import EventProcessor
from .state import StateManager

logger = logging.getLogger(__name__)


def watchdog_interval(environ: Optional[Mapping[str, str]] = None) -> Optional[float]:
    """Ping interval in seconds, half of systemd's WatchdogSec.

    Returns:
        None if no watchdog is configured for this process
    """
    environ = os.environ if environ is None else environ
    usec = environ.get("WATCHDOG_USEC")
    if not usec:
        return None
    watchdog_pid = environ.get("WATCHDOG_PID")
    if watchdog_pid and int(watchdog_pid) != os.getpid():
        return None
    return int(usec) / 2_000_000


class SystemdNotifier:
    """Reports swayrd's tree and event state to systemd.

    Watchdog pings are only sent while the event processor is alive, so a
    dead event loop gets the unit restarted.
    """

    def __init__(
        self,
        state: StateManager,
        processor: EventProcessor,
        interval: Optional[float] = None,
    ):
        self.state = state
        self.processor = processor
        self.interval = interval

    async def status_line(self) -> str:
        async with self.state.lock:
            model = self.state.model
            windows = len(model.windows())
            workspaces = len(model.workspaces())
        line = (
            f"{windows} windows on {workspaces} workspaces, "
            f"{self.processor.metrics.events_processed} events"
        )
        if self.state.last_resync_at is None:
            return f"{line}, no resync"
        stamp = time.strftime("%H:%M:%S", time.localtime(self.state.last_resync_at))
        return f"{line}, last resync {stamp}"

    def healthy(self) -> bool:
        return self.processor.is_running

    def _notify(self, *fields: str) -> bool:
        if not SYSTEMD_AVAILABLE:
            return False
        sd_daemon.notify("\n".join(fields))
        return True

    async def ready(self) -> None:
        if self._notify("READY=1", f"STATUS={await self.status_line()}"):
            logger.info("Sent READY=1 to systemd")
        else:
            logger.debug("systemd not available, skipping READY notification")

    def stopping(self) -> None:
        if self._notify("STOPPING=1", "STATUS=Shutting down"):
            logger.info("Sent STOPPING=1 to systemd")

    async def tick(self) -> bool:
        """Send one watchdog ping with a fresh status line.

        Returns:
            True if the ping was sent
        """
        status = await self.status_line()
        if not self.healthy():
            logger.warning("Event processor is not running, withholding watchdog ping")
            self._notify(f"STATUS=Event processor stopped; {status}")
            return False
        return self._notify("WATCHDOG=1", f"STATUS={status}")

    async def watchdog_loop(self) -> None:
        if not self.interval:
            logger.debug("systemd watchdog not configured")
            return

        logger.info(f"systemd watchdog enabled, pinging every {self.interval:.1f}s")
        while True:
            await asyncio.sleep(self.interval)
            await self.tick()
