"""Event processing service.

The single consumer of the sway event queue. Per event it:

1. fetches a GET_TREE snapshot if the event needs one (without the lock),
2. applies the event to the tree model under the state lock,
3. replaces the model on UnknownNodeError, SyncError or a resync request,
4. runs an auto-tile pass outside the lock when enabled and triggered.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..errors import SwayrError, SyncError, UnknownNodeError
from ..models.events import CompositorEvent, MutationSummary
from .event_ingestor import EventIngestor
from .layout_engine import AutoTiler

logger = logging.getLogger(__name__)


@dataclass
class EventMetrics:
    """Event processing metrics."""

    events_received: int = 0
    events_processed: int = 0
    events_failed: int = 0
    resyncs: int = 0
    processing_durations_ms: List[float] = field(default_factory=list)

    def record_received(self) -> None:
        self.events_received += 1

    def record_processed(self, duration_ms: float) -> None:
        """Record successful processing with duration."""
        self.events_processed += 1
        self.processing_durations_ms.append(duration_ms)
        # Keep only recent samples
        if len(self.processing_durations_ms) > 1000:
            del self.processing_durations_ms[:500]

    def record_failed(self) -> None:
        self.events_failed += 1

    def get_average_duration_ms(self) -> float:
        if not self.processing_durations_ms:
            return 0.0
        return sum(self.processing_durations_ms) / len(self.processing_durations_ms)

    def get_max_duration_ms(self) -> float:
        if not self.processing_durations_ms:
            return 0.0
        return max(self.processing_durations_ms)

    def to_dict(self) -> dict:
        """Convert metrics to dictionary for reporting."""
        return {
            "events_received": self.events_received,
            "events_processed": self.events_processed,
            "events_failed": self.events_failed,
            "resyncs": self.resyncs,
            "average_duration_ms": round(self.get_average_duration_ms(), 3),
            "max_duration_ms": round(self.get_max_duration_ms(), 3),
        }


class EventProcessor:
    """Applies queued sway events to the shared tree model in FIFO order."""

    def __init__(
        self,
        state_manager,
        connection,
        ingestor: EventIngestor,
        auto_tiler: Optional[AutoTiler] = None,
        auto_tile_enabled: Callable[[], bool] = lambda: False,
        on_shutdown: Optional[Callable[[], None]] = None,
    ):
        """Initialize event processor.

        Args:
            state_manager: StateManager holding the tree model and lock
            connection: SwayConnection for snapshots and auto-tile commands
            ingestor: EventIngestor turning events into mutations
            auto_tiler: AutoTiler used when auto-tiling is enabled
            auto_tile_enabled: Returns the current layout.auto_tile setting
            on_shutdown: Called when sway announces it is exiting
        """
        self.state_manager = state_manager
        self.connection = connection
        self.ingestor = ingestor
        self.auto_tiler = auto_tiler
        self.auto_tile_enabled = auto_tile_enabled
        self.on_shutdown = on_shutdown

        self.queue: asyncio.Queue[CompositorEvent] = asyncio.Queue()
        self.metrics = EventMetrics()
        self._processing = False
        self._process_task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._process_task is not None and not self._process_task.done()

    async def start_processing(self) -> None:
        """Start event processing loop."""
        if self._processing:
            logger.warning("Event processor already running")
            return

        logger.info("Starting event processor")
        self._processing = True
        self._process_task = asyncio.create_task(self._process_loop())

    async def stop_processing(self) -> None:
        """Stop event processing loop."""
        if not self._processing:
            return

        logger.info("Stopping event processor")
        self._processing = False

        if self._process_task:
            await self._process_task
            self._process_task = None

    async def _process_loop(self) -> None:
        while self._processing:
            try:
                event = await asyncio.wait_for(self.queue.get(), timeout=0.1)
            except asyncio.TimeoutError:
                continue

            try:
                await self.process_event(event)
            except Exception as e:
                logger.error(f"Event processing loop error: {e}", exc_info=True)

    async def process_event(self, event: CompositorEvent) -> Optional[MutationSummary]:
        """Process a single event and track metrics.

        Returns:
            MutationSummary, or None if the event could not be applied
        """
        self.metrics.record_received()
        start = time.monotonic()
        auto_tile = self.auto_tiler is not None and self.auto_tile_enabled()

        snapshot = None
        if self.ingestor.needs_snapshot(event, auto_tile=auto_tile):
            try:
                snapshot = await self.connection.get_tree()
            except Exception as e:
                self.metrics.record_failed()
                logger.error(f"Cannot fetch tree for {event.describe()}: {e}")
                return None

        needs_resync = False
        summary: Optional[MutationSummary] = None
        async with self.state_manager.lock:
            try:
                summary = self.ingestor.apply(self.state_manager.model, event, snapshot)
                needs_resync = summary.resync
            except UnknownNodeError as e:
                logger.warning(f"{event.describe()} references unknown node {e.node_id}, resyncing")
                needs_resync = True
            except SyncError as e:
                logger.warning(f"{event.describe()} could not be applied ({e}), resyncing")
                needs_resync = True
            except SwayrError as e:
                self.metrics.record_failed()
                logger.error(f"Failed to apply {event.describe()}: {e}")
                return None

        if summary is not None and summary.shutdown:
            logger.info("sway is exiting")
            if self.on_shutdown:
                self.on_shutdown()
            return summary

        if needs_resync:
            if not await self.resync():
                self.metrics.record_failed()
                return summary

        if auto_tile and (needs_resync or (summary is not None and summary.auto_tile)):
            await self.run_auto_tile()

        duration_ms = (time.monotonic() - start) * 1000
        self.metrics.record_processed(duration_ms)
        logger.debug(f"Processed {event.describe()} in {duration_ms:.1f}ms")
        return summary

    async def resync(self) -> bool:
        """Replace the tree model with a fresh snapshot.

        Returns:
            True on success
        """
        try:
            snapshot = await self.connection.get_tree()
        except Exception as e:
            logger.error(f"Resync failed: {e}")
            return False

        async with self.state_manager.lock:
            self.state_manager.replace_model(snapshot)
        self.metrics.resyncs += 1
        return True

    async def run_auto_tile(self) -> int:
        """Plan under the lock, issue commands without it."""
        async with self.state_manager.lock:
            decisions = self.auto_tiler.plan(self.state_manager.model)
        if not decisions:
            return 0
        return await self.auto_tiler.run(self.connection, decisions)
