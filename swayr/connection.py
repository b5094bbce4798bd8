"""sway IPC link.

Two i3ipc.aio connections are used: one for requests (GET_TREE, RUN_COMMAND)
and one subscribed to the event stream. Event callbacks only decode frames
and queue them; the EventProcessor applies them one at a time.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from i3ipc import Event, aio

from .errors import CompositorRejectedError, ConnectFailure, ProtocolDecodeError
from .models.events import EventCategory, decode_event
from .tree_model import TreeModel

logger = logging.getLogger(__name__)

SUBSCRIBED_EVENTS = {
    EventCategory.WINDOW: Event.WINDOW,
    EventCategory.WORKSPACE: Event.WORKSPACE,
    EventCategory.OUTPUT: Event.OUTPUT,
    EventCategory.SHUTDOWN: Event.SHUTDOWN,
}


class SwayConnection:
    """Manages the sway IPC connections with retrying connect."""

    def __init__(self) -> None:
        self.conn: Optional[aio.Connection] = None
        self.events: Optional[aio.Connection] = None
        self.is_shutting_down = False
        self.reconnect_delay = 0.1  # Initial delay: 100ms

    @property
    def is_connected(self) -> bool:
        return self.conn is not None and not self.is_shutting_down

    async def connect_with_retry(self, max_attempts: int = 10) -> None:
        """Connect to sway with exponential backoff retry.

        Args:
            max_attempts: Maximum connection attempts

        Raises:
            ConnectFailure: If connection fails after max attempts
        """
        attempt = 0
        delay = self.reconnect_delay

        while attempt < max_attempts:
            try:
                logger.info(f"Attempting to connect to sway (attempt {attempt + 1}/{max_attempts})")
                self.conn = await aio.Connection().connect()
                self.events = await aio.Connection(auto_reconnect=True).connect()

                version = await self.conn.get_version()
                logger.info(f"Connected to sway version {version.human_readable}")
                self.is_shutting_down = False
                return

            except Exception as e:
                logger.warning(f"Connection attempt {attempt + 1} failed: {e}")
                attempt += 1

                if attempt < max_attempts:
                    logger.debug(f"Waiting {delay:.1f}s before retry...")
                    await asyncio.sleep(delay)

                    # Exponential backoff: double delay up to 5s max
                    delay = min(delay * 2, 5.0)

        self.conn = None
        self.events = None
        raise ConnectFailure(f"Failed to connect to sway after {max_attempts} attempts")

    def _require(self) -> aio.Connection:
        if self.conn is None:
            raise ConnectFailure("Not connected to sway")
        return self.conn

    async def get_tree(self, previous: Optional[TreeModel] = None) -> TreeModel:
        """Fetch a GET_TREE snapshot as a TreeModel."""
        tree = await self._require().get_tree()
        return TreeModel.from_ipc(tree.ipc_data, previous=previous)

    async def get_outputs(self) -> List[Dict[str, Any]]:
        outputs = await self._require().get_outputs()
        return [o.ipc_data for o in outputs]

    async def command(self, text: str) -> None:
        """Run a sway command.

        Raises:
            CompositorRejectedError: If sway reports a failure for any part
                of the command
        """
        logger.debug(f"Running sway command: {text}")
        replies = await self._require().command(text)
        for reply in replies or []:
            if not reply.success:
                error = getattr(reply, "error", None) or "command failed"
                raise CompositorRejectedError(error, command=text)

    def _make_handler(self, category: EventCategory, queue: asyncio.Queue):
        def handler(conn, event) -> None:
            payload = getattr(event, "ipc_data", None)
            if payload is None:
                payload = {"change": getattr(event, "change", None)}
            try:
                queue.put_nowait(decode_event(category, payload))
            except ProtocolDecodeError as e:
                logger.warning(f"Skipping malformed event frame: {e}")

        return handler

    async def subscribe(self, queue: asyncio.Queue) -> None:
        """Subscribe to window, workspace, output and shutdown events.

        Decoded events are put on ``queue``.
        """
        if self.events is None:
            raise ConnectFailure("Not connected to sway")

        for category, event in SUBSCRIBED_EVENTS.items():
            self.events.on(event, self._make_handler(category, queue))
        await self.events.subscribe(list(SUBSCRIBED_EVENTS.values()))
        logger.info("Subscribed to sway event stream (window, workspace, output, shutdown)")

    async def main(self) -> None:
        """Run the event connection until sway goes away or close() is called."""
        if self.events is None:
            logger.error("Cannot run main loop: not connected")
            return

        try:
            await self.events.main()
        except Exception as e:
            if not self.is_shutting_down:
                logger.error(f"sway event loop error: {e}")
                raise
            logger.info("sway event loop stopped (shutdown)")

    def close(self) -> None:
        """Close both connections."""
        self.is_shutting_down = True
        if self.events is not None:
            self.events.main_quit()
        self.events = None
        self.conn = None
        logger.info("Closed sway connection")
