"""Focus recency tracking.

Decides when a focus event counts for the LRU order. A focus is locked in
immediately by default, or after ``focus.lockin_delay`` ms without another
focus change. While a prev/next sequence is running with ``misc.seq_inhibit``,
no focus is locked in until the sequence ends.
"""

import asyncio
import logging
from typing import Optional

from ..tree_model import TreeModel

logger = logging.getLogger(__name__)


class FocusTracker:
    """Service locking focus changes into the logical clock."""

    def __init__(self, state_manager, lockin_delay_ms: int = 0, seq_inhibit: bool = False):
        """Initialize focus tracker.

        Args:
            state_manager: StateManager whose lock guards deferred lock-ins
            lockin_delay_ms: Quiet period before a focus counts (0 = immediate)
            seq_inhibit: Hold back lock-ins during prev/next sequences
        """
        self.state_manager = state_manager
        self.lockin_delay = lockin_delay_ms / 1000
        self.seq_inhibit = seq_inhibit
        self._inhibited = False
        self._pending: Optional[int] = None
        self._lockin_task: Optional[asyncio.Task] = None

    def configure(self, lockin_delay_ms: int, seq_inhibit: bool) -> None:
        """Apply reloaded settings."""
        self.lockin_delay = lockin_delay_ms / 1000
        self.seq_inhibit = seq_inhibit
        if not seq_inhibit:
            self._inhibited = False

    @property
    def inhibited(self) -> bool:
        return self._inhibited

    @property
    def pending(self) -> Optional[int]:
        return self._pending

    def on_focus(self, model: TreeModel, node_id: int) -> bool:
        """Handle a focus change. Caller holds the state lock.

        Returns:
            True if the clock was advanced immediately
        """
        self._cancel_lockin()

        if self._inhibited:
            self._pending = node_id
            logger.debug(f"Focus of {node_id} held back during sequence")
            return False

        if self.lockin_delay <= 0:
            self._pending = None
            model.touch(node_id)
            return True

        self._pending = node_id
        self._lockin_task = asyncio.get_running_loop().create_task(
            self._lockin_after_delay(node_id)
        )
        return False

    def forget(self, node_id: int) -> None:
        """Drop a pending lock-in for a node that went away."""
        if self._pending == node_id:
            self._cancel_lockin()
            self._pending = None

    async def _lockin_after_delay(self, node_id: int) -> None:
        await asyncio.sleep(self.lockin_delay)
        async with self.state_manager.lock:
            model = self.state_manager.model
            if self._pending != node_id or self._inhibited:
                return
            self._pending = None
            if node_id in model:
                model.touch(node_id)
                logger.debug(f"Locked in focus of {node_id}")

    def _cancel_lockin(self) -> None:
        if self._lockin_task is not None and not self._lockin_task.done():
            self._lockin_task.cancel()
        self._lockin_task = None

    def inhibit(self) -> None:
        """Start or continue a prev/next sequence."""
        if self.seq_inhibit and not self._inhibited:
            logger.debug("Focus lock-in inhibited")
            self._inhibited = True

    def activate(self, model: TreeModel) -> None:
        """End a prev/next sequence and lock in the current focus.

        Caller holds the state lock.
        """
        was_inhibited = self._inhibited
        self._inhibited = False
        self._cancel_lockin()
        self._pending = None

        if not was_inhibited:
            return
        focused = model.focused_window()
        if focused is None:
            return
        history = model.focus_history()
        if not history or history[0] != focused.id:
            model.touch(focused.id)
            logger.debug(f"Sequence ended, locked in focus of {focused.id}")

    async def stop(self) -> None:
        self._cancel_lockin()
