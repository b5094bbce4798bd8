"""State manager for swayrd.

Owns the single TreeModel instance and the lock that serializes every event
application and every command dispatch against it.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from .tree_model import TreeModel

logger = logging.getLogger(__name__)


class StateManager:
    """Shared daemon state with async-safe access.

    All reads and writes of ``model`` happen inside ``async with state.lock``.
    The lock is never held while awaiting a sway reply or the menu program.
    """

    def __init__(self, model: TreeModel | None = None) -> None:
        """Initialize state manager.

        Args:
            model: Initial tree model (default: empty until initialize())
        """
        self.model = model if model is not None else TreeModel()
        self.lock = asyncio.Lock()
        self.started_at = time.monotonic()
        self.resync_count = 0
        self.last_resync_at: Optional[float] = None

    async def initialize(self, snapshot: TreeModel) -> None:
        """Install the startup snapshot.

        The focused window gets the first clock value so it heads the
        focus history from the start.
        """
        async with self.lock:
            self.model = snapshot
            focused = snapshot.focused_window()
            if focused is not None:
                snapshot.touch(focused.id)
            logger.info(
                f"Tree model initialized: {len(snapshot)} nodes, "
                f"{len(snapshot.windows())} windows"
            )

    def replace_model(self, snapshot: TreeModel) -> None:
        """Swap in a fresh snapshot, keeping focus recency of surviving nodes.

        Caller must hold ``lock``.
        """
        snapshot.adopt_focus_ticks(self.model)
        dropped = self.model.ids() - snapshot.ids()
        self.model = snapshot
        self.resync_count += 1
        self.last_resync_at = time.time()
        logger.info(
            f"Tree model resynced ({len(snapshot)} nodes, {len(dropped)} dropped, "
            f"resync #{self.resync_count})"
        )

    async def get_stats(self) -> Dict[str, Any]:
        """Get summary statistics for the status RPC."""
        async with self.lock:
            model = self.model
            return {
                "uptime_seconds": round(time.monotonic() - self.started_at, 1),
                "node_count": len(model),
                "window_count": len(model.windows()),
                "workspace_count": len(model.workspaces()),
                "clock": model.clock,
                "resync_count": self.resync_count,
                "last_resync_at": self.last_resync_at,
            }
