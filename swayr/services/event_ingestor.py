"""Event ingestion: turns decoded sway events into tree model mutations.

Each (category, change) pair maps to one mutation. Structural changes (new
windows, moves, new workspaces) are placed using a fresh GET_TREE snapshot
because events do not say where in the tree a node ended up. Any event that
names an id the model does not know raises UnknownNodeError; the caller then
replaces the whole model instead of attempting a partial repair.
"""

import logging
from typing import Callable, Dict, Optional, Tuple

from ..errors import SyncError
from ..models.events import CompositorEvent, EventCategory, MutationSummary
from ..tree_model import TreeModel
from .focus_tracker import FocusTracker

logger = logging.getLogger(__name__)

EventKey = Tuple[EventCategory, str]

# Changes that need a GET_TREE snapshot to be applied
SNAPSHOT_CHANGES = frozenset(
    {
        (EventCategory.WINDOW, "new"),
        (EventCategory.WINDOW, "move"),
        (EventCategory.WINDOW, "floating"),
        (EventCategory.WORKSPACE, "init"),
        (EventCategory.WORKSPACE, "move"),
    }
)

# Changes after which auto-tiling re-evaluates the tree. sway has no resize
# event, so focus changes stand in for it.
AUTO_TILE_CHANGES = frozenset(
    {
        (EventCategory.WINDOW, "new"),
        (EventCategory.WINDOW, "close"),
        (EventCategory.WINDOW, "move"),
        (EventCategory.WINDOW, "floating"),
        (EventCategory.WINDOW, "focus"),
    }
)


class EventIngestor:
    """Applies sway events to a TreeModel."""

    def __init__(self, focus_tracker: Optional[FocusTracker] = None):
        """Initialize event ingestor.

        Args:
            focus_tracker: Decides when focus changes advance the clock;
                without one every focus is locked in immediately
        """
        self.focus_tracker = focus_tracker
        self._handlers: Dict[EventKey, Callable[[TreeModel, CompositorEvent, Optional[TreeModel]], MutationSummary]] = {
            (EventCategory.WINDOW, "new"): self._on_window_new,
            (EventCategory.WINDOW, "close"): self._on_window_close,
            (EventCategory.WINDOW, "focus"): self._on_window_focus,
            (EventCategory.WINDOW, "move"): self._on_node_move,
            (EventCategory.WINDOW, "floating"): self._on_window_floating,
            (EventCategory.WINDOW, "urgent"): self._on_urgent,
            (EventCategory.WINDOW, "title"): self._on_window_update,
            (EventCategory.WINDOW, "mark"): self._on_window_update,
            (EventCategory.WINDOW, "fullscreen_mode"): self._on_window_update,
            (EventCategory.WORKSPACE, "init"): self._on_workspace_init,
            (EventCategory.WORKSPACE, "empty"): self._on_workspace_empty,
            (EventCategory.WORKSPACE, "focus"): self._on_workspace_focus,
            (EventCategory.WORKSPACE, "rename"): self._on_workspace_rename,
            (EventCategory.WORKSPACE, "move"): self._on_node_move,
            (EventCategory.WORKSPACE, "urgent"): self._on_urgent,
        }

    @staticmethod
    def key(event: CompositorEvent) -> EventKey:
        return (event.category, event.change)

    def needs_snapshot(self, event: CompositorEvent, auto_tile: bool = False) -> bool:
        """Whether ``event`` must be applied together with a fresh snapshot.

        Auto-tiling works on geometry, so with auto_tile enabled every
        triggering event refreshes it.
        """
        key = self.key(event)
        return key in SNAPSHOT_CHANGES or (auto_tile and key in AUTO_TILE_CHANGES)

    def apply(
        self,
        model: TreeModel,
        event: CompositorEvent,
        snapshot: Optional[TreeModel] = None,
    ) -> MutationSummary:
        """Apply one event. Caller holds the state lock.

        Args:
            model: Tree model to mutate
            event: Decoded event
            snapshot: GET_TREE snapshot taken after the event, if fetched

        Returns:
            MutationSummary describing the change

        Raises:
            UnknownNodeError: If the event names an id missing from the model
            SyncError: If the model and snapshot disagree structurally
        """
        match event.category:
            case EventCategory.SHUTDOWN:
                return MutationSummary(event.describe(), shutdown=True)
            case EventCategory.OUTPUT:
                return MutationSummary(event.describe(), resync=True)

        if event.category is EventCategory.WORKSPACE and (
            event.change == "reload" or event.container is None
        ):
            return MutationSummary(event.describe(), resync=True)

        handler = self._handlers.get(self.key(event))
        if handler is None:
            logger.debug(f"Ignoring {event.describe()}")
            return MutationSummary(event.describe(), node_id=event.node_id, changed=False)

        summary = handler(model, event, snapshot)
        summary.auto_tile = self.key(event) in AUTO_TILE_CHANGES
        if snapshot is not None and not summary.resync:
            model.refresh_from(snapshot)
        return summary

    def _require_snapshot(self, event: CompositorEvent, snapshot: Optional[TreeModel]) -> TreeModel:
        if snapshot is None:
            raise SyncError(f"{event.describe()} cannot be placed without a tree snapshot")
        return snapshot

    def _on_window_new(self, model, event, snapshot) -> MutationSummary:
        snapshot = self._require_snapshot(event, snapshot)
        node = model.insert_from(snapshot, event.node_id)
        logger.debug(f"Window {node.id} ({node.app_name}) added under {node.parent_id}")
        return MutationSummary(event.describe(), node_id=node.id)

    def _on_window_close(self, model, event, snapshot) -> MutationSummary:
        removed = model.remove(event.node_id)
        if self.focus_tracker is not None:
            for node_id in removed:
                self.focus_tracker.forget(node_id)
        logger.debug(f"Window {event.node_id} removed ({len(removed)} nodes)")
        return MutationSummary(event.describe(), node_id=event.node_id)

    def _on_window_focus(self, model, event, snapshot) -> MutationSummary:
        model.set_focused(event.node_id)
        if self.focus_tracker is not None:
            self.focus_tracker.on_focus(model, event.node_id)
        else:
            model.touch(event.node_id)
        return MutationSummary(event.describe(), node_id=event.node_id)

    def _on_node_move(self, model, event, snapshot) -> MutationSummary:
        snapshot = self._require_snapshot(event, snapshot)
        node = model.move_from(snapshot, event.node_id)
        logger.debug(f"Node {node.id} moved under {node.parent_id}")
        return MutationSummary(event.describe(), node_id=node.id)

    def _on_window_floating(self, model, event, snapshot) -> MutationSummary:
        summary = self._on_node_move(model, event, snapshot)
        model.get(event.node_id).update_from_ipc(event.container)
        return summary

    def _on_urgent(self, model, event, snapshot) -> MutationSummary:
        node = model.get(event.node_id)
        node.urgent = bool(event.container.get("urgent", False))
        return MutationSummary(event.describe(), node_id=node.id)

    def _on_window_update(self, model, event, snapshot) -> MutationSummary:
        node = model.get(event.node_id)
        node.update_from_ipc(event.container)
        return MutationSummary(event.describe(), node_id=node.id)

    def _on_workspace_init(self, model, event, snapshot) -> MutationSummary:
        snapshot = self._require_snapshot(event, snapshot)
        node = model.insert_from(snapshot, event.node_id)
        return MutationSummary(event.describe(), node_id=node.id)

    def _on_workspace_empty(self, model, event, snapshot) -> MutationSummary:
        model.remove(event.node_id)
        return MutationSummary(event.describe(), node_id=event.node_id)

    def _on_workspace_focus(self, model, event, snapshot) -> MutationSummary:
        # The workspace itself only holds focus when it has no windows;
        # otherwise a window::focus event follows.
        node = model.get(event.node_id)
        if event.container.get("focused"):
            model.set_focused(node.id)
        model.touch(node.id)
        return MutationSummary(event.describe(), node_id=node.id)

    def _on_workspace_rename(self, model, event, snapshot) -> MutationSummary:
        node = model.get(event.node_id)
        node.name = event.container.get("name", node.name)
        return MutationSummary(event.describe(), node_id=node.id)
