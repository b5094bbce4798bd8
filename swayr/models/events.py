"""Decoded sway events and the summaries produced by applying them."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import ProtocolDecodeError


class EventCategory(str, Enum):
    """sway event subscription categories swayr consumes."""

    WINDOW = "window"
    WORKSPACE = "workspace"
    OUTPUT = "output"
    SHUTDOWN = "shutdown"


@dataclass(frozen=True)
class CompositorEvent:
    """One event frame from sway.

    Attributes:
        category: Subscription category
        change: Change string ("new", "focus", "init", ...)
        container: Window container JSON (window events) or the current
            workspace JSON (workspace events)
        old: Previous workspace JSON for workspace focus events
        received_at: Monotonic timestamp when the frame was decoded
    """

    category: EventCategory
    change: str
    container: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None
    received_at: float = field(default_factory=time.monotonic)

    @property
    def node_id(self) -> Optional[int]:
        if self.container is None:
            return None
        return self.container.get("id")

    def describe(self) -> str:
        return f"{self.category.value}::{self.change}"


def decode_event(category: EventCategory, payload: Any) -> CompositorEvent:
    """Decode a raw event payload.

    Args:
        category: Category the payload was delivered under
        payload: Raw event JSON (``ipc_data`` of the i3ipc event)

    Returns:
        CompositorEvent

    Raises:
        ProtocolDecodeError: If the payload is missing required members
    """
    if not isinstance(payload, dict):
        raise ProtocolDecodeError(f"{category.value} event payload is not an object")

    change = payload.get("change")
    if not isinstance(change, str) or not change:
        raise ProtocolDecodeError(f"{category.value} event without change")

    match category:
        case EventCategory.WINDOW:
            container = payload.get("container")
            if not isinstance(container, dict) or "id" not in container:
                raise ProtocolDecodeError(f"window::{change} event without container id")
            return CompositorEvent(category, change, container=container)

        case EventCategory.WORKSPACE:
            current = payload.get("current")
            old = payload.get("old")
            if current is not None and (not isinstance(current, dict) or "id" not in current):
                raise ProtocolDecodeError(f"workspace::{change} event with malformed current")
            return CompositorEvent(
                category,
                change,
                container=current,
                old=old if isinstance(old, dict) else None,
            )

        case EventCategory.OUTPUT | EventCategory.SHUTDOWN:
            return CompositorEvent(category, change)

    raise ProtocolDecodeError(f"Unsupported event category {category}")


@dataclass
class MutationSummary:
    """What applying one event did to the tree model.

    Attributes:
        change: "<category>::<change>" of the applied event
        node_id: Node the event addressed, if any
        auto_tile: The mutation should trigger an auto-tile pass
        resync: The model must be replaced by a fresh snapshot
        shutdown: sway is exiting
        changed: False when the event was ignored
    """

    change: str
    node_id: Optional[int] = None
    auto_tile: bool = False
    resync: bool = False
    shutdown: bool = False
    changed: bool = True
