"""Value types shared across the swayr daemon and client."""

from .commands import (
    CommandKind,
    CommandReply,
    ConsiderFloating,
    ConsiderWindows,
    SwayrCommand,
)
from .config import SwayrConfig
from .events import CompositorEvent, EventCategory, MutationSummary
from .tree import LayoutKind, Node, NodeType, Rect

__all__ = [
    "CommandKind",
    "CommandReply",
    "CompositorEvent",
    "ConsiderFloating",
    "ConsiderWindows",
    "EventCategory",
    "LayoutKind",
    "MutationSummary",
    "Node",
    "NodeType",
    "Rect",
    "SwayrCommand",
    "SwayrConfig",
]
