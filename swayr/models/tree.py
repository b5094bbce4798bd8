"""Tree node types mirroring the sway container tree.

Nodes are built from the raw JSON that sway returns for GET_TREE and carries
inside window/workspace events (``ipc_data`` on i3ipc objects). Parent and child
links are node ids into the tree model's index, never object references.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class NodeType(str, Enum):
    """Kind of tree node."""

    ROOT = "root"
    OUTPUT = "output"
    WORKSPACE = "workspace"
    CONTAINER = "container"
    WINDOW = "window"


class LayoutKind(str, Enum):
    """Layout of a node's children."""

    NONE = "none"
    SPLITH = "splith"
    SPLITV = "splitv"
    TABBED = "tabbed"
    STACKED = "stacked"

    @classmethod
    def parse(cls, value: Optional[str]) -> "LayoutKind":
        """Map a sway layout string to a LayoutKind.

        sway also reports "output" and "dockarea" layouts; those carry no
        split semantics and map to NONE.
        """
        try:
            return cls(value)
        except ValueError:
            return cls.NONE

    @property
    def is_split(self) -> bool:
        return self in (LayoutKind.SPLITH, LayoutKind.SPLITV)

    @property
    def is_tabbed_or_stacked(self) -> bool:
        return self in (LayoutKind.TABBED, LayoutKind.STACKED)


@dataclass
class Rect:
    """Position and size in pixels."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Rect":
        if not data:
            return cls()
        return cls(
            x=int(data.get("x", 0)),
            y=int(data.get("y", 0)),
            width=int(data.get("width", 0)),
            height=int(data.get("height", 0)),
        )


def classify(data: Dict[str, Any]) -> NodeType:
    """Determine the node type of a raw sway node.

    Args:
        data: Raw node JSON from sway

    Returns:
        NodeType for the node
    """
    sway_type = data.get("type")
    if sway_type == "root":
        return NodeType.ROOT
    if sway_type == "output":
        return NodeType.OUTPUT
    if sway_type == "workspace":
        return NodeType.WORKSPACE

    # "con" and "floating_con": only leaves that belong to a client are windows
    if (
        data.get("pid") is not None
        or data.get("app_id")
        or data.get("window_properties")
    ):
        return NodeType.WINDOW
    return NodeType.CONTAINER


@dataclass
class Node:
    """One node of the mirrored sway tree.

    Attributes:
        id: sway container id, unique and stable for the node's lifetime
        node_type: Output, workspace, container or window
        name: Output/workspace name or window title
        layout: Layout of this node's children
        floating: True for floating containers/windows
        rect: Geometry reported by sway
        marks: Marks set on the node (order as reported by sway)
        urgent: Urgency hint
        focused: True for the single node sway reports as focused
        app_id: Wayland app id (None for Xwayland windows)
        window_class: X11 class for Xwayland windows
        window_instance: X11 instance for Xwayland windows
        pid: Client process id
        parent_id: Id of the parent node, None for the root
        children: Ordered ids of tiled children
        floating_children: Ordered ids of floating children
        focus_tick: Logical clock value of the last locked-in focus
    """

    id: int
    node_type: NodeType
    name: Optional[str] = None
    layout: LayoutKind = LayoutKind.NONE
    floating: bool = False
    rect: Rect = field(default_factory=Rect)
    marks: List[str] = field(default_factory=list)
    urgent: bool = False
    focused: bool = False
    app_id: Optional[str] = None
    window_class: Optional[str] = None
    window_instance: Optional[str] = None
    pid: Optional[int] = None
    parent_id: Optional[int] = None
    children: List[int] = field(default_factory=list)
    floating_children: List[int] = field(default_factory=list)
    focus_tick: int = 0

    @classmethod
    def from_ipc(cls, data: Dict[str, Any], parent_id: Optional[int] = None) -> "Node":
        """Build a node (without children) from raw sway JSON."""
        props = data.get("window_properties") or {}
        return cls(
            id=int(data["id"]),
            node_type=classify(data),
            name=data.get("name"),
            layout=LayoutKind.parse(data.get("layout")),
            floating=data.get("type") == "floating_con",
            rect=Rect.from_dict(data.get("rect")),
            marks=list(data.get("marks") or []),
            urgent=bool(data.get("urgent", False)),
            focused=bool(data.get("focused", False)),
            app_id=data.get("app_id"),
            window_class=props.get("class"),
            window_instance=props.get("instance"),
            pid=data.get("pid"),
            parent_id=parent_id,
        )

    def update_from_ipc(self, data: Dict[str, Any]) -> None:
        """Refresh mutable attributes from newer sway JSON of the same node."""
        props = data.get("window_properties") or {}
        self.name = data.get("name", self.name)
        self.layout = LayoutKind.parse(data.get("layout", self.layout.value))
        if "type" in data:
            self.floating = data["type"] == "floating_con"
        if "rect" in data:
            self.rect = Rect.from_dict(data["rect"])
        if "marks" in data:
            self.marks = list(data["marks"] or [])
        self.urgent = bool(data.get("urgent", self.urgent))
        self.app_id = data.get("app_id", self.app_id)
        if props:
            self.window_class = props.get("class", self.window_class)
            self.window_instance = props.get("instance", self.window_instance)
        if data.get("pid") is not None:
            self.pid = data["pid"]

    @property
    def is_window(self) -> bool:
        return self.node_type is NodeType.WINDOW

    @property
    def app_name(self) -> str:
        """App id for Wayland windows, X11 class (or instance) otherwise."""
        return self.app_id or self.window_class or self.window_instance or "<unknown>"

    @property
    def title(self) -> str:
        return self.name or ""

    def all_children(self) -> List[int]:
        """Tiled children followed by floating children."""
        return self.children + self.floating_children
