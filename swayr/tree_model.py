"""In-memory mirror of the sway tree with focus recency.

The model is an arena: every node lives in one id -> Node index, and parent and
child links are ids into that index. Focus recency is a logical clock stored on
each node; the focus history is derived from it on demand.
"""

import copy
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .constants import SwayNames
from .errors import SyncError, UnknownNodeError
from .models.tree import Node, NodeType

logger = logging.getLogger(__name__)


class TreeModel:
    """Enriched sway tree indexed by container id."""

    def __init__(self) -> None:
        self._nodes: Dict[int, Node] = {}
        self.root_id: Optional[int] = None
        self.clock = 0

    @classmethod
    def from_ipc(cls, data: Dict[str, Any], previous: Optional["TreeModel"] = None) -> "TreeModel":
        """Build a model from a GET_TREE reply.

        Args:
            data: Raw root node JSON
            previous: Model being replaced; focus clock values of surviving
                nodes are carried over so recency survives a resync

        Returns:
            New TreeModel
        """
        model = cls()
        model.root_id = model._build(data, parent_id=None)
        if previous is not None:
            model.adopt_focus_ticks(previous)
        return model

    def adopt_focus_ticks(self, previous: "TreeModel") -> None:
        """Carry the logical clock and per-node clock values over from ``previous``."""
        self.clock = max(self.clock, previous.clock)
        for node_id, node in self._nodes.items():
            old = previous.find(node_id)
            if old is not None:
                node.focus_tick = old.focus_tick

    def _build(self, data: Dict[str, Any], parent_id: Optional[int]) -> int:
        node = Node.from_ipc(data, parent_id=parent_id)
        if node.id in self._nodes:
            raise SyncError(f"Duplicate node id {node.id} in tree snapshot")
        self._nodes[node.id] = node
        for child in data.get("nodes") or []:
            node.children.append(self._build(child, node.id))
        for child in data.get("floating_nodes") or []:
            node.floating_children.append(self._build(child, node.id))
        return node.id

    # Lookup

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def ids(self) -> set[int]:
        return set(self._nodes)

    def find(self, node_id: int) -> Optional[Node]:
        return self._nodes.get(node_id)

    def get(self, node_id: int) -> Node:
        """Get a node by id.

        Raises:
            UnknownNodeError: If the id is not in the model
        """
        node = self._nodes.get(node_id)
        if node is None:
            raise UnknownNodeError(node_id)
        return node

    @property
    def root(self) -> Node:
        if self.root_id is None:
            raise SyncError("Tree model is empty")
        return self._nodes[self.root_id]

    def parent_of(self, node: Node) -> Optional[Node]:
        if node.parent_id is None:
            return None
        return self._nodes.get(node.parent_id)

    def children_of(self, node: Node) -> List[Node]:
        """Tiled children in order, then floating children in order."""
        return [self._nodes[child_id] for child_id in node.all_children()]

    def walk(self, start: Optional[Node] = None) -> Iterator[Node]:
        """Preorder traversal starting at ``start`` (default: root)."""
        for node, _depth in self.walk_with_depth(start):
            yield node

    def walk_with_depth(self, start: Optional[Node] = None) -> Iterator[Tuple[Node, int]]:
        if start is None:
            if self.root_id is None:
                return
            start = self.root
        stack: List[Tuple[Node, int]] = [(start, 0)]
        while stack:
            node, depth = stack.pop()
            yield node, depth
            for child in reversed(self.children_of(node)):
                stack.append((child, depth + 1))

    def ancestor_of_type(self, node: Node, node_type: NodeType) -> Optional[Node]:
        """Closest node of ``node_type`` on the path from ``node`` to the root, inclusive."""
        current: Optional[Node] = node
        while current is not None:
            if current.node_type is node_type:
                return current
            current = self.parent_of(current)
        return None

    def workspace_of(self, node: Node) -> Optional[Node]:
        return self.ancestor_of_type(node, NodeType.WORKSPACE)

    def output_of(self, node: Node) -> Optional[Node]:
        return self.ancestor_of_type(node, NodeType.OUTPUT)

    def is_scratchpad(self, node: Node) -> bool:
        """True if the node is the scratchpad output/workspace or lives inside it."""
        current: Optional[Node] = node
        while current is not None:
            if current.name in SwayNames.SCRATCHPAD_NAMES and current.node_type in (
                NodeType.OUTPUT,
                NodeType.WORKSPACE,
            ):
                return True
            current = self.parent_of(current)
        return False

    def outputs(self, include_scratchpad: bool = False) -> List[Node]:
        return [
            n
            for n in self.walk()
            if n.node_type is NodeType.OUTPUT and (include_scratchpad or not self.is_scratchpad(n))
        ]

    def workspaces(self, include_scratchpad: bool = False) -> List[Node]:
        return [
            n
            for n in self.walk()
            if n.node_type is NodeType.WORKSPACE and (include_scratchpad or not self.is_scratchpad(n))
        ]

    def windows(self, start: Optional[Node] = None) -> List[Node]:
        """All windows below ``start`` in depth-first order."""
        return [n for n in self.walk(start) if n.node_type is NodeType.WINDOW]

    def focused_node(self) -> Optional[Node]:
        for node in self._nodes.values():
            if node.focused:
                return node
        return None

    def focused_window(self) -> Optional[Node]:
        node = self.focused_node()
        if node is not None and node.is_window:
            return node
        return None

    def current_workspace(self) -> Optional[Node]:
        """Workspace holding the focused node."""
        node = self.focused_node()
        if node is None:
            return None
        return self.workspace_of(node)

    # Focus recency

    def focus_history(self) -> List[int]:
        """Window ids, most recently focused first.

        Ordered by clock value descending; windows never focused (clock 0)
        keep their depth-first order at the end.
        """
        windows = self.windows()
        return [w.id for w in sorted(windows, key=lambda w: w.focus_tick, reverse=True)]

    def subtree_tick(self, node: Node) -> int:
        """Highest clock value in the subtree rooted at ``node``."""
        return max((n.focus_tick for n in self.walk(node)), default=0)

    def set_focused(self, node_id: int) -> Node:
        """Move sway's focused flag to ``node_id``."""
        node = self.get(node_id)
        for other in self._nodes.values():
            other.focused = False
        node.focused = True
        return node

    def touch(self, node_id: int) -> int:
        """Advance the logical clock and stamp it on ``node_id``.

        Callers must hold the state lock so clock order matches event order.

        Returns:
            New clock value
        """
        node = self.get(node_id)
        self.clock += 1
        node.focus_tick = self.clock
        return self.clock

    # Structural mutations

    def _siblings(self, parent: Node, floating: bool) -> List[int]:
        return parent.floating_children if floating else parent.children

    def _detach(self, node: Node) -> None:
        parent = self.parent_of(node)
        if parent is None:
            return
        for siblings in (parent.children, parent.floating_children):
            if node.id in siblings:
                siblings.remove(node.id)

    def _attach_like(self, snapshot: "TreeModel", node: Node) -> None:
        """Attach ``node`` under the parent and position it has in ``snapshot``."""
        snap_node = snapshot.get(node.id)
        if snap_node.parent_id is None:
            raise SyncError(f"Node {node.id} has no parent in snapshot")
        parent = self.get(snap_node.parent_id)
        snap_parent = snapshot.get(snap_node.parent_id)
        floating = snap_node.id in snap_parent.floating_children
        snap_siblings = snapshot._siblings(snap_parent, floating)
        siblings = self._siblings(parent, floating)

        # Insert after the nearest preceding sibling this model already knows
        index = 0
        for sibling_id in reversed(snap_siblings[: snap_siblings.index(node.id)]):
            if sibling_id in siblings:
                index = siblings.index(sibling_id) + 1
                break
        siblings.insert(index, node.id)
        node.parent_id = parent.id

    def insert_from(self, snapshot: "TreeModel", node_id: int) -> Node:
        """Insert a node (and its subtree) the way it appears in ``snapshot``.

        If the node is already known it is moved instead.

        Raises:
            UnknownNodeError: If the node or its parent is missing
        """
        if node_id in self._nodes:
            return self.move_from(snapshot, node_id)

        snap_node = snapshot.get(node_id)
        for snap_desc in snapshot.walk(snap_node):
            if snap_desc.id in self._nodes:
                raise SyncError(f"Node {snap_desc.id} already present below new node {node_id}")
            fresh = copy.deepcopy(snap_desc)
            fresh.focus_tick = 0
            fresh.focused = False
            self._nodes[fresh.id] = fresh

        try:
            self._attach_like(snapshot, self._nodes[node_id])
        except (SyncError, ValueError):
            for snap_desc in snapshot.walk(snap_node):
                self._nodes.pop(snap_desc.id, None)
            raise
        return self._nodes[node_id]

    def move_from(self, snapshot: "TreeModel", node_id: int) -> Node:
        """Re-parent a known node to where ``snapshot`` has it.

        Containers left empty at the old position are pruned.
        """
        node = self.get(node_id)
        snap_node = snapshot.get(node_id)
        if snap_node.parent_id is None or snap_node.parent_id not in self._nodes:
            raise UnknownNodeError(snap_node.parent_id if snap_node.parent_id is not None else node_id)
        old_parent_id = node.parent_id
        self._detach(node)
        self._attach_like(snapshot, node)
        node.floating = snap_node.floating
        self.prune_empty_containers(old_parent_id)
        return node

    def remove(self, node_id: int) -> List[int]:
        """Remove a node and its subtree, then prune containers left empty.

        Returns:
            Ids of all removed nodes, pruned ancestors included

        Raises:
            UnknownNodeError: If the id is not in the model
        """
        node = self.get(node_id)
        removed = [n.id for n in self.walk(node)]
        self._detach(node)
        for removed_id in removed:
            del self._nodes[removed_id]
        removed.extend(self.prune_empty_containers(node.parent_id))
        return removed

    def prune_empty_containers(self, node_id: Optional[int]) -> List[int]:
        """Drop ``node_id`` and its ancestors while they are childless containers.

        sway destroys a split or tabbed container together with its last
        child and sends no event for it.

        Returns:
            Ids of the pruned containers, innermost first
        """
        pruned = []
        node = self.find(node_id) if node_id is not None else None
        while (
            node is not None
            and node.node_type is NodeType.CONTAINER
            and not node.children
            and not node.floating_children
        ):
            parent = self.parent_of(node)
            self._detach(node)
            del self._nodes[node.id]
            pruned.append(node.id)
            node = parent
        if pruned:
            logger.debug(f"Pruned empty containers {pruned}")
        return pruned

    def refresh_from(self, snapshot: "TreeModel") -> None:
        """Copy geometry and layout of nodes known to both models.

        sway sends no resize events, so rects are only as fresh as the last
        snapshot.
        """
        for node_id, node in self._nodes.items():
            snap = snapshot.find(node_id)
            if snap is None:
                continue
            node.rect = copy.copy(snap.rect)
            node.layout = snap.layout

    def check_consistency(self) -> List[str]:
        """List structural problems; an empty list means the index matches the tree."""
        problems = []
        if self.root_id is None:
            return ["no root"] if self._nodes else []

        reachable = set()
        for node in self.walk():
            if node.id in reachable:
                problems.append(f"node {node.id} reachable twice")
            reachable.add(node.id)
            for child in self.children_of(node):
                if child.parent_id != node.id:
                    problems.append(f"node {child.id} has parent {child.parent_id}, expected {node.id}")

        dangling = set(self._nodes) - reachable
        if dangling:
            problems.append(f"unreachable nodes in index: {sorted(dangling)}")
        return problems
