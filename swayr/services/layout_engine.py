"""Auto-tiling and workspace re-layout.

Auto-tiling picks the split orientation of each tiled container from its
width: a container whose next child would be narrower than the output's
minimum window width is switched to a vertical split, and a vertical split
wide enough for its children side by side goes back to horizontal. Planning
is pure; the resulting commands are issued outside the state lock.

Re-layout (tile/shuffle-tile/tab) parks all windows of the current workspace
on a scratch workspace and re-inserts them one by one.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..constants import RELAYOUT_STEP_DELAY, SwayNames
from ..models.tree import LayoutKind, Node, NodeType
from ..tree_model import TreeModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileDecision:
    """One orientation change chosen by an auto-tile pass.

    Attributes:
        container_id: Container (or workspace) whose layout changes
        target_id: Node the command is addressed to
        layout: New layout, SPLITH or SPLITV
        width: Container width the decision was based on
        child_count: Number of tiled children
        threshold: Minimum window width for the output
    """

    container_id: int
    target_id: int
    layout: LayoutKind
    width: int
    child_count: int
    threshold: int

    @property
    def command(self) -> str:
        return f"[con_id={self.target_id}] layout {self.layout.value}"


def _command_target(model: TreeModel, container: Node) -> Optional[int]:
    # "layout" on a non-leaf container changes that container; on a leaf it
    # changes the leaf's parent. Workspaces cannot be addressed by con_id,
    # so they are reached through one of their child windows.
    if container.node_type is not NodeType.WORKSPACE:
        return container.id
    for child_id in container.children:
        child = model.get(child_id)
        if child.is_window:
            return child.id
    return None


def _tiled_containers(model: TreeModel, output: Node) -> List[Node]:
    """Workspaces and containers below ``output`` eligible for auto-tiling.

    Tabbed and stacked containers are skipped together with their subtree.
    """
    result = []
    stack = [output]
    while stack:
        node = stack.pop()
        if node.layout.is_tabbed_or_stacked or model.is_scratchpad(node):
            continue
        if node.node_type in (NodeType.WORKSPACE, NodeType.CONTAINER) and not node.floating:
            result.append(node)
        for child_id in reversed(node.children):
            stack.append(model.get(child_id))
    return result


def plan_auto_tile(model: TreeModel, min_width_table: Dict[int, int]) -> List[TileDecision]:
    """Compute the orientation changes for the whole tree.

    Args:
        model: Tree model (caller holds the state lock)
        min_width_table: Output width -> minimum window width

    Returns:
        Decisions in tree order, empty if nothing needs to change
    """
    decisions = []
    for output in model.outputs():
        threshold = min_width_table.get(output.rect.width)
        if threshold is None:
            logger.debug(f"No minimum window width for output {output.name} ({output.rect.width}px)")
            continue

        for container in _tiled_containers(model, output):
            n = len(container.children)
            if n == 0:
                continue
            width = container.rect.width

            if container.layout is LayoutKind.SPLITH and width / (n + 1) < threshold:
                layout = LayoutKind.SPLITV
            elif container.layout is LayoutKind.SPLITV and width / n >= threshold:
                layout = LayoutKind.SPLITH
            else:
                continue

            target = _command_target(model, container)
            if target is None:
                logger.debug(f"Workspace {container.name} has no child window to address")
                continue
            decisions.append(TileDecision(container.id, target, layout, width, n, threshold))
    return decisions


class AutoTiler:
    """Issues auto-tile decisions, suppressing repeats.

    A container is re-evaluated only after its width or child count changed
    since the last command issued for it. Without that, a container with
    ``w / (n + 1) < T <= w / n`` would flip between both splits on every
    pass.
    """

    def __init__(self, min_width_table: Optional[Dict[int, int]] = None):
        self.min_width_table = min_width_table or {}
        self._issued: Dict[int, Tuple[int, int]] = {}

    def configure(self, min_width_table: Dict[int, int]) -> None:
        self.min_width_table = min_width_table
        self._issued.clear()

    def plan(self, model: TreeModel) -> List[TileDecision]:
        """Plan a pass and drop decisions already issued. Caller holds the state lock."""
        live = model.ids()
        for container_id in list(self._issued):
            if container_id not in live:
                del self._issued[container_id]

        decisions = []
        for decision in plan_auto_tile(model, self.min_width_table):
            if self._issued.get(decision.container_id) == (decision.width, decision.child_count):
                continue
            decisions.append(decision)
        return decisions

    async def run(self, connection, decisions: List[TileDecision]) -> int:
        """Send decisions to sway. Must be called without the state lock.

        Returns:
            Number of commands sway accepted
        """
        applied = 0
        for decision in decisions:
            self._issued[decision.container_id] = (decision.width, decision.child_count)
            logger.info(
                f"Auto-tiling {decision.layout.value} on {decision.container_id}: "
                f"{decision.width}px / {decision.child_count} children, "
                f"minimum window width {decision.threshold}px"
            )
            try:
                await connection.command(decision.command)
                applied += 1
            except Exception as e:
                logger.error(f"Auto-tile command {decision.command!r} failed: {e}")
        return applied


@dataclass(frozen=True)
class RelayoutWindow:
    id: int
    floating: bool


@dataclass(frozen=True)
class RelayoutPlan:
    """Snapshot of the current workspace taken under the state lock.

    Attributes:
        workspace_id: Current workspace
        workspace_layout: Layout of the workspace root
        windows: Windows to re-insert, in depth-first order
        focused_id: Window to refocus afterwards
    """

    workspace_id: int
    workspace_layout: LayoutKind
    windows: List[RelayoutWindow]
    focused_id: Optional[int]


def plan_relayout(model: TreeModel, include_floating: bool) -> Optional[RelayoutPlan]:
    """Collect the current workspace's windows for re-layout.

    Returns:
        RelayoutPlan, or None if no workspace is focused
    """
    workspace = model.current_workspace()
    if workspace is None:
        return None

    windows = []
    focused_id = None
    for window in model.windows(workspace):
        if window.focused:
            focused_id = window.id
        if window.floating and not include_floating:
            continue
        windows.append(RelayoutWindow(window.id, window.floating))
    return RelayoutPlan(workspace.id, workspace.layout, windows, focused_id)


class WorkspaceRelayout:
    """Re-inserts the current workspace's windows under a new layout."""

    def __init__(self, connection, rng: Optional[random.Random] = None, step_delay: float = RELAYOUT_STEP_DELAY):
        """Initialize re-layout service.

        Args:
            connection: SwayConnection used to issue commands
            rng: Random source for the shuffle variant
            step_delay: Pause between insertions so sway settles the tree
        """
        self.connection = connection
        self.rng = rng or random.Random()
        self.step_delay = step_delay

    async def _park(self, plan: RelayoutPlan) -> None:
        for window in plan.windows:
            await self.connection.command(
                f"[con_id={window.id}] move to workspace {SwayNames.SCRATCH_WORKSPACE}"
            )

    async def _insert(self, window: RelayoutWindow) -> None:
        if window.floating:
            await self.connection.command(f"[con_id={window.id}] floating disable")
        await asyncio.sleep(self.step_delay)
        await self.connection.command(f"[con_id={window.id}] move to workspace current")

    async def _finish(self, plan: RelayoutPlan) -> None:
        await asyncio.sleep(self.step_delay)
        if plan.focused_id is not None:
            await self.connection.command(f"[con_id={plan.focused_id}] focus")

    async def tile(self, plan: RelayoutPlan, shuffle: bool = False) -> int:
        """Re-insert windows into a horizontal split.

        With ``shuffle``, windows are inserted in random order and a random
        already placed window is focused before each insertion, which gives a
        more balanced split tree.

        Returns:
            Number of windows re-inserted
        """
        await self._park(plan)
        await self.connection.command("focus parent")
        await self.connection.command(f"layout {LayoutKind.SPLITH.value}")

        windows = list(plan.windows)
        if shuffle:
            self.rng.shuffle(windows)
        else:
            windows.reverse()

        placed: List[RelayoutWindow] = []
        for window in windows:
            await self._insert(window)
            placed.append(window)
            if shuffle:
                await asyncio.sleep(self.step_delay)
                await self.connection.command(f"[con_id={self.rng.choice(placed).id}] focus")

        await self._finish(plan)
        logger.info(f"Tiled workspace {plan.workspace_id} ({len(placed)} windows, shuffle={shuffle})")
        return len(placed)

    async def tab(self, plan: RelayoutPlan) -> int:
        """Re-insert windows into a tabbed layout."""
        await self._park(plan)
        await self.connection.command("focus parent")
        await self.connection.command(f"layout {LayoutKind.TABBED.value}")

        windows = list(reversed(plan.windows))
        for window in windows:
            await self._insert(window)

        await self._finish(plan)
        logger.info(f"Tabbed workspace {plan.workspace_id} ({len(windows)} windows)")
        return len(windows)

    async def toggle(self, plan: RelayoutPlan) -> int:
        """Shuffle-tile a tabbed workspace, tab any other."""
        if plan.workspace_layout is LayoutKind.TABBED:
            return await self.tile(plan, shuffle=True)
        return await self.tab(plan)
