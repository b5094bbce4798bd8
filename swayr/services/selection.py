"""Ordering and selection over a tree model.

Pure functions: they read a TreeModel (under the caller's lock) and return
node ids or ordered node lists. Nothing here talks to sway.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from ..models.commands import ConsiderWindows
from ..models.tree import Node, NodeType
from ..tree_model import TreeModel


class Direction(str, Enum):
    NEXT = "next"
    PREV = "prev"


class WindowFilter(str, Enum):
    """Window subsets cycling can be restricted to."""

    ANY = "any"
    TILED = "tiled"
    TABBED_OR_STACKED = "tabbed-or-stacked"
    FLOATING = "floating"
    SAME_KIND = "same-kind"


@dataclass(frozen=True)
class MenuEntry:
    """A node offered in a menu together with its indentation depth."""

    node: Node
    depth: int = 0


def depth_first(model: TreeModel, scope: ConsiderWindows) -> List[Node]:
    """Windows in preorder, tiled children before floating ones.

    Scratchpad windows are hidden and never part of the sequence.
    """
    match scope:
        case ConsiderWindows.ALL_WORKSPACES:
            windows = model.windows()
        case ConsiderWindows.CURRENT_WORKSPACE:
            workspace = model.current_workspace()
            windows = model.windows(workspace) if workspace is not None else []
    return [w for w in windows if not model.is_scratchpad(w)]


def lru_order(model: TreeModel) -> List[int]:
    """All live window ids, most recently focused first."""
    return model.focus_history()


def _urgent_first(model: TreeModel, nodes: List[Node]) -> List[Node]:
    return sorted(nodes, key=lambda n: (not n.urgent, -model.subtree_tick(n)))


def switcher_order(model: TreeModel) -> List[Node]:
    """Windows as offered by the window switcher.

    Urgent windows first, then the rest by recency, with the focused window
    moved to the very end so it is never the first selectable entry.
    """
    by_id = {w.id: w for w in model.windows()}
    history = [by_id[i] for i in lru_order(model)]
    urgent = [w for w in history if w.urgent and not w.focused]
    rest = [w for w in history if not w.urgent and not w.focused]
    focused = [w for w in history if w.focused]
    return urgent + rest + focused


def window_kind(model: TreeModel, node: Node) -> WindowFilter:
    """Classify a window by the container it lives in."""
    if node.floating:
        return WindowFilter.FLOATING
    parent = model.parent_of(node)
    if parent is not None:
        if parent.layout.is_split:
            return WindowFilter.TILED
        if parent.layout.is_tabbed_or_stacked:
            return WindowFilter.TABBED_OR_STACKED
    return WindowFilter.ANY


def matches_filter(model: TreeModel, node: Node, window_filter: WindowFilter) -> bool:
    match window_filter:
        case WindowFilter.ANY:
            return True
        case WindowFilter.FLOATING:
            return node.floating
        case WindowFilter.TILED | WindowFilter.TABBED_OR_STACKED:
            return window_kind(model, node) is window_filter
        case WindowFilter.SAME_KIND:
            raise ValueError("SAME_KIND must be resolved against the current window first")


def resolve_filter(model: TreeModel, current: Optional[Node], window_filter: WindowFilter) -> WindowFilter:
    """Turn SAME_KIND into the concrete filter of the current window."""
    if window_filter is not WindowFilter.SAME_KIND:
        return window_filter
    if current is None or not current.is_window:
        return WindowFilter.ANY
    return window_kind(model, current)


def cycle(
    model: TreeModel,
    current_id: Optional[int],
    direction: Direction,
    scope: ConsiderWindows,
    window_filter: WindowFilter = WindowFilter.ANY,
) -> Optional[int]:
    """Next or previous window relative to ``current_id``, with wraparound.

    If the current window does not pass the filter, its position in the
    unfiltered sequence is the anchor and the nearest passing window in
    ``direction`` is returned. Without any current window, NEXT yields the
    first and PREV the last passing window.

    Returns:
        Target window id, or None if no window passes the filter
    """
    sequence = depth_first(model, scope)
    current = model.find(current_id) if current_id is not None else None
    window_filter = resolve_filter(model, current, window_filter)
    candidates = [n.id for n in sequence if matches_filter(model, n, window_filter)]
    if not candidates:
        return None

    step = 1 if direction is Direction.NEXT else -1

    if current_id in candidates:
        index = candidates.index(current_id)
        return candidates[(index + step) % len(candidates)]

    all_ids = [n.id for n in sequence]
    if current_id in all_ids:
        accepted = set(candidates)
        position = all_ids.index(current_id)
        for offset in range(1, len(all_ids)):
            candidate = all_ids[(position + step * offset) % len(all_ids)]
            if candidate in accepted:
                return candidate

    return candidates[0] if direction is Direction.NEXT else candidates[-1]


def switch_to_urgent_or_lru(model: TreeModel) -> Optional[int]:
    """Most recent urgent window other than the focused one, else the previously focused window."""
    focused = model.focused_window()
    focused_id = focused.id if focused is not None else None
    history = lru_order(model)

    for window_id in history:
        if window_id != focused_id and model.get(window_id).urgent:
            return window_id

    for window_id in history:
        if window_id != focused_id:
            return window_id
    return None


def switch_to_match_or_fallback(model: TreeModel, predicate: Callable[[Node], bool]) -> Optional[int]:
    """Most recent window other than the focused one satisfying ``predicate``.

    Falls back to switch_to_urgent_or_lru() if there is none.
    """
    focused = model.focused_window()
    for window_id in lru_order(model):
        node = model.get(window_id)
        if node is not focused and predicate(node):
            return window_id
    return switch_to_urgent_or_lru(model)


def app_predicate(name: str) -> Callable[[Node], bool]:
    """Match windows by app id, or by X11 class for Xwayland windows."""

    def predicate(node: Node) -> bool:
        return node.app_id == name or (node.app_id is None and node.window_class == name)

    return predicate


def mark_predicate(mark: str) -> Callable[[Node], bool]:
    def predicate(node: Node) -> bool:
        return mark in node.marks

    return predicate


# Menu orderings

def outputs_order(model: TreeModel) -> List[MenuEntry]:
    return [MenuEntry(o) for o in model.outputs()]


def workspaces_order(model: TreeModel) -> List[MenuEntry]:
    """Workspaces urgent first and by recency, current workspace last."""
    workspaces = _urgent_first(model, model.workspaces())
    current = model.current_workspace()
    if current is not None and current in workspaces:
        workspaces.remove(current)
        workspaces.append(current)
    return [MenuEntry(ws) for ws in workspaces]


def workspaces_and_windows(model: TreeModel) -> List[MenuEntry]:
    """Each workspace followed by its windows; the focused window goes last in its group."""
    entries = []
    for entry in workspaces_order(model):
        entries.append(MenuEntry(entry.node, 0))
        windows = _urgent_first(model, model.windows(entry.node))
        focused = [w for w in windows if w.focused]
        windows = [w for w in windows if not w.focused] + focused
        entries.extend(MenuEntry(w, 1) for w in windows)
    return entries


def _push_subtree_sorted(model: TreeModel, node: Node, depth: int, entries: List[MenuEntry]) -> None:
    entries.append(MenuEntry(node, depth))
    for child in _urgent_first(model, model.children_of(node)):
        _push_subtree_sorted(model, child, depth + 1, entries)


def workspace_containers_and_windows(model: TreeModel) -> List[MenuEntry]:
    """Tree view of workspaces, containers and windows with sorted children."""
    entries: List[MenuEntry] = []
    for entry in workspaces_order(model):
        _push_subtree_sorted(model, entry.node, 0, entries)
    return entries


def outputs_workspaces_containers_and_windows(model: TreeModel) -> List[MenuEntry]:
    """Full tree view starting at the outputs."""
    entries: List[MenuEntry] = []
    for output in _urgent_first(model, model.outputs()):
        _push_subtree_sorted(model, output, 0, entries)
    return entries


def windows_of(model: TreeModel, node: Node) -> List[Node]:
    """Windows at or below ``node``."""
    if node.node_type is NodeType.WINDOW:
        return [node]
    return model.windows(node)
