"""Unit tests for window ordering, cycling and switch target selection."""

import pytest

from swayr.models.commands import ConsiderWindows
from swayr.services import selection
from swayr.services.selection import Direction, WindowFilter
from swayr.tree_model import TreeModel

from tests.fixtures.sway_tree import output, root, window, workspace

ALL = ConsiderWindows.ALL_WORKSPACES
CURRENT = ConsiderWindows.CURRENT_WORKSPACE


class TestDepthFirst:
    def test_excludes_scratchpad(self, model):
        assert [w.id for w in selection.depth_first(model, ALL)] == [101, 102, 104, 105, 201, 202]

    def test_current_workspace_only(self, model):
        assert [w.id for w in selection.depth_first(model, CURRENT)] == [101, 102, 104, 105]


class TestCycle:
    @pytest.mark.parametrize("direction", [Direction.NEXT, Direction.PREV])
    def test_step_is_a_bijection(self, model, direction):
        ids = [w.id for w in selection.depth_first(model, ALL)]
        targets = [selection.cycle(model, i, direction, ALL) for i in ids]
        assert sorted(targets) == sorted(ids)

    def test_prev_undoes_next(self, model):
        for node_id in [w.id for w in selection.depth_first(model, ALL)]:
            nxt = selection.cycle(model, node_id, Direction.NEXT, ALL)
            assert selection.cycle(model, nxt, Direction.PREV, ALL) == node_id

    def test_wraps_around(self, model):
        assert selection.cycle(model, 202, Direction.NEXT, ALL) == 101
        assert selection.cycle(model, 101, Direction.PREV, ALL) == 202

    def test_current_workspace_scope(self, model):
        assert selection.cycle(model, 105, Direction.NEXT, CURRENT) == 101

    def test_tiled_filter_skips_tabbed_and_floating(self, model):
        assert selection.cycle(model, 102, Direction.NEXT, ALL, WindowFilter.TILED) == 201
        assert selection.cycle(model, 201, Direction.NEXT, ALL, WindowFilter.TILED) == 101

    def test_anchor_when_current_fails_filter(self, model):
        # 102 is tiled; the nearest tabbed window after it is 104, before it 105
        assert selection.cycle(model, 102, Direction.NEXT, ALL, WindowFilter.TABBED_OR_STACKED) == 104
        assert selection.cycle(model, 102, Direction.PREV, ALL, WindowFilter.TABBED_OR_STACKED) == 105

    def test_same_kind_uses_current_window(self, model):
        assert selection.cycle(model, 104, Direction.NEXT, ALL, WindowFilter.SAME_KIND) == 105
        assert selection.cycle(model, 202, Direction.NEXT, ALL, WindowFilter.SAME_KIND) == 202

    def test_no_current_window(self, model):
        assert selection.cycle(model, None, Direction.NEXT, ALL) == 101
        assert selection.cycle(model, None, Direction.PREV, ALL) == 202

    def test_no_matching_window(self):
        payload = root([output(10, "DP-1", [workspace(11, "1", [window(101, focused=True)])])])
        model = TreeModel.from_ipc(payload)
        assert selection.cycle(model, 101, Direction.NEXT, ALL, WindowFilter.FLOATING) is None


class TestWindowKind:
    def test_kinds(self, model):
        assert selection.window_kind(model, model.get(101)) is WindowFilter.TILED
        assert selection.window_kind(model, model.get(104)) is WindowFilter.TABBED_OR_STACKED
        assert selection.window_kind(model, model.get(202)) is WindowFilter.FLOATING


class TestSwitchTo:
    def test_lru_is_previously_focused(self, model):
        assert selection.switch_to_urgent_or_lru(model) == 201

    def test_urgent_wins_over_lru(self, model):
        model.get(102).urgent = True
        assert selection.switch_to_urgent_or_lru(model) == 102

    def test_focused_urgent_window_is_skipped(self, model):
        model.get(101).urgent = True
        assert selection.switch_to_urgent_or_lru(model) == 201

    def test_lru_after_focus_events(self, model):
        # A, B, C focused in that order: switching goes back to B
        for node_id in (104, 105, 102):
            model.set_focused(node_id)
            model.touch(node_id)
        assert selection.switch_to_urgent_or_lru(model) == 105

    def test_app_match(self, model):
        predicate = selection.app_predicate("foot")
        assert selection.switch_to_match_or_fallback(model, predicate) == 105

    def test_app_match_x11_class(self):
        payload = root(
            [
                output(
                    10,
                    "DP-1",
                    [workspace(11, "1", [window(101, focused=True), window(102, window_class="Gimp")])],
                )
            ]
        )
        model = TreeModel.from_ipc(payload)
        assert selection.switch_to_match_or_fallback(model, selection.app_predicate("Gimp")) == 102

    def test_mark_match(self, model):
        predicate = selection.mark_predicate("web")
        assert selection.switch_to_match_or_fallback(model, predicate) == 201

    def test_falls_back_without_match(self, model):
        predicate = selection.app_predicate("nonexistent")
        assert selection.switch_to_match_or_fallback(model, predicate) == 201

    def test_single_window_has_no_target(self):
        payload = root([output(10, "DP-1", [workspace(11, "1", [window(101, focused=True)])])])
        model = TreeModel.from_ipc(payload)
        assert selection.switch_to_urgent_or_lru(model) is None


class TestMenuOrders:
    def test_switcher_order_puts_focused_last(self, model):
        order = [w.id for w in selection.switcher_order(model)]
        assert order[0] == 201
        assert order[-1] == 101

    def test_switcher_order_urgent_first(self, model):
        model.get(105).urgent = True
        assert selection.switcher_order(model)[0].id == 105

    def test_workspaces_current_last(self, model):
        assert [e.node.name for e in selection.workspaces_order(model)] == ["2", "1"]

    def test_workspaces_and_windows(self, model):
        entries = selection.workspaces_and_windows(model)
        assert [(e.node.id, e.depth) for e in entries] == [
            (12, 0), (201, 1), (202, 1),
            (11, 0), (102, 1), (104, 1), (105, 1), (101, 1),
        ]

    def test_workspace_tree_view(self, model):
        entries = selection.workspace_containers_and_windows(model)
        ws1 = [(e.node.id, e.depth) for e in entries if e.node.id in (11, 101, 102, 103, 104, 105)]
        assert ws1 == [(11, 0), (101, 1), (102, 1), (103, 1), (104, 2), (105, 2)]

    def test_outputs_order_excludes_scratchpad(self, model):
        assert [e.node.name for e in selection.outputs_order(model)] == ["DP-1"]
