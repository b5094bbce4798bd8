"""Unit tests for the tree model index, traversal and structural mutations."""

import pytest

from swayr.errors import SyncError, UnknownNodeError
from swayr.models.tree import LayoutKind, NodeType
from swayr.tree_model import TreeModel

from tests.fixtures.sway_tree import container, output, root, standard_tree, window, workspace


class TestFromIpc:
    def test_classifies_node_types(self, model):
        assert model.get(1).node_type is NodeType.ROOT
        assert model.get(10).node_type is NodeType.OUTPUT
        assert model.get(11).node_type is NodeType.WORKSPACE
        assert model.get(103).node_type is NodeType.CONTAINER
        assert model.get(104).node_type is NodeType.WINDOW

    def test_parent_links_are_ids(self, model):
        assert model.get(104).parent_id == 103
        assert model.parent_of(model.get(103)).id == 11
        assert model.get(1).parent_id is None

    def test_floating_children_follow_tiled(self, model):
        ws = model.get(12)
        assert [n.id for n in model.children_of(ws)] == [201, 202]
        assert model.get(202).floating

    def test_layout_parsing(self, model):
        assert model.get(103).layout is LayoutKind.TABBED
        # sway's "output" layout has no split meaning
        assert model.get(10).layout is LayoutKind.NONE

    def test_x11_window_uses_class(self):
        payload = root([output(10, "DP-1", [workspace(11, "1", [window(101, window_class="Gimp")])])])
        node = TreeModel.from_ipc(payload).get(101)
        assert node.app_id is None
        assert node.app_name == "Gimp"

    def test_duplicate_ids_rejected(self):
        payload = root([output(10, "DP-1", [workspace(11, "1", [window(101), window(101)])])])
        with pytest.raises(SyncError):
            TreeModel.from_ipc(payload)

    def test_consistent_after_build(self, model):
        assert model.check_consistency() == []


class TestQueries:
    def test_windows_in_depth_first_order(self, model):
        assert [w.id for w in model.windows()] == [90, 101, 102, 104, 105, 201, 202]

    def test_scratchpad_detection(self, model):
        assert model.is_scratchpad(model.get(90))
        assert not model.is_scratchpad(model.get(101))
        assert [o.name for o in model.outputs()] == ["DP-1"]
        assert [ws.name for ws in model.workspaces()] == ["1", "2"]

    def test_focused_and_current_workspace(self, model):
        assert model.focused_window().id == 101
        assert model.current_workspace().id == 11

    def test_workspace_and_output_of(self, model):
        node = model.get(105)
        assert model.workspace_of(node).name == "1"
        assert model.output_of(node).name == "DP-1"

    def test_get_unknown_raises(self, model):
        with pytest.raises(UnknownNodeError) as exc_info:
            model.get(999)
        assert exc_info.value.node_id == 999


class TestFocusHistory:
    def test_most_recent_first_then_unfocused_in_tree_order(self, model):
        assert model.focus_history() == [101, 201, 102, 104, 90, 105, 202]

    def test_touch_moves_window_to_front(self, model):
        model.touch(105)
        assert model.focus_history()[0] == 105
        assert model.get(105).focus_tick == model.clock

    def test_clock_values_are_unique(self, model):
        ticks = [w.focus_tick for w in model.windows() if w.focus_tick]
        assert len(ticks) == len(set(ticks))

    def test_subtree_tick(self, model):
        model.touch(105)
        assert model.subtree_tick(model.get(103)) == model.get(105).focus_tick

    def test_adopt_focus_ticks_keeps_recency(self, model):
        fresh = TreeModel.from_ipc(standard_tree())
        fresh.adopt_focus_ticks(model)
        assert fresh.focus_history() == model.focus_history()
        assert fresh.clock == model.clock


class TestMutations:
    def test_insert_from_snapshot_keeps_position(self, model):
        payload = standard_tree()
        payload["nodes"][1]["nodes"][0]["nodes"].insert(1, window(106, "kitty"))
        snapshot = TreeModel.from_ipc(payload)

        model.insert_from(snapshot, 106)

        assert model.get(11).children == [101, 106, 102, 103]
        assert model.get(106).focus_tick == 0
        assert model.check_consistency() == []

    def test_insert_unknown_parent_raises(self, model):
        payload = root([output(10, "DP-1", [workspace(13, "3", [window(301)])])])
        snapshot = TreeModel.from_ipc(payload)
        with pytest.raises(UnknownNodeError):
            model.insert_from(snapshot, 301)
        assert 301 not in model

    def test_move_between_workspaces(self, model):
        payload = standard_tree()
        ws1, ws2 = payload["nodes"][1]["nodes"]
        moved = ws1["nodes"].pop(1)
        ws2["nodes"].append(moved)
        snapshot = TreeModel.from_ipc(payload)

        model.move_from(snapshot, 102)

        assert model.get(102).parent_id == 12
        assert model.get(12).children == [201, 102]
        assert 102 not in model.get(11).children
        assert model.check_consistency() == []

    def test_remove_drops_subtree(self, model):
        removed = model.remove(103)
        assert sorted(removed) == [103, 104, 105]
        assert 104 not in model
        assert model.get(11).children == [101, 102]
        assert model.check_consistency() == []

    def test_remove_last_child_prunes_container(self, model):
        assert model.remove(104) == [104]
        assert 103 in model

        assert model.remove(105) == [105, 103]
        assert 103 not in model
        assert model.get(11).children == [101, 102]
        assert model.check_consistency() == []

    def test_nested_empty_containers_pruned_up_to_workspace(self):
        payload = root(
            [
                output(
                    10,
                    "DP-1",
                    [workspace(11, "1", [window(101), container(20, "splitv", [container(21, "tabbed", [window(22)])])])],
                )
            ]
        )
        model = TreeModel.from_ipc(payload)

        assert model.remove(22) == [22, 21, 20]
        assert model.get(11).children == [101]
        assert model.check_consistency() == []

    def test_last_window_leaves_workspace_in_place(self, model):
        model.remove(201)
        model.remove(202)
        assert 12 in model
        assert model.get(12).children == []

    def test_move_last_child_out_prunes_container(self, model):
        payload = standard_tree()
        ws1, ws2 = payload["nodes"][1]["nodes"]
        tabbed = ws1["nodes"].pop(2)
        ws2["nodes"].extend(tabbed["nodes"])
        snapshot = TreeModel.from_ipc(payload)

        model.move_from(snapshot, 104)
        assert 103 in model
        model.move_from(snapshot, 105)

        assert 103 not in model
        assert model.get(12).children == [201, 104, 105]
        assert model.check_consistency() == []

    def test_refresh_from_copies_geometry(self, model):
        payload = standard_tree()
        payload["nodes"][1]["nodes"][0]["nodes"][2]["layout"] = "splitv"
        payload["nodes"][1]["nodes"][0]["nodes"][2]["rect"]["width"] = 500
        model.refresh_from(TreeModel.from_ipc(payload))
        assert model.get(103).layout is LayoutKind.SPLITV
        assert model.get(103).rect.width == 500

    def test_nested_container_in_snapshot(self):
        payload = root(
            [output(10, "DP-1", [workspace(11, "1", [container(20, "splitv", [window(21), window(22)])])])]
        )
        model = TreeModel.from_ipc(payload)
        assert [w.id for w in model.windows(model.get(11))] == [21, 22]
