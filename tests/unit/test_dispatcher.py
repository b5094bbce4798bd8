"""Unit tests for command dispatch against a mock sway connection."""

from unittest.mock import patch

import psutil
import pytest

from swayr.constants import SwayNames
from swayr.dispatcher import CommandDispatcher
from swayr.errors import CompositorRejectedError, CriteriaError
from swayr.models.commands import CommandKind, ConsiderFloating, ConsiderWindows, SwayrCommand
from swayr.services.focus_tracker import FocusTracker
from swayr.services.layout_engine import WorkspaceRelayout
from swayr.state import StateManager
from swayr.tree_model import TreeModel

from tests.fixtures.mock_sway_connection import FakeMenu
from tests.fixtures.sway_tree import output, root, window, workspace


@pytest.fixture
def make_dispatcher(state, sway, config, icons):
    def make(*choices, focus_tracker=None):
        return CommandDispatcher(
            state,
            sway,
            lambda: config,
            focus_tracker=focus_tracker,
            menu=FakeMenu(*choices),
            relayout=WorkspaceRelayout(sway, step_delay=0),
            icons=icons,
        )

    return make


def cmd(kind, **kwargs):
    return SwayrCommand(kind=kind, **kwargs)


class TestDirectSwitching:
    @pytest.mark.asyncio
    async def test_nop(self, make_dispatcher, sway):
        reply = await make_dispatcher().dispatch(cmd(CommandKind.NOP))
        assert reply.action == "nop"
        assert sway.commands == []

    @pytest.mark.asyncio
    async def test_urgent_or_lru(self, make_dispatcher, sway):
        reply = await make_dispatcher().dispatch(cmd(CommandKind.SWITCH_TO_URGENT_OR_LRU_WINDOW))
        assert reply.action == "focused"
        assert reply.target_id == 201
        assert sway.commands == ["[con_id=201] focus"]

    @pytest.mark.asyncio
    async def test_app(self, make_dispatcher, sway):
        await make_dispatcher().dispatch(cmd(CommandKind.SWITCH_TO_APP_OR_URGENT_OR_LRU_WINDOW, name="emacs"))
        assert sway.commands == ["[con_id=104] focus"]

    @pytest.mark.asyncio
    async def test_mark(self, make_dispatcher, sway, state):
        state.model.set_focused(201)
        await make_dispatcher().dispatch(cmd(CommandKind.SWITCH_TO_MARK_OR_URGENT_OR_LRU_WINDOW, con_mark="web"))
        # The marked window is focused already, so fall back to LRU
        assert sway.commands == ["[con_id=101] focus"]

    @pytest.mark.asyncio
    async def test_matching(self, make_dispatcher, sway):
        await make_dispatcher().dispatch(
            cmd(CommandKind.SWITCH_TO_MATCHING_OR_URGENT_OR_LRU_WINDOW, criteria='[app_id="mpv" floating]')
        )
        assert sway.commands == ["[con_id=202] focus"]

    @pytest.mark.asyncio
    async def test_malformed_criteria_raise(self, make_dispatcher):
        with pytest.raises(CriteriaError):
            await make_dispatcher().dispatch(cmd(CommandKind.SWITCH_TO_MATCHING_OR_URGENT_OR_LRU_WINDOW, criteria="[app_id"))

    @pytest.mark.asyncio
    async def test_no_target_is_noop(self, sway, config, icons):
        payload = root([output(10, "DP-1", [workspace(11, "1", [window(101, focused=True)])])])
        dispatcher = CommandDispatcher(StateManager(TreeModel.from_ipc(payload)), sway, lambda: config, icons=icons)

        reply = await dispatcher.dispatch(cmd(CommandKind.SWITCH_TO_URGENT_OR_LRU_WINDOW))

        assert reply.is_noop
        assert sway.commands == []

    @pytest.mark.asyncio
    async def test_compositor_rejection_propagates(self, make_dispatcher, sway):
        sway.reject["[con_id=201] focus"] = "No matching node"
        with pytest.raises(CompositorRejectedError):
            await make_dispatcher().dispatch(cmd(CommandKind.SWITCH_TO_URGENT_OR_LRU_WINDOW))


class TestCycling:
    @pytest.mark.asyncio
    async def test_next_window(self, make_dispatcher, sway):
        await make_dispatcher().dispatch(cmd(CommandKind.NEXT_WINDOW, windows=ConsiderWindows.ALL_WORKSPACES))
        assert sway.commands == ["[con_id=102] focus"]

    @pytest.mark.asyncio
    async def test_prev_window_current_workspace(self, make_dispatcher, sway):
        await make_dispatcher().dispatch(cmd(CommandKind.PREV_WINDOW, windows=ConsiderWindows.CURRENT_WORKSPACE))
        assert sway.commands == ["[con_id=105] focus"]

    @pytest.mark.asyncio
    async def test_same_kind_without_other_window_is_noop(self, make_dispatcher, sway, state):
        state.model.set_focused(202)
        reply = await make_dispatcher().dispatch(
            cmd(CommandKind.NEXT_WINDOW_OF_SAME_LAYOUT, windows=ConsiderWindows.ALL_WORKSPACES)
        )
        assert reply.is_noop
        assert sway.commands == []

    @pytest.mark.asyncio
    async def test_sequence_inhibits_and_other_command_activates(self, state, sway, config, icons):
        tracker = FocusTracker(state, seq_inhibit=True)
        dispatcher = CommandDispatcher(state, sway, lambda: config, focus_tracker=tracker, icons=icons)

        await dispatcher.dispatch(cmd(CommandKind.NEXT_WINDOW, windows=ConsiderWindows.ALL_WORKSPACES))
        assert tracker.inhibited

        await dispatcher.dispatch(cmd(CommandKind.NOP))
        assert not tracker.inhibited


class TestMenus:
    @pytest.mark.asyncio
    async def test_switch_window(self, make_dispatcher, sway):
        dispatcher = make_dispatcher("(102)")
        reply = await dispatcher.dispatch(cmd(CommandKind.SWITCH_WINDOW))
        assert reply.target_id == 102
        assert sway.commands == ["[con_id=102] focus"]
        assert dispatcher.menu.prompts == ["Select window"]

    @pytest.mark.asyncio
    async def test_switch_window_labels_in_switcher_order(self, make_dispatcher):
        dispatcher = make_dispatcher(None)
        await dispatcher.dispatch(cmd(CommandKind.SWITCH_WINDOW))
        labels = dispatcher.menu.shown[0]
        assert "(201)" in labels[0]
        assert "(101)" in labels[-1]

    @pytest.mark.asyncio
    async def test_cancelled_menu_is_noop(self, make_dispatcher, sway):
        reply = await make_dispatcher(None).dispatch(cmd(CommandKind.SWITCH_WINDOW))
        assert reply.is_noop
        assert sway.commands == []

    @pytest.mark.asyncio
    async def test_switch_workspace(self, make_dispatcher, sway):
        await make_dispatcher("(12)").dispatch(cmd(CommandKind.SWITCH_WORKSPACE))
        assert sway.commands == ["workspace 2"]

    @pytest.mark.asyncio
    async def test_switch_to_output(self, make_dispatcher, sway):
        await make_dispatcher("(10)").dispatch(cmd(CommandKind.SWITCH_TO))
        assert sway.commands == ["focus output DP-1"]

    @pytest.mark.asyncio
    async def test_switch_to_container(self, make_dispatcher, sway):
        await make_dispatcher("(103)").dispatch(cmd(CommandKind.SWITCH_WORKSPACE_CONTAINER_OR_WINDOW))
        assert sway.commands == ["[con_id=103] focus"]

    @pytest.mark.asyncio
    async def test_typed_workspace(self, make_dispatcher, sway):
        reply = await make_dispatcher("typed:w:3:mail").dispatch(cmd(CommandKind.SWITCH_WINDOW))
        assert reply.action == "workspace"
        assert sway.commands == ["workspace number 3:mail"]

    @pytest.mark.asyncio
    async def test_typed_sway_command(self, make_dispatcher, sway):
        reply = await make_dispatcher("typed:s:reload").dispatch(cmd(CommandKind.SWITCH_WORKSPACE))
        assert reply.action == "executed"
        assert sway.commands == ["reload"]


class TestQuit:
    @pytest.mark.asyncio
    async def test_quit_window(self, make_dispatcher, sway):
        with patch("swayr.dispatcher.psutil.Process") as process:
            reply = await make_dispatcher("(102)").dispatch(cmd(CommandKind.QUIT_WINDOW))
        assert sway.commands == ["[con_id=102] kill"]
        process.assert_not_called()
        assert reply.data["killed"] is False

    @pytest.mark.asyncio
    async def test_quit_window_kill(self, make_dispatcher, sway):
        with patch("swayr.dispatcher.psutil.Process") as process:
            reply = await make_dispatcher("(102)").dispatch(cmd(CommandKind.QUIT_WINDOW, kill=True))
        assert sway.commands == ["[con_id=102] kill"]
        process.assert_called_once_with(1020)
        process.return_value.kill.assert_called_once_with()
        assert reply.data == {"windows": [102], "pid": 1020, "killed": True}

    @pytest.mark.asyncio
    async def test_kill_of_vanished_process(self, make_dispatcher):
        with patch("swayr.dispatcher.psutil.Process", side_effect=psutil.NoSuchProcess(1020)):
            reply = await make_dispatcher("(102)").dispatch(cmd(CommandKind.QUIT_WINDOW, kill=True))
        assert reply.data["killed"] is False

    @pytest.mark.asyncio
    async def test_quit_workspace_kills_all_windows(self, make_dispatcher, sway):
        reply = await make_dispatcher("(12)").dispatch(cmd(CommandKind.QUIT_WORKSPACE_OR_WINDOW))
        assert sorted(sway.commands) == ["[con_id=201] kill", "[con_id=202] kill"]
        assert sorted(reply.data["windows"]) == [201, 202]

    @pytest.mark.asyncio
    async def test_quit_container(self, make_dispatcher, sway):
        await make_dispatcher("(103)").dispatch(cmd(CommandKind.QUIT_WORKSPACE_CONTAINER_OR_WINDOW))
        assert sway.commands == ["[con_id=104] kill", "[con_id=105] kill"]


class TestMoveAndSwap:
    @pytest.mark.asyncio
    async def test_move_to_workspace(self, make_dispatcher, sway):
        await make_dispatcher("(12)").dispatch(cmd(CommandKind.MOVE_FOCUSED_TO_WORKSPACE))
        assert sway.commands == ["move container to workspace 2"]

    @pytest.mark.asyncio
    async def test_move_to_new_workspace(self, make_dispatcher, sway):
        await make_dispatcher("typed:w:mail").dispatch(cmd(CommandKind.MOVE_FOCUSED_TO_WORKSPACE))
        assert sway.commands == ["move container to workspace mail"]

    @pytest.mark.asyncio
    async def test_move_with_sway_command_input_is_noop(self, make_dispatcher, sway):
        reply = await make_dispatcher("typed:s:reload").dispatch(cmd(CommandKind.MOVE_FOCUSED_TO_WORKSPACE))
        assert reply.is_noop
        assert sway.commands == []

    @pytest.mark.asyncio
    async def test_move_to_container_uses_mark(self, make_dispatcher, sway):
        mark = SwayNames.MOVE_TARGET_MARK
        reply = await make_dispatcher("(103)").dispatch(cmd(CommandKind.MOVE_FOCUSED_TO))
        assert reply.target_id == 103
        assert sway.commands == [
            f"[con_id=103] mark --add {mark}",
            f"move container to mark {mark}",
            f"unmark {mark}",
        ]

    @pytest.mark.asyncio
    async def test_mark_removed_when_move_rejected(self, make_dispatcher, sway):
        mark = SwayNames.MOVE_TARGET_MARK
        sway.reject[f"move container to mark {mark}"] = "Cannot move"
        with pytest.raises(CompositorRejectedError):
            await make_dispatcher("(103)").dispatch(cmd(CommandKind.MOVE_FOCUSED_TO))
        assert sway.commands[-1] == f"unmark {mark}"

    @pytest.mark.asyncio
    async def test_move_to_output(self, make_dispatcher, sway):
        await make_dispatcher("(10)").dispatch(cmd(CommandKind.MOVE_FOCUSED_TO))
        assert sway.commands == ["move container to output DP-1"]

    @pytest.mark.asyncio
    async def test_swap(self, make_dispatcher, sway):
        reply = await make_dispatcher("(201)").dispatch(cmd(CommandKind.SWAP_FOCUSED_WITH))
        assert reply.action == "swapped"
        assert sway.commands == ["swap container with con_id 201"]


class TestRelayoutCommands:
    @pytest.mark.asyncio
    async def test_tile_workspace(self, make_dispatcher, sway):
        reply = await make_dispatcher().dispatch(
            cmd(CommandKind.TILE_WORKSPACE, floating=ConsiderFloating.EXCLUDE_FLOATING)
        )
        assert reply.action == "relayout"
        assert reply.target_id == 11
        assert reply.data == {"windows": 4}
        assert "layout splith" in sway.commands

    @pytest.mark.asyncio
    async def test_tab_workspace(self, make_dispatcher, sway):
        await make_dispatcher().dispatch(cmd(CommandKind.TAB_WORKSPACE, floating=ConsiderFloating.EXCLUDE_FLOATING))
        assert "layout tabbed" in sway.commands


class TestCommandMenus:
    @pytest.mark.asyncio
    async def test_execute_swaymsg_command(self, make_dispatcher, sway):
        reply = await make_dispatcher("reload").dispatch(cmd(CommandKind.EXECUTE_SWAYMSG_COMMAND))
        assert reply.message == "reload"
        assert sway.commands == ["reload"]

    @pytest.mark.asyncio
    async def test_execute_typed_swaymsg_command(self, make_dispatcher, sway):
        await make_dispatcher("typed:s:exec foot").dispatch(cmd(CommandKind.EXECUTE_SWAYMSG_COMMAND))
        assert sway.commands == ["exec foot"]

    @pytest.mark.asyncio
    async def test_execute_swayr_command(self, make_dispatcher, sway):
        dispatcher = make_dispatcher("switch-to-urgent-or-lru-window")
        reply = await dispatcher.dispatch(cmd(CommandKind.EXECUTE_SWAYR_COMMAND))
        assert reply.target_id == 201
        assert sway.commands == ["[con_id=201] focus"]
        assert "execute-swayr-command" not in dispatcher.menu.shown[0]

    @pytest.mark.asyncio
    async def test_configure_outputs_until_cancel(self, make_dispatcher, sway):
        dispatcher = make_dispatcher("output DP-1 toggle", "output DP-1 dpms off")
        reply = await dispatcher.dispatch(cmd(CommandKind.CONFIGURE_OUTPUTS))
        assert sway.commands == ["output DP-1 toggle", "output DP-1 dpms off"]
        assert reply.data == {"commands": sway.commands}
        assert len(dispatcher.menu.prompts) == 3

    @pytest.mark.asyncio
    async def test_configure_outputs_cancelled_at_once(self, make_dispatcher, sway):
        dispatcher = make_dispatcher(None)
        reply = await dispatcher.dispatch(cmd(CommandKind.CONFIGURE_OUTPUTS))
        assert reply.is_noop
        assert sway.commands == []
        assert "output DP-1 mode 1920x1080" in dispatcher.menu.shown[0]
