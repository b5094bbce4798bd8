"""Command and reply models exchanged between swayr and swayrd.

A command is a tagged value: ``kind`` selects the action and the remaining
fields carry the arguments that kind needs. Commands are immutable and serve
exactly one request.

Example:
    >>> cmd = SwayrCommand(kind=CommandKind.NEXT_WINDOW, windows=ConsiderWindows.CURRENT_WORKSPACE)
    >>> cmd.invocation()
    'next-window current-workspace'
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ConsiderWindows(str, Enum):
    """Scope of window cycling."""

    ALL_WORKSPACES = "all-workspaces"
    CURRENT_WORKSPACE = "current-workspace"


class ConsiderFloating(str, Enum):
    """Whether re-tiling commands touch floating windows."""

    INCLUDE_FLOATING = "include-floating"
    EXCLUDE_FLOATING = "exclude-floating"


class CommandKind(str, Enum):
    """All commands the daemon understands, named like their CLI subcommands."""

    NOP = "nop"

    SWITCH_TO_URGENT_OR_LRU_WINDOW = "switch-to-urgent-or-lru-window"
    SWITCH_TO_APP_OR_URGENT_OR_LRU_WINDOW = "switch-to-app-or-urgent-or-lru-window"
    SWITCH_TO_MARK_OR_URGENT_OR_LRU_WINDOW = "switch-to-mark-or-urgent-or-lru-window"
    SWITCH_TO_MATCHING_OR_URGENT_OR_LRU_WINDOW = "switch-to-matching-or-urgent-or-lru-window"
    SWITCH_WINDOW = "switch-window"
    SWITCH_WORKSPACE = "switch-workspace"
    SWITCH_OUTPUT = "switch-output"
    SWITCH_WORKSPACE_OR_WINDOW = "switch-workspace-or-window"
    SWITCH_WORKSPACE_CONTAINER_OR_WINDOW = "switch-workspace-container-or-window"
    SWITCH_TO = "switch-to"

    QUIT_WINDOW = "quit-window"
    QUIT_WORKSPACE_OR_WINDOW = "quit-workspace-or-window"
    QUIT_WORKSPACE_CONTAINER_OR_WINDOW = "quit-workspace-container-or-window"

    NEXT_WINDOW = "next-window"
    PREV_WINDOW = "prev-window"
    NEXT_TILED_WINDOW = "next-tiled-window"
    PREV_TILED_WINDOW = "prev-tiled-window"
    NEXT_TABBED_OR_STACKED_WINDOW = "next-tabbed-or-stacked-window"
    PREV_TABBED_OR_STACKED_WINDOW = "prev-tabbed-or-stacked-window"
    NEXT_FLOATING_WINDOW = "next-floating-window"
    PREV_FLOATING_WINDOW = "prev-floating-window"
    NEXT_WINDOW_OF_SAME_LAYOUT = "next-window-of-same-layout"
    PREV_WINDOW_OF_SAME_LAYOUT = "prev-window-of-same-layout"

    MOVE_FOCUSED_TO_WORKSPACE = "move-focused-to-workspace"
    MOVE_FOCUSED_TO = "move-focused-to"
    SWAP_FOCUSED_WITH = "swap-focused-with"

    TILE_WORKSPACE = "tile-workspace"
    SHUFFLE_TILE_WORKSPACE = "shuffle-tile-workspace"
    TAB_WORKSPACE = "tab-workspace"
    TOGGLE_TAB_SHUFFLE_TILE_WORKSPACE = "toggle-tab-shuffle-tile-workspace"

    EXECUTE_SWAYMSG_COMMAND = "execute-swaymsg-command"
    EXECUTE_SWAYR_COMMAND = "execute-swayr-command"
    CONFIGURE_OUTPUTS = "configure-outputs"


CYCLE_KINDS = frozenset(
    {
        CommandKind.NEXT_WINDOW,
        CommandKind.PREV_WINDOW,
        CommandKind.NEXT_TILED_WINDOW,
        CommandKind.PREV_TILED_WINDOW,
        CommandKind.NEXT_TABBED_OR_STACKED_WINDOW,
        CommandKind.PREV_TABBED_OR_STACKED_WINDOW,
        CommandKind.NEXT_FLOATING_WINDOW,
        CommandKind.PREV_FLOATING_WINDOW,
        CommandKind.NEXT_WINDOW_OF_SAME_LAYOUT,
        CommandKind.PREV_WINDOW_OF_SAME_LAYOUT,
    }
)

RELAYOUT_KINDS = frozenset(
    {
        CommandKind.TILE_WORKSPACE,
        CommandKind.SHUFFLE_TILE_WORKSPACE,
        CommandKind.TAB_WORKSPACE,
        CommandKind.TOGGLE_TAB_SHUFFLE_TILE_WORKSPACE,
    }
)

# Required argument field per kind
_REQUIRED_ARGS = {
    CommandKind.SWITCH_TO_APP_OR_URGENT_OR_LRU_WINDOW: "name",
    CommandKind.SWITCH_TO_MARK_OR_URGENT_OR_LRU_WINDOW: "con_mark",
    CommandKind.SWITCH_TO_MATCHING_OR_URGENT_OR_LRU_WINDOW: "criteria",
    **{kind: "windows" for kind in CYCLE_KINDS},
    **{kind: "floating" for kind in RELAYOUT_KINDS},
}


class SwayrCommand(BaseModel):
    """One requested action.

    Attributes:
        kind: Which command to run
        name: App id or class for switch-to-app-or-urgent-or-lru-window
        con_mark: Mark for switch-to-mark-or-urgent-or-lru-window
        criteria: Criteria query for switch-to-matching-or-urgent-or-lru-window
        kill: quit-window also kills the window's process
        windows: Cycling scope for next/prev commands
        floating: Floating handling for re-tiling commands
    """

    model_config = ConfigDict(frozen=True)

    kind: CommandKind
    name: Optional[str] = Field(default=None, min_length=1)
    con_mark: Optional[str] = Field(default=None, min_length=1)
    criteria: Optional[str] = Field(default=None, min_length=1)
    kill: bool = False
    windows: Optional[ConsiderWindows] = None
    floating: Optional[ConsiderFloating] = None

    @model_validator(mode="after")
    def check_required_args(self) -> "SwayrCommand":
        required = _REQUIRED_ARGS.get(self.kind)
        if required is not None and getattr(self, required) is None:
            raise ValueError(f"{self.kind.value} requires '{required}'")
        if self.kill and self.kind is not CommandKind.QUIT_WINDOW:
            raise ValueError("'kill' is only valid for quit-window")
        return self

    @property
    def is_cycle(self) -> bool:
        return self.kind in CYCLE_KINDS

    def invocation(self) -> str:
        """Render the command the way it is typed on the command line."""
        parts = [self.kind.value]
        if self.kind is CommandKind.QUIT_WINDOW and self.kill:
            parts.append("--kill")
        for value in (self.name, self.con_mark, self.criteria):
            if value is not None:
                parts.append(value)
        if self.windows is not None:
            parts.append(self.windows.value)
        if self.floating is not None:
            parts.append(self.floating.value)
        return " ".join(parts)


def menu_commands() -> list[SwayrCommand]:
    """Commands offered by execute-swayr-command."""
    cmds = [
        SwayrCommand(kind=kind)
        for kind in (
            CommandKind.MOVE_FOCUSED_TO_WORKSPACE,
            CommandKind.MOVE_FOCUSED_TO,
            CommandKind.SWAP_FOCUSED_WITH,
            CommandKind.QUIT_WORKSPACE_OR_WINDOW,
            CommandKind.QUIT_WORKSPACE_CONTAINER_OR_WINDOW,
            CommandKind.SWITCH_WINDOW,
            CommandKind.SWITCH_WORKSPACE,
            CommandKind.SWITCH_OUTPUT,
            CommandKind.SWITCH_WORKSPACE_OR_WINDOW,
            CommandKind.SWITCH_WORKSPACE_CONTAINER_OR_WINDOW,
            CommandKind.SWITCH_TO,
            CommandKind.SWITCH_TO_URGENT_OR_LRU_WINDOW,
            CommandKind.CONFIGURE_OUTPUTS,
            CommandKind.EXECUTE_SWAYMSG_COMMAND,
        )
    ]
    for floating in ConsiderFloating:
        for kind in sorted(RELAYOUT_KINDS, key=lambda k: k.value):
            cmds.append(SwayrCommand(kind=kind, floating=floating))
    for kill in (False, True):
        cmds.append(SwayrCommand(kind=CommandKind.QUIT_WINDOW, kill=kill))
    for windows in ConsiderWindows:
        for kind in sorted(CYCLE_KINDS, key=lambda k: k.value):
            cmds.append(SwayrCommand(kind=kind, windows=windows))
    return cmds


class CommandReply(BaseModel):
    """Successful outcome of a dispatched command.

    Attributes:
        action: What the daemon did ("focused", "noop", "executed", ...)
        target_id: Node the action addressed, if any
        message: Human-readable detail
        data: Extra result payload
    """

    action: str
    target_id: Optional[int] = None
    message: Optional[str] = None
    data: Optional[dict[str, Any]] = None

    @property
    def is_noop(self) -> bool:
        return self.action == "noop"

    @classmethod
    def noop(cls, message: str) -> "CommandReply":
        return cls(action="noop", message=message)
