"""Command dispatcher.

Every command runs in two stages: first the tree model is read under the
state lock to compute targets and menu labels, then the lock is released and
the menu program and sway are driven. The lock is never held while waiting
for sway, because sway's replies are only processed after the event queue
drains.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import psutil

from .constants import SwayNames
from .errors import MenuCancelledError, NoTargetError
from .models.commands import (
    CommandKind,
    CommandReply,
    ConsiderFloating,
    SwayrCommand,
    menu_commands,
)
from .models.config import SwayrConfig
from .models.tree import Node, NodeType
from .services import selection
from .services.app_icons import AppIconResolver
from .services.criteria import compile_criteria
from .services.focus_tracker import FocusTracker
from .services.formatter import DisplayFormatter
from .services.layout_engine import WorkspaceRelayout, plan_relayout
from .services.menu import (
    MenuRunner,
    RawCommand,
    WorkspaceTarget,
    parse_non_matching_input,
    quote_workspace_name,
)
from .services.selection import Direction, MenuEntry, WindowFilter
from .services.sway_commands import output_commands, swaymsg_commands
from .tree_model import TreeModel

logger = logging.getLogger(__name__)

CYCLES: Dict[CommandKind, Tuple[Direction, WindowFilter]] = {
    CommandKind.NEXT_WINDOW: (Direction.NEXT, WindowFilter.ANY),
    CommandKind.PREV_WINDOW: (Direction.PREV, WindowFilter.ANY),
    CommandKind.NEXT_TILED_WINDOW: (Direction.NEXT, WindowFilter.TILED),
    CommandKind.PREV_TILED_WINDOW: (Direction.PREV, WindowFilter.TILED),
    CommandKind.NEXT_TABBED_OR_STACKED_WINDOW: (Direction.NEXT, WindowFilter.TABBED_OR_STACKED),
    CommandKind.PREV_TABBED_OR_STACKED_WINDOW: (Direction.PREV, WindowFilter.TABBED_OR_STACKED),
    CommandKind.NEXT_FLOATING_WINDOW: (Direction.NEXT, WindowFilter.FLOATING),
    CommandKind.PREV_FLOATING_WINDOW: (Direction.PREV, WindowFilter.FLOATING),
    CommandKind.NEXT_WINDOW_OF_SAME_LAYOUT: (Direction.NEXT, WindowFilter.SAME_KIND),
    CommandKind.PREV_WINDOW_OF_SAME_LAYOUT: (Direction.PREV, WindowFilter.SAME_KIND),
}

# Menu-backed switch commands: prompt and candidate ordering
SWITCH_MENUS: Dict[CommandKind, Tuple[str, Callable[[TreeModel], List[MenuEntry]]]] = {
    CommandKind.SWITCH_WINDOW: (
        "Select window",
        lambda m: [MenuEntry(w) for w in selection.switcher_order(m)],
    ),
    CommandKind.SWITCH_WORKSPACE: ("Select workspace", selection.workspaces_order),
    CommandKind.SWITCH_OUTPUT: ("Select output", selection.outputs_order),
    CommandKind.SWITCH_WORKSPACE_OR_WINDOW: (
        "Select workspace or window",
        selection.workspaces_and_windows,
    ),
    CommandKind.SWITCH_WORKSPACE_CONTAINER_OR_WINDOW: (
        "Select workspace, container or window",
        selection.workspace_containers_and_windows,
    ),
    CommandKind.SWITCH_TO: (
        "Select output, workspace, container or window",
        selection.outputs_workspaces_containers_and_windows,
    ),
}

QUIT_MENUS: Dict[CommandKind, Tuple[str, Callable[[TreeModel], List[MenuEntry]]]] = {
    CommandKind.QUIT_WINDOW: (
        "Quit window",
        lambda m: [MenuEntry(w) for w in selection.switcher_order(m)],
    ),
    CommandKind.QUIT_WORKSPACE_OR_WINDOW: (
        "Quit workspace or window",
        selection.workspaces_and_windows,
    ),
    CommandKind.QUIT_WORKSPACE_CONTAINER_OR_WINDOW: (
        "Quit workspace, container or window",
        selection.workspace_containers_and_windows,
    ),
}


@dataclass(frozen=True)
class Candidate:
    """A menu entry detached from the tree model.

    Captured under the lock so the menu can run without it.
    """

    id: int
    node_type: NodeType
    name: str
    pid: Optional[int]
    window_ids: Tuple[int, ...]
    label: str


def focus_command(node_id: int) -> str:
    return f"[con_id={node_id}] focus"


def kill_command(node_id: int) -> str:
    return f"[con_id={node_id}] kill"


def kill_process(pid: Optional[int]) -> bool:
    """Forcefully terminate a window's process.

    Returns:
        True if the process was signalled
    """
    if pid is None:
        logger.error("Cannot kill window with no pid")
        return False
    try:
        psutil.Process(pid).kill()
    except psutil.NoSuchProcess:
        logger.warning(f"Process {pid} already gone")
        return False
    except psutil.AccessDenied as e:
        logger.error(f"Not allowed to kill process {pid}: {e}")
        return False
    logger.info(f"Killed process {pid}")
    return True


class CommandDispatcher:
    """Maps SwayrCommands to tree model reads and sway requests."""

    def __init__(
        self,
        state_manager,
        connection,
        get_config: Callable[[], SwayrConfig],
        focus_tracker: Optional[FocusTracker] = None,
        menu: Optional[MenuRunner] = None,
        relayout: Optional[WorkspaceRelayout] = None,
        icons: Optional[AppIconResolver] = None,
    ):
        """Initialize command dispatcher.

        Args:
            state_manager: StateManager holding the tree model and lock
            connection: SwayConnection used for sway commands
            get_config: Returns the active configuration
            focus_tracker: FocusTracker for prev/next sequence handling
            menu: Menu runner (default: built from the active menu config)
            relayout: Re-layout service (default: built on the connection)
            icons: App icon resolver shared across menu invocations
        """
        self.state_manager = state_manager
        self.connection = connection
        self.get_config = get_config
        self.focus_tracker = focus_tracker
        self._menu = menu
        self.relayout = relayout or WorkspaceRelayout(connection)
        self.icons = icons
        self._auto_nop_task: Optional[asyncio.Task] = None

    @property
    def config(self) -> SwayrConfig:
        return self.get_config()

    @property
    def menu(self) -> MenuRunner:
        return self._menu or MenuRunner(self.config.menu)

    def _formatter(self) -> DisplayFormatter:
        if self.icons is None:
            self.icons = AppIconResolver.from_config(self.config.format)
        return DisplayFormatter(self.config.format, self.icons)

    async def dispatch(self, cmd: SwayrCommand) -> CommandReply:
        """Execute one command.

        NoTarget and MenuCancelled outcomes are successful no-op replies.

        Raises:
            CompositorRejectedError: If sway refuses a command
            CriteriaError: If a criteria query is malformed
        """
        logger.info(f"Dispatching {cmd.invocation()}")
        await self._track_sequence(cmd)
        try:
            return await self._dispatch(cmd)
        except (NoTargetError, MenuCancelledError) as e:
            logger.debug(f"{cmd.kind.value}: {e.message}")
            return CommandReply.noop(e.message)

    async def _dispatch(self, cmd: SwayrCommand) -> CommandReply:
        kind = cmd.kind

        if kind is CommandKind.NOP:
            return CommandReply(action="nop")
        if kind in CYCLES:
            return await self._cycle(cmd)
        if kind in SWITCH_MENUS:
            return await self._switch_menu(kind)
        if kind in QUIT_MENUS:
            return await self._quit_menu(kind, cmd.kill)

        match kind:
            case CommandKind.SWITCH_TO_URGENT_OR_LRU_WINDOW:
                return await self._switch_to(selection.switch_to_urgent_or_lru)
            case CommandKind.SWITCH_TO_APP_OR_URGENT_OR_LRU_WINDOW:
                predicate = selection.app_predicate(cmd.name)
                return await self._switch_to(lambda m: selection.switch_to_match_or_fallback(m, predicate))
            case CommandKind.SWITCH_TO_MARK_OR_URGENT_OR_LRU_WINDOW:
                predicate = selection.mark_predicate(cmd.con_mark)
                return await self._switch_to(lambda m: selection.switch_to_match_or_fallback(m, predicate))
            case CommandKind.SWITCH_TO_MATCHING_OR_URGENT_OR_LRU_WINDOW:
                return await self._switch_to(
                    lambda m: selection.switch_to_match_or_fallback(m, compile_criteria(cmd.criteria, m))
                )
            case CommandKind.MOVE_FOCUSED_TO_WORKSPACE:
                return await self._move_focused_to("Move focused container to workspace", selection.workspaces_order)
            case CommandKind.MOVE_FOCUSED_TO:
                return await self._move_focused_to(
                    "Move focused container to workspace or container",
                    selection.outputs_workspaces_containers_and_windows,
                )
            case CommandKind.SWAP_FOCUSED_WITH:
                return await self._swap_focused_with()
            case (
                CommandKind.TILE_WORKSPACE
                | CommandKind.SHUFFLE_TILE_WORKSPACE
                | CommandKind.TAB_WORKSPACE
                | CommandKind.TOGGLE_TAB_SHUFFLE_TILE_WORKSPACE
            ):
                return await self._relayout(kind, cmd.floating)
            case CommandKind.EXECUTE_SWAYMSG_COMMAND:
                return await self._execute_swaymsg_command()
            case CommandKind.EXECUTE_SWAYR_COMMAND:
                return await self._execute_swayr_command()
            case CommandKind.CONFIGURE_OUTPUTS:
                return await self._configure_outputs()

        raise NoTargetError(f"Unhandled command {kind.value}")

    # Prev/next sequences

    async def _track_sequence(self, cmd: SwayrCommand) -> None:
        if self.focus_tracker is None:
            return
        if cmd.is_cycle:
            self.focus_tracker.inhibit()
            self._schedule_auto_nop()
            return

        self._cancel_auto_nop()
        if self.focus_tracker.inhibited:
            async with self.state_manager.lock:
                self.focus_tracker.activate(self.state_manager.model)

    def _schedule_auto_nop(self) -> None:
        self._cancel_auto_nop()
        delay = self.config.misc.auto_nop_delay
        if delay is None:
            return
        self._auto_nop_task = asyncio.get_running_loop().create_task(self._auto_nop(delay / 1000))

    def _cancel_auto_nop(self) -> None:
        task = self._auto_nop_task
        self._auto_nop_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _auto_nop(self, delay: float) -> None:
        await asyncio.sleep(delay)
        logger.debug("Ending prev/next sequence after inactivity")
        await self.dispatch(SwayrCommand(kind=CommandKind.NOP))

    async def stop(self) -> None:
        self._cancel_auto_nop()

    # Direct switching

    async def _focus(self, node_id: int) -> CommandReply:
        await self.connection.command(focus_command(node_id))
        return CommandReply(action="focused", target_id=node_id)

    async def _switch_to(self, select: Callable[[TreeModel], Optional[int]]) -> CommandReply:
        async with self.state_manager.lock:
            target = select(self.state_manager.model)
        if target is None:
            raise NoTargetError("No window to switch to")
        return await self._focus(target)

    async def _cycle(self, cmd: SwayrCommand) -> CommandReply:
        direction, window_filter = CYCLES[cmd.kind]
        async with self.state_manager.lock:
            model = self.state_manager.model
            focused = model.focused_window()
            current_id = focused.id if focused is not None else None
            target = selection.cycle(model, current_id, direction, cmd.windows, window_filter)
        if target is None or target == current_id:
            raise NoTargetError(f"No other window for {cmd.kind.value}")
        return await self._focus(target)

    # Menus

    async def _candidates(self, order: Callable[[TreeModel], List[MenuEntry]]) -> List[Candidate]:
        formatter = self._formatter()
        async with self.state_manager.lock:
            model = self.state_manager.model
            candidates = []
            for entry in order(model):
                node = entry.node
                candidates.append(
                    Candidate(
                        id=node.id,
                        node_type=node.node_type,
                        name=node.name or "",
                        pid=node.pid,
                        window_ids=tuple(w.id for w in selection.windows_of(model, node)),
                        label=formatter.format_entry(model, entry),
                    )
                )
            return candidates

    async def _choose(
        self, prompt: str, candidates: List[Candidate]
    ) -> Tuple[Optional[Candidate], Optional[str]]:
        choice = await self.menu.select(prompt, [c.label for c in candidates])
        if choice.matched:
            return candidates[choice.index], None
        return None, choice.text

    async def _handle_non_matching_input(self, text: str) -> CommandReply:
        parsed = parse_non_matching_input(text)
        if parsed is None:
            raise MenuCancelledError("Empty input")
        if isinstance(parsed, RawCommand):
            await self.connection.command(parsed.command)
            return CommandReply(action="executed", message=parsed.command)
        await self.connection.command(parsed.switch_command())
        return CommandReply(action="workspace", message=parsed.full_name)

    async def _focus_candidate(self, candidate: Candidate) -> CommandReply:
        match candidate.node_type:
            case NodeType.OUTPUT:
                await self.connection.command(f"focus output {candidate.name}")
                return CommandReply(action="focused", target_id=candidate.id, message=candidate.name)
            case NodeType.WORKSPACE:
                await self.connection.command(f"workspace {quote_workspace_name(candidate.name)}")
                return CommandReply(action="focused", target_id=candidate.id, message=candidate.name)
            case NodeType.CONTAINER | NodeType.WINDOW:
                return await self._focus(candidate.id)
        raise NoTargetError(f"Cannot focus {candidate.node_type.value}")

    async def _switch_menu(self, kind: CommandKind) -> CommandReply:
        prompt, order = SWITCH_MENUS[kind]
        candidates = await self._candidates(order)
        chosen, text = await self._choose(prompt, candidates)
        if chosen is None:
            return await self._handle_non_matching_input(text)
        return await self._focus_candidate(chosen)

    async def _quit_menu(self, kind: CommandKind, kill: bool) -> CommandReply:
        prompt, order = QUIT_MENUS[kind]
        candidates = await self._candidates(order)
        chosen, _text = await self._choose(prompt, candidates)
        if chosen is None:
            raise NoTargetError("Input matched no window")

        if chosen.node_type is NodeType.WINDOW:
            await self.connection.command(kill_command(chosen.id))
            killed = kill_process(chosen.pid) if kill else False
            return CommandReply(
                action="quit",
                target_id=chosen.id,
                data={"windows": [chosen.id], "pid": chosen.pid, "killed": killed},
            )

        for window_id in chosen.window_ids:
            await self.connection.command(kill_command(window_id))
        return CommandReply(action="quit", target_id=chosen.id, data={"windows": list(chosen.window_ids)})

    async def _move_to_workspace(self, target: WorkspaceTarget) -> CommandReply:
        await self.connection.command(target.move_command())
        return CommandReply(action="moved", message=target.full_name)

    async def _move_to_container(self, node_id: int) -> CommandReply:
        mark = SwayNames.MOVE_TARGET_MARK
        await self.connection.command(f"[con_id={node_id}] mark --add {mark}")
        try:
            await self.connection.command(f"move container to mark {mark}")
        finally:
            await self.connection.command(f"unmark {mark}")
        return CommandReply(action="moved", target_id=node_id)

    async def _move_focused_to(self, prompt: str, order: Callable[[TreeModel], List[MenuEntry]]) -> CommandReply:
        candidates = await self._candidates(order)
        chosen, text = await self._choose(prompt, candidates)

        if chosen is None:
            parsed = parse_non_matching_input(text)
            if not isinstance(parsed, WorkspaceTarget):
                raise NoTargetError(f"Not a workspace: {text!r}")
            return await self._move_to_workspace(parsed)

        match chosen.node_type:
            case NodeType.OUTPUT:
                await self.connection.command(f"move container to output {chosen.name}")
                return CommandReply(action="moved", target_id=chosen.id, message=chosen.name)
            case NodeType.WORKSPACE:
                target = parse_non_matching_input(f"w:{chosen.name}") or WorkspaceTarget(chosen.name)
                reply = await self._move_to_workspace(target)
                return CommandReply(action="moved", target_id=chosen.id, message=reply.message)
        return await self._move_to_container(chosen.id)

    async def _swap_focused_with(self) -> CommandReply:
        candidates = await self._candidates(selection.workspace_containers_and_windows)
        chosen, text = await self._choose("Swap focused with", candidates)
        if chosen is None:
            parsed = parse_non_matching_input(text)
            if not isinstance(parsed, WorkspaceTarget):
                raise NoTargetError(f"Not a workspace: {text!r}")
            return await self._move_to_workspace(parsed)

        await self.connection.command(f"swap container with con_id {chosen.id}")
        return CommandReply(action="swapped", target_id=chosen.id)

    # Re-layout

    async def _relayout(self, kind: CommandKind, floating: ConsiderFloating) -> CommandReply:
        include_floating = floating is ConsiderFloating.INCLUDE_FLOATING
        async with self.state_manager.lock:
            plan = plan_relayout(self.state_manager.model, include_floating)
        if plan is None:
            raise NoTargetError("No workspace is focused")

        match kind:
            case CommandKind.TILE_WORKSPACE:
                count = await self.relayout.tile(plan)
            case CommandKind.SHUFFLE_TILE_WORKSPACE:
                count = await self.relayout.tile(plan, shuffle=True)
            case CommandKind.TAB_WORKSPACE:
                count = await self.relayout.tab(plan)
            case _:
                count = await self.relayout.toggle(plan)
        return CommandReply(action="relayout", target_id=plan.workspace_id, data={"windows": count})

    # Command menus

    async def _execute_swaymsg_command(self) -> CommandReply:
        commands = swaymsg_commands()
        choice = await self.menu.select("Execute swaymsg command", commands)
        if choice.matched:
            command = commands[choice.index]
        else:
            match = parse_non_matching_input(choice.text)
            command = match.command if isinstance(match, RawCommand) else choice.text.lstrip("#")
        await self.connection.command(command)
        return CommandReply(action="executed", message=command)

    async def _execute_swayr_command(self) -> CommandReply:
        commands = menu_commands()
        choice = await self.menu.select("Select swayr command", [c.invocation() for c in commands])
        if not choice.matched:
            raise NoTargetError(f"Unknown swayr command {choice.text!r}")
        return await self.dispatch(commands[choice.index])

    async def _configure_outputs(self) -> CommandReply:
        commands = output_commands(await self.connection.get_outputs())
        executed = []
        while True:
            try:
                choice = await self.menu.select("Output command", commands)
            except MenuCancelledError:
                break
            if not choice.matched:
                break
            await self.connection.command(commands[choice.index])
            executed.append(commands[choice.index])
        if not executed:
            raise MenuCancelledError()
        return CommandReply(action="executed", message="; ".join(executed), data={"commands": executed})
