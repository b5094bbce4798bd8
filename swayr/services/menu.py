"""External menu program interaction and non-matching input handling.

The menu program (wofi, rofi, fuzzel, ...) reads one label per line on stdin
and prints the chosen line on stdout. Input that matches no label is
interpreted as a shortcut:

    s:<cmd>          run <cmd> as a sway command
    w:<name>         switch to (or create) workspace <name>
    <name>           same as w:<name>

Leading ``#`` characters are ignored; they let the user type text that would
otherwise match a label.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from ..errors import MenuCancelledError, MenuFailedError
from ..models.config import MenuConfig

logger = logging.getLogger(__name__)

SPECIAL_SWAY_RX = re.compile(r"^#*s:(.*)", re.DOTALL)
SPECIAL_WORKSPACE_RX = re.compile(r"^#*w:(.*)", re.DOTALL)
DIGIT_AND_NAME_RX = re.compile(r"^(\d+):(.*)", re.DOTALL)


def quote_workspace_name(name: str) -> str:
    """Quote a workspace name for use in a sway command if needed."""
    if not name or any(c.isspace() for c in name) or '"' in name or ";" in name or "," in name:
        escaped = name.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return name


@dataclass(frozen=True)
class RawCommand:
    """Typed ``s:<cmd>``: a sway command to run verbatim."""

    command: str


@dataclass(frozen=True)
class WorkspaceTarget:
    """Typed workspace name, optionally in ``<number>:<name>`` form.

    Attributes:
        name: Workspace name without the number prefix
        number: Workspace number for the numbered form
    """

    name: str
    number: Optional[int] = None

    @property
    def numbered(self) -> bool:
        return self.number is not None

    @property
    def full_name(self) -> str:
        if self.number is None:
            return self.name
        return f"{self.number}:{self.name}"

    def _ref(self) -> str:
        name = quote_workspace_name(self.full_name)
        return f"number {name}" if self.numbered else name

    def switch_command(self) -> str:
        return f"workspace {self._ref()}"

    def move_command(self) -> str:
        return f"move container to workspace {self._ref()}"


NonMatchingInput = Union[RawCommand, WorkspaceTarget]


def parse_non_matching_input(text: str) -> Optional[NonMatchingInput]:
    """Interpret menu input that matched no label.

    Returns:
        RawCommand or WorkspaceTarget, or None for empty input

    Examples:
        >>> parse_non_matching_input("w:3:mail")
        WorkspaceTarget(name='mail', number=3)
        >>> parse_non_matching_input("5")
        WorkspaceTarget(name='5', number=None)
        >>> parse_non_matching_input("##s:reload")
        RawCommand(command='reload')
    """
    match = SPECIAL_SWAY_RX.match(text)
    if match:
        command = match.group(1)
        return RawCommand(command) if command.strip() else None

    match = SPECIAL_WORKSPACE_RX.match(text)
    spec = match.group(1) if match else text.lstrip("#")
    if not spec:
        return None

    numbered = DIGIT_AND_NAME_RX.match(spec)
    if numbered:
        return WorkspaceTarget(numbered.group(2), int(numbered.group(1)))
    return WorkspaceTarget(spec)


@dataclass(frozen=True)
class MenuChoice:
    """Result of a menu interaction: a label index or raw typed text."""

    index: Optional[int] = None
    text: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.index is not None


class MenuRunner:
    """Runs the configured menu program as a scoped child process."""

    def __init__(self, config: MenuConfig):
        self.config = config

    @staticmethod
    def _label_lookup(labels: List[str]) -> Dict[str, int]:
        lookup: Dict[str, int] = {}
        for index, label in enumerate(labels):
            # rofi prints only the text before its "\0icon\x1f..." escape
            if "\0" in label:
                lookup.setdefault(label.split("\0", 1)[0], index)
            lookup.setdefault(label, index)
        return lookup

    async def select(self, prompt: str, labels: List[str]) -> MenuChoice:
        """Show ``labels`` and wait for the user's choice.

        Raises:
            MenuCancelledError: If nothing was selected or typed
            MenuFailedError: If the menu program cannot be started
        """
        argv = self.config.build_argv(prompt)
        logger.debug(f"Running menu {argv[0]} with {len(labels)} entries")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise MenuFailedError(f"Cannot run menu program {argv[0]}: {e}")

        try:
            stdout, _ = await process.communicate("\n".join(labels).encode())
        finally:
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        choice = stdout.decode(errors="replace")
        if choice.endswith("\n"):
            choice = choice[:-1]
        if not choice:
            raise MenuCancelledError()

        index = self._label_lookup(labels).get(choice)
        if index is not None:
            return MenuChoice(index=index)
        logger.debug(f"Menu input {choice!r} matched no entry")
        return MenuChoice(text=choice)
