"""Menu entry rendering from format templates.

Templates contain ``{placeholder}`` or ``{placeholder:{fmt}clip}`` fields.
``fmt`` is a Python format spec applied to the value, e.g. ``{:>10.10}``;
if the formatted value got truncated, its last characters are replaced by
``clip``::

    "{title:{:.5}…}" with title "sway window" -> "sway…"
"""

import logging
import re
from typing import Callable, Dict, Optional

from ..models.config import FormatConfig
from ..models.tree import LayoutKind, Node, NodeType
from ..tree_model import TreeModel
from .app_icons import AppIconResolver
from .selection import MenuEntry

logger = logging.getLogger(__name__)

PLACEHOLDER_RX = re.compile(r"\{(?P<name>[^}:]+)(?::(?P<fmtstr>\{[^}]*\})(?P<clipstr>[^}]*))?\}")

_LAYOUT_NAMES = {
    LayoutKind.NONE: "None",
    LayoutKind.SPLITH: "SplitH",
    LayoutKind.SPLITV: "SplitV",
    LayoutKind.TABBED: "Tabbed",
    LayoutKind.STACKED: "Stacked",
}


def html_escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def format_value(fmt: str, value: str, clip: str = "") -> str:
    """Apply a format spec to ``value``, replacing the tail by ``clip`` if truncated."""
    try:
        result = fmt.format(value)
    except (ValueError, IndexError, KeyError) as e:
        logger.warning(f"Invalid format string {fmt!r}: {e}")
        return f"Invalid format string: {fmt}"

    if clip and value not in result:
        keep = max(len(result) - len(clip), 0)
        result = result[:keep] + clip
    return result


def subst_placeholders(template: str, values: Dict[str, Callable[[], str]], escape: bool) -> str:
    """Replace known placeholders; unknown ones are left verbatim."""

    def replace(match: re.Match) -> str:
        getter = values.get(match.group("name"))
        if getter is None:
            return match.group(0)
        text = format_value(match.group("fmtstr") or "{}", str(getter()), match.group("clipstr") or "")
        return html_escape(text) if escape else text

    return PLACEHOLDER_RX.sub(replace, template)


def format_marks(marks) -> str:
    if not marks:
        return ""
    return f"[{', '.join(marks)}]"


class DisplayFormatter:
    """Renders tree nodes as menu labels according to the format config."""

    def __init__(self, config: FormatConfig, icons: Optional[AppIconResolver] = None):
        self.config = config
        self.icons = icons

    def _template(self, node: Node) -> str:
        match node.node_type:
            case NodeType.OUTPUT:
                return self.config.output_format
            case NodeType.WORKSPACE:
                return self.config.workspace_format
            case NodeType.CONTAINER:
                return self.config.container_format
            case NodeType.WINDOW:
                return self.config.window_format
        return "Cannot format root"

    def _icon(self, node: Node) -> str:
        icon = None
        if self.icons is not None and node.is_window:
            icon = self.icons.lookup(node.app_name)
        if icon is None and self.config.fallback_icon:
            return self.config.fallback_icon
        return str(icon) if icon is not None else ""

    def format_node(self, model: TreeModel, node: Node, depth: int = 0) -> str:
        """Render one node.

        ``indent``, ``urgency_start``, ``urgency_end`` and ``app_icon`` are
        markup and are substituted before (and without) escaping.
        """
        cfg = self.config
        template = (
            self._template(node)
            .replace("{indent}", cfg.indent * depth)
            .replace("{urgency_start}", cfg.urgency_start if node.urgent else "")
            .replace("{urgency_end}", cfg.urgency_end if node.urgent else "")
            .replace("{app_icon}", self._icon(node))
        )

        def output_name() -> str:
            output = model.output_of(node)
            return output.name if output is not None and output.name else "<no_output>"

        def workspace_name() -> str:
            workspace = model.workspace_of(node)
            return workspace.name if workspace is not None and workspace.name else "<no_workspace>"

        values = {
            "id": lambda: str(node.id),
            "app_name": lambda: node.app_name,
            "layout": lambda: _LAYOUT_NAMES[node.layout],
            "name": lambda: node.title,
            "title": lambda: node.title,
            "output_name": output_name,
            "workspace_name": workspace_name,
            "marks": lambda: format_marks(node.marks),
        }
        return subst_placeholders(template, values, cfg.html_escape)

    def format_entry(self, model: TreeModel, entry: MenuEntry) -> str:
        return self.format_node(model, entry.node, entry.depth)
