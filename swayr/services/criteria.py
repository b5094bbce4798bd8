"""sway-style criteria queries for switch-to-matching-or-urgent-or-lru-window.

Supported syntax::

    [tiling floating app_id="rx" class="rx" instance="rx" app_name="rx"
     title="rx" con_mark="rx" con_id=N pid=N]

``app_id``, ``class``, ``instance``, ``app_name``, ``title`` and ``con_id``
also accept ``__focused__``. All criteria must hold for a window to match.
Regexes are searched, not anchored, as in sway.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern

from ..errors import CriteriaError
from ..models.tree import Node
from ..tree_model import TreeModel

logger = logging.getLogger(__name__)

FOCUSED = "__focused__"

REGEX_KEYS = frozenset({"app_id", "class", "instance", "app_name", "title", "con_mark"})
INT_KEYS = frozenset({"con_id", "pid"})
FLAG_KEYS = frozenset({"tiling", "floating"})

_TOKEN_RX = re.compile(
    r"""\s*(?:
        (?P<key>[a-z_]+)\s*=\s*(?:"(?P<string>[^"]*)"|(?P<bare>[^\s\]"]+))
      | (?P<flag>[a-z_]+)
    )""",
    re.VERBOSE,
)

# Never matches anything, used for invalid regexes
_NO_MATCH = re.compile(r"(?!)")


@dataclass(frozen=True)
class Criterion:
    """One criterion of a query.

    Attributes:
        key: Criterion name, e.g. "app_id" or "floating"
        pattern: Compiled regex for regex criteria
        number: Integer value for con_id/pid
        focused: Value was ``__focused__``
    """

    key: str
    pattern: Optional[Pattern[str]] = None
    number: Optional[int] = None
    focused: bool = False


def _compile(value: str) -> Pattern[str]:
    try:
        return re.compile(value)
    except re.error as e:
        logger.error(f"Invalid regex {value!r}: {e}")
        return _NO_MATCH


def _make_criterion(key: str, value: Optional[str], quoted: bool) -> Criterion:
    if key in FLAG_KEYS:
        if value is not None:
            raise CriteriaError(f"Criterion {key} takes no value")
        return Criterion(key)

    if value is None:
        raise CriteriaError(f"Criterion {key} requires a value")

    if value == FOCUSED and not quoted:
        if key in ("con_mark", "pid"):
            raise CriteriaError(f"Criterion {key} does not support {FOCUSED}")
        return Criterion(key, focused=True)

    if key in REGEX_KEYS:
        if not quoted:
            raise CriteriaError(f"Criterion {key} requires a quoted value")
        return Criterion(key, pattern=_compile(value))

    if key in INT_KEYS:
        try:
            return Criterion(key, number=int(value))
        except ValueError:
            raise CriteriaError(f"Criterion {key} requires an integer, got {value!r}")

    raise CriteriaError(f"Unknown criterion {key!r}")


def parse_criteria(query: str) -> List[Criterion]:
    """Parse a bracketed criteria query.

    Raises:
        CriteriaError: If the query is malformed
    """
    text = query.strip()
    if not (text.startswith("[") and text.endswith("]")):
        raise CriteriaError(f"Criteria must be enclosed in brackets: {query!r}")

    body = text[1:-1]
    criteria = []
    pos = 0
    while body[pos:].strip():
        match = _TOKEN_RX.match(body, pos)
        if match is None or match.end() == pos:
            raise CriteriaError(f"Could not parse criteria {query!r} at {body[pos:]!r}")
        if match.group("key"):
            quoted = match.group("string") is not None
            value = match.group("string") if quoted else match.group("bare")
            criteria.append(_make_criterion(match.group("key"), value, quoted))
        else:
            criteria.append(_make_criterion(match.group("flag"), None, False))
        pos = match.end()
    return criteria


def _search(pattern: Pattern[str], value: Optional[str]) -> bool:
    return value is not None and pattern.search(value) is not None


def _same(a: Optional[object], b: Optional[object]) -> bool:
    return a is not None and b is not None and a == b


def criteria_to_predicate(criteria: List[Criterion], model: TreeModel) -> Callable[[Node], bool]:
    """Build a window predicate for parsed criteria.

    ``__focused__`` values compare against the window focused at the time
    the predicate is built.
    """
    focused = model.focused_window()

    def check(c: Criterion, w: Node) -> bool:
        match c.key:
            case "tiling":
                return not w.floating
            case "floating":
                return w.floating
            case "con_id":
                return w.focused if c.focused else w.id == c.number
            case "pid":
                return w.pid == c.number
            case "con_mark":
                return any(c.pattern.search(m) for m in w.marks)

        attribute = {
            "app_id": lambda n: n.app_id,
            "class": lambda n: n.window_class,
            "instance": lambda n: n.window_instance,
            "app_name": lambda n: n.app_name,
            "title": lambda n: n.name,
        }[c.key]
        if c.focused:
            return focused is not None and _same(attribute(w), attribute(focused))
        return _search(c.pattern, attribute(w))

    def predicate(w: Node) -> bool:
        return all(check(c, w) for c in criteria)

    return predicate


def compile_criteria(query: str, model: TreeModel) -> Callable[[Node], bool]:
    """Parse ``query`` and build its predicate in one step."""
    return criteria_to_predicate(parse_criteria(query), model)
