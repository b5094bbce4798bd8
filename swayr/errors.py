"""Error definitions for swayr.

Provides structured exceptions with JSON-RPC error codes so failures can be
reported to the client the same way they are raised in the daemon.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """
    Error codes for swayr.

    JSON-RPC standard codes:
    - -32700: Parse error
    - -32600: Invalid request
    - -32601: Method not found
    - -32602: Invalid params
    - -32603: Internal error

    Custom codes (1000-1999):
    - 1000-1099: Command errors
    - 1400-1499: Sway IPC errors
    - 1500-1599: State errors
    - 1600-1699: Menu errors
    """

    # JSON-RPC standard errors
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Command errors (1000-1099)
    INVALID_COMMAND = 1000
    INVALID_CRITERIA = 1001
    NO_TARGET = 1002
    MENU_CANCELLED = 1003

    # Sway IPC errors (1400-1499)
    SWAY_NOT_RUNNING = 1400
    COMPOSITOR_REJECTED = 1401
    CONNECTION_LOST = 1402
    PROTOCOL_DECODE = 1403

    # State errors (1500-1599)
    SYNC_FAILED = 1500

    # Menu errors (1600-1699)
    MENU_FAILED = 1600


class SwayrError(Exception):
    """Base exception for swayr errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        """
        Initialize swayr error.

        Args:
            message: Human-readable error message
            context: Additional context for debugging
        """
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for JSON-RPC response.

        Returns:
            Error dictionary with code, message and optional data
        """
        result: Dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.context:
            result["data"] = self.context
        return result


class ConnectFailure(SwayrError):
    """Cannot reach the sway IPC socket or the daemon socket."""

    code = ErrorCode.SWAY_NOT_RUNNING


class ConnectionLost(SwayrError):
    """Peer closed the connection before a reply arrived."""

    code = ErrorCode.CONNECTION_LOST


class ProtocolDecodeError(SwayrError):
    """Malformed event or request frame."""

    code = ErrorCode.PROTOCOL_DECODE


class SyncError(SwayrError):
    """Tree model no longer agrees with sway."""

    code = ErrorCode.SYNC_FAILED


class UnknownNodeError(SyncError):
    """An event referenced a node id the tree model does not know."""

    def __init__(self, node_id: int):
        self.node_id = node_id
        super().__init__(f"Unknown node id {node_id}", context={"node_id": node_id})


class CommandError(SwayrError):
    """Base class for failures while executing a command."""

    code = ErrorCode.INVALID_COMMAND


class NoTargetError(CommandError):
    """A switch or cycle found no eligible target."""

    code = ErrorCode.NO_TARGET


class MenuCancelledError(CommandError):
    """The menu program exited without a selection."""

    code = ErrorCode.MENU_CANCELLED

    def __init__(self, message: str = "Menu cancelled"):
        super().__init__(message)


class MenuFailedError(CommandError):
    """The menu program could not be started."""

    code = ErrorCode.MENU_FAILED


class CriteriaError(CommandError):
    """A criteria query could not be parsed."""

    code = ErrorCode.INVALID_CRITERIA


class CompositorRejectedError(CommandError):
    """Sway reported a command failure."""

    code = ErrorCode.COMPOSITOR_REJECTED

    def __init__(self, message: str, command: Optional[str] = None):
        self.command = command
        super().__init__(message, context={"command": command} if command else None)


def error_from_dict(error: Dict[str, Any]) -> SwayrError:
    """Rebuild an exception from a JSON-RPC error object.

    Args:
        error: The ``error`` member of a JSON-RPC response

    Returns:
        Exception instance matching the error code
    """
    code = error.get("code")
    message = error.get("message", "Unknown error")
    data = error.get("data")

    if code == ErrorCode.COMPOSITOR_REJECTED.value:
        command = data.get("command") if isinstance(data, dict) else None
        return CompositorRejectedError(message, command=command)
    if code == ErrorCode.INVALID_CRITERIA.value:
        return CriteriaError(message)
    if code == ErrorCode.MENU_FAILED.value:
        return MenuFailedError(message)

    exc = CommandError(message, context=data if isinstance(data, dict) else None)
    try:
        exc.code = ErrorCode(code)
    except ValueError:
        exc.code = ErrorCode.INTERNAL_ERROR
    return exc
