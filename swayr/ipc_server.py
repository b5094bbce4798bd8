"""JSON-RPC IPC server for swayr clients.

Serves one newline-terminated JSON-RPC 2.0 request per connection on a UNIX
socket, with systemd socket activation support.
"""

import asyncio
import json
import logging
import os
import socket
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from .constants import get_socket_path
from .errors import CriteriaError, ErrorCode, SwayrError
from .models.commands import SwayrCommand

logger = logging.getLogger(__name__)


# JSON-RPC 2.0 Standard Error Codes
PARSE_ERROR = ErrorCode.PARSE_ERROR.value
INVALID_REQUEST = ErrorCode.INVALID_REQUEST.value
METHOD_NOT_FOUND = ErrorCode.METHOD_NOT_FOUND.value
INVALID_PARAMS = ErrorCode.INVALID_PARAMS.value
INTERNAL_ERROR = ErrorCode.INTERNAL_ERROR.value


class IPCServer:
    """JSON-RPC IPC server executing swayr commands."""

    def __init__(
        self,
        state_manager,
        dispatcher,
        socket_path: Optional[Path] = None,
        status_provider: Optional[Callable[[], Dict[str, Any]]] = None,
    ) -> None:
        """Initialize IPC server.

        Args:
            state_manager: StateManager instance for status queries
            dispatcher: CommandDispatcher executing commands
            socket_path: Socket to listen on (default: per-display path)
            status_provider: Returns extra fields for the status method
        """
        self.state_manager = state_manager
        self.dispatcher = dispatcher
        self.socket_path = socket_path or get_socket_path()
        self.status_provider = status_provider
        self.server: Optional[asyncio.Server] = None
        self.clients: set[asyncio.StreamWriter] = set()
        self.requests_handled = 0

    @classmethod
    async def from_systemd_socket(cls, state_manager, dispatcher, **kwargs) -> "IPCServer":
        """Create IPC server using systemd socket activation if available.

        Returns:
            Started IPCServer, on the inherited socket or a new one
        """
        server = cls(state_manager, dispatcher, **kwargs)

        # Check if systemd passed us a socket
        listen_fds = int(os.environ.get("LISTEN_FDS", 0))
        if listen_fds > 0:
            # Socket FD starts at 3 (0=stdin, 1=stdout, 2=stderr)
            fd = 3
            logger.info(f"Using systemd socket activation (FD {fd})")
            sock = socket.socket(fileno=fd)
            await server.start(sock)
        else:
            await server.start(None)

        return server

    def _error_response(self, request_id: Any, code: int, message: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Format JSON-RPC error response.

        Args:
            request_id: Request ID from original request
            code: Error code (standard or application-specific)
            message: Error message
            data: Optional additional error data

        Returns:
            JSON-RPC error response dictionary
        """
        error = {"code": code, "message": message}
        if data:
            error["data"] = data
        return {"jsonrpc": "2.0", "error": error, "id": request_id}

    async def start(self, sock: Optional[socket.socket] = None) -> None:
        """Start IPC server.

        Args:
            sock: Existing socket to use (from systemd), or None to create new
        """
        if sock:
            self.server = await asyncio.start_unix_server(self._handle_client, sock=sock)
            return

        socket_path = self.socket_path
        socket_path.parent.mkdir(parents=True, exist_ok=True)

        # Remove stale socket from a previous run
        if socket_path.exists() or socket_path.is_symlink():
            socket_path.unlink()

        self.server = await asyncio.start_unix_server(self._handle_client, path=str(socket_path))

        socket_path.chmod(0o600)
        if socket_path.parent != Path("/tmp"):
            socket_path.parent.chmod(0o700)

        logger.info(f"IPC server listening on {socket_path} (permissions: 0600)")

    async def stop(self) -> None:
        """Stop IPC server and close all connections."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            self.server = None

        for writer in list(self.clients):
            writer.close()

        if self.socket_path.exists():
            try:
                self.socket_path.unlink()
            except OSError as e:
                logger.warning(f"Could not remove socket {self.socket_path}: {e}")

        logger.info("IPC server stopped")

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """Serve exactly one request on a client connection."""
        self.clients.add(writer)
        try:
            data = await reader.readline()
            if not data:
                logger.debug("Client closed connection without a request")
                return

            try:
                request = json.loads(data.decode())
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.warning(f"Malformed request: {e}")
                response = self._error_response(None, PARSE_ERROR, "Parse error")
            else:
                response = await self._handle_request(request)

            writer.write(json.dumps(response).encode() + b"\n")
            await writer.drain()
            self.requests_handled += 1

        except (ConnectionResetError, BrokenPipeError):
            logger.info("Client went away before the reply was sent")
        except Exception as e:
            logger.error(f"Error handling client: {e}", exc_info=True)

        finally:
            self.clients.discard(writer)
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionResetError, BrokenPipeError):
                pass

    async def _handle_request(self, request: Any) -> Dict[str, Any]:
        """Handle a JSON-RPC request.

        Returns:
            JSON-RPC response dictionary
        """
        if not isinstance(request, dict) or not isinstance(request.get("method"), str):
            return self._error_response(None, INVALID_REQUEST, "Invalid request")

        method = request["method"]
        params = request.get("params") or {}
        request_id = request.get("id")

        try:
            if method == "execute":
                if not isinstance(params, dict) or "command" not in params:
                    return self._error_response(request_id, INVALID_PARAMS, "Missing 'command' parameter")
                result = await self._execute(params["command"])
            elif method == "status":
                result = await self._get_status()
            elif method == "ping":
                result = {"pong": True}
            else:
                return self._error_response(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

            return {"jsonrpc": "2.0", "result": result, "id": request_id}

        except ValidationError as e:
            return self._error_response(
                request_id, INVALID_PARAMS, "Invalid command", {"errors": json.loads(e.json())}
            )
        except CriteriaError as e:
            return self._error_response(request_id, INVALID_PARAMS, e.message)
        except SwayrError as e:
            logger.warning(f"{method} failed: {e.message}")
            error = e.to_dict()
            return self._error_response(request_id, error["code"], error["message"], error.get("data"))
        except Exception as e:
            logger.error(f"Error handling request {method}: {e}", exc_info=True)
            return self._error_response(
                request_id,
                INTERNAL_ERROR,
                "Internal server error",
                {"exception": type(e).__name__, "details": str(e)},
            )

    async def _execute(self, command: Any) -> Dict[str, Any]:
        cmd = SwayrCommand.model_validate(command)
        start = time.perf_counter()
        reply = await self.dispatcher.dispatch(cmd)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"{cmd.invocation()} -> {reply.action} ({duration_ms:.1f}ms)")
        return reply.model_dump(exclude_none=True)

    async def _get_status(self) -> Dict[str, Any]:
        """Get daemon status."""
        stats = await self.state_manager.get_stats()
        result = {
            "status": "running",
            "socket_path": str(self.socket_path),
            "requests_handled": self.requests_handled,
            **stats,
        }
        if self.status_provider is not None:
            result.update(self.status_provider())
        return result
