"""Daemon IPC client for the swayr command line.

Sends one JSON-RPC 2.0 request per connection to swayrd over its UNIX socket.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional

from .constants import CONNECT_TIMEOUT, get_socket_path
from .errors import ConnectFailure, ConnectionLost, ProtocolDecodeError, error_from_dict
from .models.commands import CommandReply, SwayrCommand


class DaemonClient:
    """IPC client for swayrd.

    Connecting is bounded by ``timeout``; once a request has been sent the
    client waits for the reply without a deadline, since commands that show a
    menu block until the user picks an entry.
    """

    def __init__(self, socket_path: Optional[Path] = None, timeout: float = CONNECT_TIMEOUT):
        """Initialize daemon client.

        Args:
            socket_path: Path to daemon socket (default: per-display path)
            timeout: Connect timeout in seconds
        """
        self.socket_path = socket_path or get_socket_path()
        self.timeout = timeout
        self._request_id = 0

    async def _connect(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        try:
            return await asyncio.wait_for(
                asyncio.open_unix_connection(str(self.socket_path)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise ConnectFailure(f"Connection timeout: swayrd not responding at {self.socket_path}")
        except FileNotFoundError:
            raise ConnectFailure(
                f"Daemon socket not found: {self.socket_path}\n"
                "Is swayrd running? Start it from your sway config: exec swayrd"
            )
        except ConnectionRefusedError:
            raise ConnectFailure(f"Connection refused at {self.socket_path}, is swayrd running?")
        except OSError as e:
            raise ConnectFailure(f"Failed to connect to swayrd: {e}")

    async def call(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send a JSON-RPC request and wait for the result.

        Args:
            method: RPC method name
            params: Optional parameters dict

        Returns:
            Response result dict

        Raises:
            ConnectFailure: If the daemon cannot be reached
            ConnectionLost: If the daemon closes the connection without replying
            ProtocolDecodeError: If the reply is not a UTF-8 JSON object
            SwayrError: If the daemon returns an error
        """
        reader, writer = await self._connect()

        self._request_id += 1
        request = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or {},
            "id": self._request_id,
        }

        try:
            writer.write(json.dumps(request).encode() + b"\n")
            await writer.drain()

            response_line = await reader.readline()
            if not response_line:
                raise ConnectionLost(f"swayrd closed the connection during '{method}'")

            try:
                response = json.loads(response_line.decode())
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                raise ProtocolDecodeError(f"Invalid JSON response from swayrd: {e}")
            if not isinstance(response, dict):
                raise ProtocolDecodeError(f"Expected a JSON object from swayrd, got {type(response).__name__}")

        except (ConnectionResetError, BrokenPipeError) as e:
            raise ConnectionLost(f"Connection to swayrd lost: {e}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionResetError, BrokenPipeError):
                pass

        if "error" in response:
            raise error_from_dict(response["error"])
        return response.get("result") or {}

    async def send_command(self, cmd: SwayrCommand) -> CommandReply:
        """Execute a command in the daemon.

        Returns:
            CommandReply describing what the daemon did
        """
        result = await self.call("execute", {"command": cmd.model_dump(mode="json", exclude_none=True)})
        return CommandReply.model_validate(result)

    async def status(self) -> Dict[str, Any]:
        """Get daemon status (uptime, tree size, event metrics)."""
        return await self.call("status")

    async def ping(self) -> bool:
        result = await self.call("ping")
        return bool(result.get("pong"))
