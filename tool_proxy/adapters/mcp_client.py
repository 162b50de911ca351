"""MCP (Model Context Protocol) client connections to backend servers.

Supports three transports behind one interface:

- stdio: the backend is spawned as a local subprocess
- streamable HTTP: remote backend at an http(s) URL
- WebSocket: remote backend at a ws(s) URL

Each connection owns one persistent ``ClientSession``. Sessions multiplex
JSON-RPC requests, so concurrent ``call_tool`` calls on one connection are
allowed.
"""

import os
from abc import ABC, abstractmethod
from contextlib import AsyncExitStack
from typing import Any, Dict, List, Optional, Tuple

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.client.websocket import websocket_client
from mcp.types import CallToolResult, Implementation, Tool

from tool_proxy import __version__
from tool_proxy.models.backend import (
    BackendConfig,
    HttpBackendConfig,
    StdioBackendConfig,
    WebSocketBackendConfig,
)

CLIENT_INFO = Implementation(name="tool-proxy", version=__version__)


class BackendConnection(ABC):
    """One live MCP session with a backend server."""

    transport_name = "abstract"

    def __init__(self, backend_id: str, config: BackendConfig):
        self.backend_id = backend_id
        self.config = config
        self._exit_stack: Optional[AsyncExitStack] = None
        self._session: Optional[ClientSession] = None

    @abstractmethod
    async def _open_streams(self, stack: AsyncExitStack) -> Tuple[Any, Any]:
        """Enter the transport context and return (read_stream, write_stream)."""
        ...

    @property
    def connected(self) -> bool:
        return self._session is not None

    async def connect(self) -> None:
        """
        Open the transport and run the MCP initialize handshake.

        On failure every context entered so far is unwound before the error
        propagates.
        """
        stack = AsyncExitStack()
        try:
            read_stream, write_stream = await self._open_streams(stack)
            session = await stack.enter_async_context(
                ClientSession(read_stream, write_stream, client_info=CLIENT_INFO)
            )
            await session.initialize()
        except BaseException:
            await stack.aclose()
            raise
        self._exit_stack = stack
        self._session = session

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise RuntimeError(f"Backend {self.backend_id} is not connected")
        return self._session

    async def list_tools(self) -> List[Tool]:
        """List every tool of the backend, following pagination cursors."""
        session = self._require_session()
        result = await session.list_tools()
        tools = list(result.tools)
        while result.nextCursor:
            result = await session.list_tools(cursor=result.nextCursor)
            tools.extend(result.tools)
        return tools

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> CallToolResult:
        """Call a tool by its backend-local name and return the raw result."""
        session = self._require_session()
        return await session.call_tool(name, arguments)

    async def close(self) -> None:
        """Close the session and transport. Safe to call more than once."""
        stack, self._exit_stack = self._exit_stack, None
        self._session = None
        if stack is not None:
            await stack.aclose()


class StdioBackendConnection(BackendConnection):
    """Backend spawned as a subprocess, MCP over stdin/stdout."""

    transport_name = "stdio"

    def server_parameters(self) -> StdioServerParameters:
        config: StdioBackendConfig = self.config
        # The subprocess inherits the proxy environment, overridden by the config
        env = {**os.environ, **config.env}
        return StdioServerParameters(
            command=config.command,
            args=list(config.args),
            env=env,
            cwd=config.cwd,
        )

    async def _open_streams(self, stack: AsyncExitStack) -> Tuple[Any, Any]:
        read_stream, write_stream = await stack.enter_async_context(
            stdio_client(self.server_parameters())
        )
        return read_stream, write_stream


class HttpBackendConnection(BackendConnection):
    """Remote backend over MCP streamable HTTP."""

    transport_name = "http"

    async def _open_streams(self, stack: AsyncExitStack) -> Tuple[Any, Any]:
        config: HttpBackendConfig = self.config
        read_stream, write_stream, _get_session_id = await stack.enter_async_context(
            streamablehttp_client(config.url, headers=config.headers or None)
        )
        return read_stream, write_stream


class WebSocketBackendConnection(BackendConnection):
    """Remote backend over an MCP WebSocket."""

    transport_name = "websocket"

    async def _open_streams(self, stack: AsyncExitStack) -> Tuple[Any, Any]:
        config: WebSocketBackendConfig = self.config
        read_stream, write_stream = await stack.enter_async_context(websocket_client(config.url))
        return read_stream, write_stream


def create_backend_connection(backend_id: str, config: BackendConfig) -> BackendConnection:
    """
    Select the connection variant for a backend config.

    Raises:
        ValueError: If the config type is not a known transport
    """
    if isinstance(config, StdioBackendConfig):
        return StdioBackendConnection(backend_id, config)
    if isinstance(config, HttpBackendConfig):
        return HttpBackendConnection(backend_id, config)
    if isinstance(config, WebSocketBackendConfig):
        return WebSocketBackendConnection(backend_id, config)
    raise ValueError(f"Unsupported backend config for {backend_id}: {type(config).__name__}")
