"""Backend connection pool: connects backends, fills the tool cache, routes tool calls."""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from tool_proxy.adapters.mcp_client import BackendConnection, create_backend_connection
from tool_proxy.infra.error_handler import (
    BackendCallError,
    BackendConnectionError,
    BackendNotFoundError,
    error_message,
)
from tool_proxy.infra.metrics import (
    backend_call_duration,
    backend_calls_total,
    backends_connected,
    cached_tools,
)
from tool_proxy.infra.timeout import BACKEND_CALL_TIMEOUT, BACKEND_CONNECT_TIMEOUT
from tool_proxy.models.backend import BackendConfig, ProxyConfig
from tool_proxy.models.tool import ToolDefinition, empty_input_schema
from tool_proxy.services.tool_cache import ToolCache

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[str, BackendConfig], BackendConnection]


def to_tool_definition(tool: Any) -> ToolDefinition:
    """Translate an MCP tool listing entry into a ToolDefinition."""
    return ToolDefinition(
        name=tool.name,
        description=getattr(tool, "description", None) or "",
        input_schema=getattr(tool, "inputSchema", None) or empty_input_schema(),
    )


class BackendPool:
    """
    Owns one persistent connection per backend.

    Connections are opened and closed from the same task (the MCP SDK's
    anyio transports require it), which is why the runtime drives both
    ``initialize`` and ``close`` from its own task.
    """

    def __init__(
        self,
        tool_cache: ToolCache,
        connection_factory: ConnectionFactory = create_backend_connection,
        connect_timeout: float = BACKEND_CONNECT_TIMEOUT,
        call_timeout: float = BACKEND_CALL_TIMEOUT,
    ):
        self.tool_cache = tool_cache
        self.connection_factory = connection_factory
        self.connect_timeout = connect_timeout
        self.call_timeout = call_timeout
        self._connections: Dict[str, BackendConnection] = {}

    async def initialize(self, proxy_config: ProxyConfig) -> None:
        """
        Connect every configured backend, in declaration order.

        A backend that fails is logged and skipped; the others are still
        attempted. Never raises for connection failures, and finishing with
        zero backends is a valid (degraded) state. There is no retry.
        """
        for backend_id, backend_config in proxy_config.backends.items():
            logger.info(f"Connecting to {backend_id}...", extra={"backend": backend_id})
            try:
                tool_count = await self.connect_backend(backend_id, backend_config)
            except BackendConnectionError as e:
                logger.error(e.message, extra={"backend": backend_id})
                continue
            logger.info(
                f"Connected to {backend_id}, cached {tool_count} tools",
                extra={"backend": backend_id, "tool_count": tool_count},
            )

        logger.info(
            f"Initialized with {self.tool_cache.size} tools from {len(self._connections)} backends",
            extra={"tool_count": self.tool_cache.size, "backend_count": len(self._connections)},
        )

    async def connect_backend(self, backend_id: str, backend_config: BackendConfig) -> int:
        """
        Connect one backend, enumerate its tools and register them.

        The connection is kept only if every step succeeds; otherwise it is
        closed again and nothing is registered.

        Returns:
            Number of tools registered for the backend

        Raises:
            BackendConnectionError: If any step fails or times out
        """
        if backend_id in self._connections:
            raise BackendConnectionError(backend_id, "backend is already connected")

        connection = self.connection_factory(backend_id, backend_config)
        try:
            # Transport contexts must be entered in this task, so no wait_for here
            async with asyncio.timeout(self.connect_timeout):
                await connection.connect()
                tools = await connection.list_tools()
            definitions = [to_tool_definition(tool) for tool in tools]
            self.tool_cache.register(backend_id, definitions)
        except asyncio.CancelledError:
            await self._close_quietly(connection)
            raise
        except asyncio.TimeoutError:
            await self._close_quietly(connection)
            raise BackendConnectionError(backend_id, f"timed out after {self.connect_timeout} seconds")
        except Exception as e:
            await self._close_quietly(connection)
            raise BackendConnectionError(backend_id, error_message(e)) from e

        self._connections[backend_id] = connection
        backends_connected.set(len(self._connections))
        cached_tools.set(self.tool_cache.size)
        return len(definitions)

    async def call_tool(self, backend_id: str, tool_name: str, arguments: Dict[str, Any]) -> Any:
        """
        Call a tool on a specific backend and return its raw result unmodified.

        Raises:
            BackendNotFoundError: If the backend has no live connection
            BackendCallError: If the call times out
        """
        connection = self._connections.get(backend_id)
        if connection is None:
            raise BackendNotFoundError(backend_id)

        start_time = time.time()
        status = "failure"
        try:
            result = await asyncio.wait_for(
                connection.call_tool(tool_name, arguments),
                timeout=self.call_timeout,
            )
            status = "error_result" if getattr(result, "isError", False) else "success"
            return result
        except asyncio.TimeoutError:
            raise BackendCallError(
                backend_id,
                f"Tool {tool_name} on {backend_id} timed out after {self.call_timeout} seconds",
            )
        finally:
            backend_calls_total.labels(backend=backend_id, status=status).inc()
            backend_call_duration.labels(backend=backend_id).observe(time.time() - start_time)

    def get_connection(self, backend_id: str) -> Optional[BackendConnection]:
        return self._connections.get(backend_id)

    def connected_backends(self) -> List[str]:
        """Identifiers of every backend with a live connection."""
        return list(self._connections.keys())

    async def close(self) -> None:
        """
        Close every backend connection, best effort.

        A failure closing one connection is logged and does not stop the
        others. Calling close twice is safe.
        """
        connections = list(self._connections.items())
        self._connections.clear()
        for backend_id, connection in connections:
            try:
                await connection.close()
                logger.info(f"Closed connection to {backend_id}", extra={"backend": backend_id})
            except Exception as e:
                logger.error(
                    f"Error closing {backend_id}: {error_message(e)}",
                    extra={"backend": backend_id},
                    exc_info=True,
                )
        backends_connected.set(0)

    async def _close_quietly(self, connection: BackendConnection) -> None:
        try:
            await connection.close()
        except Exception as e:
            logger.debug(
                f"Ignoring close error for {connection.backend_id}: {error_message(e)}",
                extra={"backend": connection.backend_id},
            )
