"""Pytest configuration and fixtures."""

import asyncio
import os
from typing import Any, Dict, Iterable, Optional

import pytest

# Set test environment before tool_proxy reads its config
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ["LOG_FORMAT"] = "text"
os.environ["DEFAULT_MAX_RESULTS"] = "5"
os.environ["TOOL_SEARCH_TYPE"] = "tool_search_tool_regex"
os.environ["TOOL_COLLISION_POLICY"] = "replace"

from mcp.types import CallToolResult, TextContent, Tool  # noqa: E402

from tool_proxy.models.backend import ProxyConfig, StdioBackendConfig  # noqa: E402


def make_tool(name: str, description: str = "", input_schema: Optional[Dict[str, Any]] = None) -> Tool:
    """MCP tool listing entry as a backend would return it."""
    return Tool(
        name=name,
        description=description,
        inputSchema=input_schema or {"type": "object", "properties": {}},
    )


def make_proxy_config(*backend_ids: str) -> ProxyConfig:
    return ProxyConfig(backends={backend_id: StdioBackendConfig(command="fake-server") for backend_id in backend_ids})


def text_result(text: str, is_error: bool = False) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


def search_response(*tool_names: str) -> Dict[str, Any]:
    """InvokeModel body with one tool search result block."""
    return {
        "id": "msg_test",
        "type": "message",
        "role": "assistant",
        "model": "claude-test",
        "stop_reason": "end_turn",
        "content": [
            {
                "type": "server_tool_use",
                "id": "srvtoolu_1",
                "name": "tool_search_tool_regex",
                "input": {"query": "test"},
            },
            {
                "type": "tool_search_tool_result",
                "tool_use_id": "srvtoolu_1",
                "content": {
                    "type": "tool_search_tool_search_result",
                    "tool_references": [
                        {"type": "tool_reference", "tool_name": name} for name in tool_names
                    ],
                },
            },
            {"type": "text", "text": "Found some tools."},
        ],
    }


class FakeBackendConnection:
    """In-process stand-in for an MCP backend connection."""

    def __init__(
        self,
        backend_id: str,
        config: Any,
        tools: Iterable[Any] = (),
        connect_error: Optional[BaseException] = None,
        connect_delay: float = 0,
        call_handler=None,
        call_delay: float = 0,
        close_error: Optional[Exception] = None,
    ):
        self.backend_id = backend_id
        self.config = config
        self.tools = list(tools)
        self.connect_error = connect_error
        self.connect_delay = connect_delay
        self.call_handler = call_handler
        self.call_delay = call_delay
        self.close_error = close_error
        self.connected = False
        self.close_count = 0
        self.calls = []

    async def connect(self) -> None:
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def list_tools(self):
        return list(self.tools)

    async def call_tool(self, name: str, arguments: Dict[str, Any]):
        self.calls.append((name, arguments))
        if not self.connected:
            raise RuntimeError(f"Backend {self.backend_id} is not connected")
        if self.call_delay:
            await asyncio.sleep(self.call_delay)
        if self.call_handler is not None:
            return self.call_handler(name, arguments)
        return text_result(f"{self.backend_id}:{name}")

    async def close(self) -> None:
        self.close_count += 1
        self.connected = False
        if self.close_error is not None:
            raise self.close_error


class FakeConnectionFactory:
    """Connection factory keyed by backend id; remembers what it created."""

    def __init__(self, backends: Optional[Dict[str, Dict[str, Any]]] = None):
        self.backends = backends or {}
        self.connections: Dict[str, FakeBackendConnection] = {}

    def __call__(self, backend_id: str, config: Any) -> FakeBackendConnection:
        connection = FakeBackendConnection(backend_id, config, **self.backends.get(backend_id, {}))
        self.connections[backend_id] = connection
        return connection


class FakeSearchClient:
    """Search client answering every request with a fixed body."""

    def __init__(self, response: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.response = response if response is not None else search_response()
        self.error = error
        self.requests = []

    async def invoke(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def connection_factory():
    """Two backends: "a" with tools x and y, "b" with tool x."""
    return FakeConnectionFactory({
        "a": {"tools": [make_tool("x", "Tool x of a"), make_tool("y", "Tool y of a")]},
        "b": {"tools": [make_tool("x", "Tool x of b")]},
    })


@pytest.fixture
def search_client():
    return FakeSearchClient()
