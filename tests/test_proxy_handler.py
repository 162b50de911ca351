"""Unit tests for the proxy request handler (search_tools / call_tool)."""

import json

import pytest

from conftest import (
    FakeConnectionFactory,
    FakeSearchClient,
    make_proxy_config,
    make_tool,
    search_response,
    text_result,
)
from tool_proxy.infra.error_handler import ErrorCategory, SearchServiceError
from tool_proxy.runtime import ProxyRuntime
from tool_proxy.services.proxy_handler import NO_TOOLS_MESSAGE, ProxyResult, serialize_backend_result


def five_tool_factory():
    return FakeConnectionFactory({
        "a": {"tools": [make_tool(f"t{i}", f"Tool number {i}") for i in range(1, 6)]},
    })


@pytest.fixture
def runtime(connection_factory, search_client):
    return ProxyRuntime(connection_factory=connection_factory, search_client=search_client)


class TestDiscover:
    """search_tools."""

    @pytest.mark.asyncio
    async def test_no_tools_available(self, runtime, search_client):
        await runtime.start(make_proxy_config())

        result = await runtime.handler.discover("read a file")

        assert not result.is_error
        assert result.payload == {"error": NO_TOOLS_MESSAGE, "tool_references": []}
        assert json.loads(result.text) == result.payload
        assert search_client.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", [None, "", "   ", 42])
    async def test_query_required(self, runtime, search_client, query):
        await runtime.start(make_proxy_config("a"))

        result = await runtime.handler.discover(query)

        assert result.is_error
        assert result.text == "Error: query parameter is required"
        assert result.category == ErrorCategory.VALIDATION
        assert search_client.requests == []

    @pytest.mark.asyncio
    async def test_max_results_limits_references(self):
        client = FakeSearchClient(search_response("a__t3", "a__t1", "a__t5", "a__t2", "a__t4"))
        runtime = ProxyRuntime(connection_factory=five_tool_factory(), search_client=client)
        await runtime.start(make_proxy_config("a"))

        result = await runtime.handler.discover("numbers", max_results=2)

        assert result.payload["tool_references"] == ["a__t3", "a__t1"]
        assert result.payload["tools"] == [
            {"name": "a__t3", "description": "Tool number 3"},
            {"name": "a__t1", "description": "Tool number 1"},
        ]
        assert result.payload["query"] == "numbers"
        assert result.payload["total_tools_available"] == 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_results", [None, 0])
    async def test_max_results_default(self, max_results):
        names = [f"a__t{i}" for i in range(1, 6)] + ["a__t1"]
        client = FakeSearchClient(search_response(*names))
        runtime = ProxyRuntime(connection_factory=five_tool_factory(), search_client=client)
        await runtime.start(make_proxy_config("a"))

        result = await runtime.handler.discover("numbers", max_results=max_results)

        assert len(result.payload["tool_references"]) == 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_results", [-1, "3", 2.5, True])
    async def test_invalid_max_results(self, runtime, search_client, max_results):
        await runtime.start(make_proxy_config("a"))

        result = await runtime.handler.discover("anything", max_results=max_results)

        assert result.is_error
        assert result.category == ErrorCategory.VALIDATION
        assert search_client.requests == []

    @pytest.mark.asyncio
    async def test_no_matches(self, runtime):
        await runtime.start(make_proxy_config("a", "b"))

        result = await runtime.handler.discover("something unrelated")

        assert not result.is_error
        assert result.payload["tool_references"] == []
        assert result.payload["total_tools_available"] == 3

    @pytest.mark.asyncio
    async def test_search_failure(self, connection_factory):
        client = FakeSearchClient(error=SearchServiceError("Bedrock ThrottlingException: Rate exceeded"))
        runtime = ProxyRuntime(connection_factory=connection_factory, search_client=client)
        await runtime.start(make_proxy_config("a"))

        result = await runtime.handler.discover("anything")

        assert result.is_error
        assert result.text == "Error searching tools: Bedrock ThrottlingException: Rate exceeded"
        assert result.category == ErrorCategory.SEARCH_SERVICE


class TestInvoke:
    """call_tool."""

    @pytest.mark.asyncio
    async def test_routes_to_owning_backend(self, runtime, connection_factory):
        await runtime.start(make_proxy_config("a", "b"))

        result = await runtime.handler.invoke("b__x", {"path": "/tmp"})

        assert not result.is_error
        assert result.payload["content"] == [{"type": "text", "text": "b:x"}]
        assert result.payload["isError"] is False
        assert connection_factory.connections["b"].calls == [("x", {"path": "/tmp"})]
        assert connection_factory.connections["a"].calls == []

    @pytest.mark.asyncio
    async def test_missing_arguments_default_to_empty(self, runtime, connection_factory):
        await runtime.start(make_proxy_config("a"))

        await runtime.handler.invoke("a__y")

        assert connection_factory.connections["a"].calls == [("y", {})]

    @pytest.mark.asyncio
    async def test_unknown_tool(self, runtime, connection_factory):
        await runtime.start(make_proxy_config("a", "b"))

        result = await runtime.handler.invoke("nope", {})

        assert result.is_error
        assert result.text == 'Error: Unknown tool "nope". Use search_tools to find available tools.'
        assert result.category == ErrorCategory.ROUTING
        assert all(conn.calls == [] for conn in connection_factory.connections.values())

    @pytest.mark.asyncio
    async def test_bare_name_is_unknown(self, runtime):
        await runtime.start(make_proxy_config("a", "b"))

        result = await runtime.handler.invoke("x", {})

        assert result.is_error
        assert 'Unknown tool "x"' in result.text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tool_name", [None, "", 7])
    async def test_tool_name_required(self, runtime, tool_name):
        await runtime.start(make_proxy_config("a"))

        result = await runtime.handler.invoke(tool_name, {})

        assert result.is_error
        assert result.text == "Error: tool_name parameter is required"

    @pytest.mark.asyncio
    async def test_arguments_must_be_object(self, runtime, connection_factory):
        await runtime.start(make_proxy_config("a"))

        result = await runtime.handler.invoke("a__x", ["not", "an", "object"])

        assert result.is_error
        assert result.category == ErrorCategory.VALIDATION
        assert connection_factory.connections["a"].calls == []

    @pytest.mark.asyncio
    async def test_backend_error_result_is_passed_through(self, search_client):
        factory = FakeConnectionFactory({
            "a": {"tools": [make_tool("x")], "call_handler": lambda name, args: text_result("file not found", is_error=True)},
        })
        runtime = ProxyRuntime(connection_factory=factory, search_client=search_client)
        await runtime.start(make_proxy_config("a"))

        result = await runtime.handler.invoke("a__x", {})

        assert not result.is_error
        assert result.payload["isError"] is True
        assert result.payload["content"][0]["text"] == "file not found"

    @pytest.mark.asyncio
    async def test_backend_failure(self, search_client):
        def explode(name, args):
            raise ConnectionResetError("pipe closed")

        factory = FakeConnectionFactory({"a": {"tools": [make_tool("x")], "call_handler": explode}})
        runtime = ProxyRuntime(connection_factory=factory, search_client=search_client)
        await runtime.start(make_proxy_config("a"))

        result = await runtime.handler.invoke("a__x", {})

        assert result.is_error
        assert result.text == "Error calling tool: pipe closed"
        assert result.category == ErrorCategory.BACKEND_CALL

    @pytest.mark.asyncio
    async def test_call_after_pool_closed(self, runtime):
        await runtime.start(make_proxy_config("a"))
        await runtime.backend_pool.close()

        result = await runtime.handler.invoke("a__x", {})

        assert result.is_error
        assert result.text == "Error calling tool: Backend server not found: a"

    @pytest.mark.asyncio
    async def test_call_after_shutdown(self, runtime):
        await runtime.start(make_proxy_config("a"))
        await runtime.shutdown()

        result = await runtime.handler.invoke("a__x", {})

        assert result.is_error
        assert 'Unknown tool "a__x"' in result.text


class TestStatusAndSerialization:
    """Status report and result serialization."""

    @pytest.mark.asyncio
    async def test_status(self, runtime):
        await runtime.start(make_proxy_config("a", "b"))

        assert runtime.handler.status() == {
            "backends": {"a": ["a__x", "a__y"], "b": ["b__x"]},
            "backend_count": 2,
            "tool_count": 3,
        }

    def test_serialize_backend_result(self):
        payload = serialize_backend_result(text_result("hello"))

        assert payload == {"content": [{"type": "text", "text": "hello"}], "isError": False}

    def test_serialize_plain_value(self):
        assert serialize_backend_result({"already": "json"}) == {"already": "json"}

    def test_result_from_payload(self):
        result = ProxyResult.from_payload({"k": [1, 2]})

        assert result.text == '{\n  "k": [\n    1,\n    2\n  ]\n}'
        assert not result.is_error
