"""End-to-end flows through the runtime and the CLI entry point."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from conftest import FakeConnectionFactory, FakeSearchClient, make_tool, search_response
from tool_proxy import main as cli
from tool_proxy.runtime import ProxyRuntime


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "proxy-config.json"
    path.write_text(json.dumps({
        "backends": {
            "a": {"command": "server-a"},
            "broken": {"command": "server-broken"},
            "b": {"url": "https://b.example.com/mcp"},
            "invalid": {"args": ["no command or url"]},
        }
    }))
    return path


@pytest.fixture
def factory():
    return FakeConnectionFactory({
        "a": {"tools": [make_tool("x", "x on a"), make_tool("y", "y on a")]},
        "broken": {"connect_error": OSError("exec format error")},
        "b": {"tools": [make_tool("x", "x on b")]},
    })


class TestProxyFlow:
    """Startup, discovery, invocation and shutdown."""

    @pytest.mark.asyncio
    async def test_full_flow(self, config_file, factory):
        runtime = ProxyRuntime(
            config_path=config_file,
            connection_factory=factory,
            search_client=FakeSearchClient(search_response("b__x", "a__x")),
        )

        await runtime.start()

        assert set(runtime.tool_cache.list_identifiers()) == {"a__x", "a__y", "b__x"}
        assert runtime.tool_cache.resolve_route("x") is None
        assert runtime.backend_pool.connected_backends() == ["a", "b"]
        assert "invalid" not in factory.connections

        found = await runtime.handler.discover("x", max_results=1)
        assert found.payload["tool_references"] == ["b__x"]

        called = await runtime.handler.invoke(found.payload["tool_references"][0], {})
        assert called.payload["content"][0]["text"] == "b:x"
        assert factory.connections["b"].calls == [("x", {})]

        await runtime.shutdown()
        await runtime.shutdown()

        assert factory.connections["a"].close_count == 1
        assert factory.connections["b"].close_count == 1
        assert runtime.tool_cache.size == 0

    @pytest.mark.asyncio
    async def test_start_only_once(self, config_file, factory):
        runtime = ProxyRuntime(config_path=config_file, connection_factory=factory, search_client=FakeSearchClient())

        await runtime.start()
        await runtime.start()

        assert runtime.backend_pool.connected_backends() == ["a", "b"]
        await runtime.shutdown()

    @pytest.mark.asyncio
    async def test_run_stdio_shuts_down(self, config_file, factory):
        runtime = ProxyRuntime(config_path=config_file, connection_factory=factory, search_client=FakeSearchClient())

        with patch("tool_proxy.api.mcp_server.run_stdio_server", new_callable=AsyncMock) as serve:
            await cli.run_stdio(runtime)

        serve.assert_awaited_once()
        assert runtime.backend_pool.connected_backends() == []
        assert factory.connections["a"].close_count == 1


class TestCommandLine:
    """Argument handling of the tool-proxy command."""

    def test_http_transport(self, config_file):
        with patch.object(cli, "run_http") as run_http:
            exit_code = cli.main(["--config", str(config_file), "--transport", "http", "--port", "9000"])

        assert exit_code == 0
        runtime, host, port = run_http.call_args.args
        assert isinstance(runtime, ProxyRuntime)
        assert runtime.config_path == str(config_file)
        assert port == 9000

    def test_stdio_transport(self, config_file):
        with patch.object(cli, "run_stdio", new_callable=AsyncMock) as run_stdio:
            exit_code = cli.main(["--config", str(config_file)])

        assert exit_code == 0
        run_stdio.assert_awaited_once()

    def test_fatal_error(self, config_file):
        with patch.object(cli, "run_stdio", new_callable=AsyncMock, side_effect=RuntimeError("boom")):
            assert cli.main(["--config", str(config_file)]) == 1
