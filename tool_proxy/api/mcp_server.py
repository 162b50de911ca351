"""MCP server exposing only search_tools and call_tool to the upstream agent."""

import logging
from typing import Any, Dict, List, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from tool_proxy import __version__
from tool_proxy.services.proxy_handler import ProxyRequestHandler

logger = logging.getLogger(__name__)

SERVER_NAME = "tool-proxy"
SERVER_INSTRUCTIONS = (
    "This is a tool proxy server. Use search_tools to find relevant tools, then call_tool "
    "to execute them. Tools are loaded from backend MCP servers."
)

SEARCH_TOOLS = Tool(
    name="search_tools",
    description=(
        "Search for relevant tools from the proxy's backend servers. Returns tool names that "
        "can be used with call_tool. Use this to discover what tools are available for your task."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Natural language description of what you want to do",
            },
            "max_results": {
                "type": "number",
                "description": "Maximum number of tools to return (default: 5)",
            },
        },
        "required": ["query"],
    },
)

CALL_TOOL = Tool(
    name="call_tool",
    description=(
        "Execute a tool discovered via search_tools. Pass the exact tool name returned by search_tools."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "tool_name": {
                "type": "string",
                "description": "The tool name returned by search_tools (format: server__toolname)",
            },
            "arguments": {
                "type": "object",
                "description": "Arguments to pass to the tool",
            },
        },
        "required": ["tool_name"],
    },
)


class ProxyToolError(Exception):
    """Raised inside the MCP handler so the SDK returns an ``isError`` result."""


def list_proxy_tools() -> List[Tool]:
    return [SEARCH_TOOLS, CALL_TOOL]


async def dispatch_tool_call(
    handler: ProxyRequestHandler,
    name: str,
    arguments: Optional[Dict[str, Any]],
) -> List[TextContent]:
    """
    Run one upstream tool call against the proxy handler.

    Returns:
        Text content for a successful result

    Raises:
        ProxyToolError: For error results; the SDK turns it into ``isError: true``
    """
    arguments = arguments or {}
    if name == SEARCH_TOOLS.name:
        result = await handler.discover(arguments.get("query"), arguments.get("max_results"))
    elif name == CALL_TOOL.name:
        result = await handler.invoke(arguments.get("tool_name"), arguments.get("arguments"))
    else:
        raise ProxyToolError(f"Unknown tool: {name}")

    if result.is_error:
        raise ProxyToolError(result.text)
    return [TextContent(type="text", text=result.text)]


def create_mcp_server(handler: ProxyRequestHandler) -> Server:
    """Build the low-level MCP server bound to one proxy handler."""
    server = Server(SERVER_NAME, version=__version__, instructions=SERVER_INSTRUCTIONS)

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        return list_proxy_tools()

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
        return await dispatch_tool_call(handler, name, arguments)

    return server


async def run_stdio_server(server: Server) -> None:
    """Serve MCP over stdin/stdout until the upstream disconnects."""
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Tool Proxy MCP Server running on stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())
