"""MCP tool proxy: exposes search_tools and call_tool in front of many backend MCP servers."""

__version__ = "1.0.0"
