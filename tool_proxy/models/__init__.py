from .backend import (
    BackendConfig,
    HttpBackendConfig,
    ProxyConfig,
    StdioBackendConfig,
    WebSocketBackendConfig,
)
from .search import SearchRequest, SearchResponse, SearchResultBlock, OtherContentBlock
from .tool import CachedTool, ToolDefinition, ToolRoute

__all__ = [
    "BackendConfig",
    "HttpBackendConfig",
    "ProxyConfig",
    "StdioBackendConfig",
    "WebSocketBackendConfig",
    "SearchRequest",
    "SearchResponse",
    "SearchResultBlock",
    "OtherContentBlock",
    "CachedTool",
    "ToolDefinition",
    "ToolRoute",
]
