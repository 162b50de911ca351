"""Backend server configuration models."""

from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field


class StdioBackendConfig(BaseModel):
    """Local backend spawned as a subprocess speaking MCP over stdio."""
    type: Literal["stdio"] = "stdio"
    command: str = Field(..., description="Executable to spawn")
    args: List[str] = Field(default_factory=list, description="Command line arguments")
    env: Dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables, merged over the proxy's own environment",
    )
    cwd: Optional[str] = Field(default=None, description="Working directory for the subprocess")


class HttpBackendConfig(BaseModel):
    """Remote backend reached over MCP streamable HTTP."""
    type: Literal["http"] = "http"
    url: str = Field(..., description="Streamable HTTP endpoint")
    headers: Dict[str, str] = Field(default_factory=dict, description="Headers sent with every request")


class WebSocketBackendConfig(BaseModel):
    """Remote backend reached over an MCP WebSocket."""
    type: Literal["websocket"] = "websocket"
    url: str = Field(..., description="ws:// or wss:// endpoint")


BackendConfig = Union[StdioBackendConfig, HttpBackendConfig, WebSocketBackendConfig]


class ProxyConfig(BaseModel):
    """Parsed backend configuration document."""
    backends: Dict[str, BackendConfig] = Field(default_factory=dict)
