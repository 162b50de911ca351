"""API request/response models."""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field


# ============================================================================
# Tools Models
# ============================================================================

class SearchToolsRequest(BaseModel):
    """Request model for tool discovery."""
    query: Optional[str] = Field(None, description="Natural language description of what you want to do")
    max_results: Optional[int] = Field(None, description="Maximum number of tools to return (default: 5)")


class CallToolRequest(BaseModel):
    """Request model for tool invocation."""
    tool_name: Optional[str] = Field(None, description="Unique tool name returned by search (format: server__toolname)")
    arguments: Optional[Dict[str, Any]] = Field(None, description="Arguments to pass to the tool")


# ============================================================================
# Status Models
# ============================================================================

class StatusResponse(BaseModel):
    """Connected backends and the tools each one contributes."""
    backends: Dict[str, List[str]]
    backend_count: int
    tool_count: int
