"""Wire models for the Bedrock tool search contract."""

from typing import Any, Dict, List, Union
from pydantic import BaseModel, Field

from tool_proxy.models.tool import ToolDefinition

ANTHROPIC_VERSION = "bedrock-2023-05-31"
TOOL_SEARCH_BETA = "tool-search-tool-2025-10-19"

# Content block type carrying tool search results
SEARCH_RESULT_BLOCK_TYPE = "tool_search_tool_result"

SUPPORTED_SEARCH_TYPES = ("tool_search_tool_regex", "tool_search_tool_bm25")


class SearchRequest(BaseModel):
    """A tool search request: the query plus every candidate definition."""
    query: str
    search_type: str = Field(..., description="Tool search tool type, also used as its name")
    candidate_tools: List[ToolDefinition] = Field(default_factory=list)

    def search_tool_descriptor(self) -> Dict[str, str]:
        # Bedrock requires the name to match the type
        return {"type": self.search_type, "name": self.search_type}

    def to_invoke_body(self, max_tokens: int = 4096) -> Dict[str, Any]:
        """Build the InvokeModel request body.

        The search tool comes first and is never deferred; every candidate
        is marked ``defer_loading`` so its schema is only loaded if selected.
        """
        tools: List[Dict[str, Any]] = [self.search_tool_descriptor()]
        tools.extend(tool.as_deferred() for tool in self.candidate_tools)
        return {
            "anthropic_version": ANTHROPIC_VERSION,
            "anthropic_beta": [TOOL_SEARCH_BETA],
            "max_tokens": max_tokens,
            "messages": [
                {"role": "user", "content": [{"type": "text", "text": self.query}]}
            ],
            "tools": tools,
        }


class ToolReference(BaseModel):
    """One matched tool inside a search result block."""
    tool_name: str


class SearchResultBlock(BaseModel):
    """A ``tool_search_tool_result`` content block."""
    type: str = SEARCH_RESULT_BLOCK_TYPE
    tool_use_id: str = ""
    tool_references: List[ToolReference] = Field(default_factory=list)


class OtherContentBlock(BaseModel):
    """Any content block the proxy does not interpret (text, server_tool_use, ...)."""
    type: str
    raw: Dict[str, Any] = Field(default_factory=dict)


ContentBlock = Union[SearchResultBlock, OtherContentBlock]


class SearchResponse(BaseModel):
    """Parsed InvokeModel response body."""
    content: List[ContentBlock] = Field(default_factory=list)
    stop_reason: str = ""
    model: str = ""
