"""Tool definition and cache entry models."""

from dataclasses import dataclass
from typing import Dict, Any, Optional
from pydantic import BaseModel, ConfigDict, Field

# Separator between backend id and original tool name in unique identifiers
TOOL_ID_SEPARATOR = "__"


def empty_input_schema() -> Dict[str, Any]:
    """Schema used when a backend tool declares no input schema."""
    return {"type": "object", "properties": {}}


def make_unique_id(backend_id: str, original_name: str) -> str:
    """Build the globally unique identifier for a backend tool."""
    return f"{backend_id}{TOOL_ID_SEPARATOR}{original_name}"


class ToolDefinition(BaseModel):
    """Tool definition in the Anthropic tool schema shape."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Tool name (unique identifier once cached)")
    description: str = Field(default="", description="Tool description")
    input_schema: Dict[str, Any] = Field(
        default_factory=empty_input_schema,
        description="JSON Schema for the tool arguments",
    )
    defer_loading: Optional[bool] = Field(
        default=None,
        description="Ask the search capability to load the schema only when the tool is selected",
    )

    def as_deferred(self) -> Dict[str, Any]:
        """Serialize as a search candidate marked for deferred loading."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
            "defer_loading": True,
        }


@dataclass(frozen=True)
class ToolRoute:
    """Where a call_tool request is dispatched to."""
    backend_id: str
    tool_name: str  # name as known to the backend


@dataclass(frozen=True)
class CachedTool:
    """A backend tool registered in the tool cache."""
    backend_id: str
    original_name: str
    unique_id: str  # backend_id__original_name
    definition: ToolDefinition  # carries unique_id as its name

    @property
    def route(self) -> ToolRoute:
        return ToolRoute(backend_id=self.backend_id, tool_name=self.original_name)
