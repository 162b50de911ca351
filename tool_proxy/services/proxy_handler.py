"""The two upstream operations: discover (search_tools) and invoke (call_tool)."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from tool_proxy.infra.error_handler import (
    ErrorCategory,
    InvalidRequestError,
    UnknownToolError,
    classify_error,
    error_message,
)
from tool_proxy.infra.metrics import proxy_requests_total
from tool_proxy.services.backend_pool import BackendPool
from tool_proxy.services.tool_cache import ToolCache
from tool_proxy.services.tool_search import DEFAULT_MAX_RESULTS, ToolSearchService

logger = logging.getLogger(__name__)

NO_TOOLS_MESSAGE = "No tools available. Backend servers may not be connected."


@dataclass
class ProxyResult:
    """Caller-visible outcome of one proxy operation."""
    text: str
    is_error: bool = False
    payload: Optional[Any] = None  # structured form of ``text`` when there is one
    category: Optional[ErrorCategory] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ProxyResult":
        return cls(text=json.dumps(payload, indent=2, default=str), payload=payload)

    @classmethod
    def error(cls, text: str, category: ErrorCategory) -> "ProxyResult":
        return cls(text=text, is_error=True, category=category)


def serialize_backend_result(result: Any) -> Any:
    """JSON-compatible form of a backend result, without interpreting it."""
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)
    return result


def _validate_max_results(max_results: Any) -> int:
    if max_results is None or max_results == 0:
        return DEFAULT_MAX_RESULTS
    if isinstance(max_results, bool):
        raise InvalidRequestError("max_results must be a positive integer")
    if isinstance(max_results, float) and max_results.is_integer():
        max_results = int(max_results)
    if not isinstance(max_results, int) or max_results < 0:
        raise InvalidRequestError("max_results must be a positive integer")
    return max_results


class ProxyRequestHandler:
    """Validates caller input, orchestrates cache/pool/search and shapes results.

    Nothing raised below this class escapes it: every failure becomes an
    error ProxyResult.
    """

    def __init__(self, tool_cache: ToolCache, backend_pool: BackendPool, search_service: ToolSearchService):
        self.tool_cache = tool_cache
        self.backend_pool = backend_pool
        self.search_service = search_service

    async def discover(self, query: Any, max_results: Any = None) -> ProxyResult:
        """Find tools relevant to a natural language query."""
        if not query or not isinstance(query, str) or not query.strip():
            proxy_requests_total.labels(operation="search_tools", status="invalid").inc()
            return ProxyResult.error("Error: query parameter is required", ErrorCategory.VALIDATION)

        try:
            limit = _validate_max_results(max_results)

            if self.tool_cache.size == 0:
                proxy_requests_total.labels(operation="search_tools", status="no_tools").inc()
                return ProxyResult.from_payload({"error": NO_TOOLS_MESSAGE, "tool_references": []})

            outcome = await self.search_service.search(query, limit)
        except Exception as e:
            category, _, _ = classify_error(e)
            logger.error(f"search_tools failed: {error_message(e)}", exc_info=True, extra={"category": category.value})
            proxy_requests_total.labels(operation="search_tools", status="error").inc()
            return ProxyResult.error(f"Error searching tools: {error_message(e)}", category)

        proxy_requests_total.labels(operation="search_tools", status="success").inc()
        return ProxyResult.from_payload(outcome.to_payload())

    async def invoke(self, tool_name: Any, arguments: Any = None) -> ProxyResult:
        """Route a call to the backend owning ``tool_name`` and return its raw result."""
        if not tool_name or not isinstance(tool_name, str):
            proxy_requests_total.labels(operation="call_tool", status="invalid").inc()
            return ProxyResult.error("Error: tool_name parameter is required", ErrorCategory.VALIDATION)

        route = self.tool_cache.resolve_route(tool_name)
        if route is None:
            proxy_requests_total.labels(operation="call_tool", status="unknown_tool").inc()
            return ProxyResult.error(f"Error: {UnknownToolError(tool_name).message}", ErrorCategory.ROUTING)

        try:
            if arguments is None:
                arguments = {}
            if not isinstance(arguments, dict):
                raise InvalidRequestError("arguments must be an object")

            logger.info(
                f"Routing {tool_name} -> {route.backend_id}::{route.tool_name}",
                extra={"tool": tool_name, "backend": route.backend_id},
            )
            result = await self.backend_pool.call_tool(route.backend_id, route.tool_name, arguments)
            payload = serialize_backend_result(result)
        except Exception as e:
            category, _, _ = classify_error(e)
            logger.error(f"call_tool {tool_name} failed: {error_message(e)}", exc_info=True, extra={"category": category.value})
            proxy_requests_total.labels(operation="call_tool", status="error").inc()
            return ProxyResult.error(f"Error calling tool: {error_message(e)}", category)

        proxy_requests_total.labels(operation="call_tool", status="success").inc()
        return ProxyResult.from_payload(payload)

    def status(self) -> Dict[str, Any]:
        """Connected backends and their tool identifiers."""
        backends = self.backend_pool.connected_backends()
        return {
            "backends": {backend_id: self.tool_cache.tools_for_backend(backend_id) for backend_id in backends},
            "backend_count": len(backends),
            "tool_count": self.tool_cache.size,
        }
