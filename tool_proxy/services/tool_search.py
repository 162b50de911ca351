"""Tool search delegation: shape the Bedrock request, unpack its response."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from tool_proxy.infra.config import config
from tool_proxy.infra.error_handler import ConfigurationError, SearchServiceError
from tool_proxy.models.search import (
    SEARCH_RESULT_BLOCK_TYPE,
    SUPPORTED_SEARCH_TYPES,
    ContentBlock,
    OtherContentBlock,
    SearchRequest,
    SearchResponse,
    SearchResultBlock,
    ToolReference,
)
from tool_proxy.models.tool import ToolDefinition
from tool_proxy.services.tool_cache import ToolCache

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = config.DEFAULT_MAX_RESULTS
DESCRIPTION_PREVIEW_CHARS = 200


def build_search_request(
    query: str,
    definitions: Sequence[ToolDefinition],
    search_type: str = config.TOOL_SEARCH_TYPE,
) -> SearchRequest:
    """Build the search request for a query over every cached definition."""
    return SearchRequest(query=query, search_type=search_type, candidate_tools=list(definitions))


def _parse_block(raw: Dict[str, Any]) -> ContentBlock:
    block_type = raw.get("type", "")
    if block_type != SEARCH_RESULT_BLOCK_TYPE:
        return OtherContentBlock(type=str(block_type), raw=raw)

    # Error results carry no tool_references; they count as "no matches"
    content = raw.get("content")
    references: List[ToolReference] = []
    if isinstance(content, dict):
        for ref in content.get("tool_references") or []:
            if isinstance(ref, dict) and ref.get("tool_name"):
                references.append(ToolReference(tool_name=ref["tool_name"]))
    return SearchResultBlock(
        tool_use_id=str(raw.get("tool_use_id", "")),
        tool_references=references,
    )


def parse_search_response(raw: Any) -> SearchResponse:
    """
    Parse an InvokeModel response body into typed content blocks.

    Raises:
        SearchServiceError: If the body is not an object with a content list
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("content"), list):
        raise SearchServiceError("Malformed tool search response: missing content blocks")

    blocks = [_parse_block(block) for block in raw["content"] if isinstance(block, dict)]
    return SearchResponse(
        content=blocks,
        stop_reason=str(raw.get("stop_reason") or ""),
        model=str(raw.get("model") or ""),
    )


def extract_tool_references(response: SearchResponse, max_results: int = DEFAULT_MAX_RESULTS) -> List[str]:
    """
    Collect matched tool names from every search result block.

    Order is the service's relevance order and is kept as-is. Other block
    types are ignored; no result blocks means no matches.
    """
    references: List[str] = []
    for block in response.content:
        if isinstance(block, SearchResultBlock):
            references.extend(ref.tool_name for ref in block.tool_references)
    return references[:max_results]


def enrich_references(references: Sequence[str], tool_cache: ToolCache) -> List[Dict[str, str]]:
    """Attach a short description to each reference; unknown ids get an empty one."""
    results = []
    for name in references:
        cached = tool_cache.lookup(name)
        description = cached.definition.description[:DESCRIPTION_PREVIEW_CHARS] if cached else ""
        results.append({"name": name, "description": description})
    return results


@dataclass
class SearchOutcome:
    query: str
    tool_references: List[str]
    tools: List[Dict[str, str]] = field(default_factory=list)
    total_tools_available: int = 0

    def to_payload(self) -> Dict[str, Any]:
        return {
            "tool_references": self.tool_references,
            "tools": self.tools,
            "query": self.query,
            "total_tools_available": self.total_tools_available,
        }


class ToolSearchService:
    """Runs a discovery query against the external search capability."""

    def __init__(self, tool_cache: ToolCache, search_client, search_type: str = config.TOOL_SEARCH_TYPE):
        if search_type not in SUPPORTED_SEARCH_TYPES:
            raise ConfigurationError(
                f"Unsupported tool search type '{search_type}', expected one of {', '.join(SUPPORTED_SEARCH_TYPES)}"
            )
        self.tool_cache = tool_cache
        self.search_client = search_client
        self.search_type = search_type

    async def search(self, query: str, max_results: Optional[int] = None) -> SearchOutcome:
        """
        Search the cached tools for a query.

        Args:
            query: Natural language description of the task
            max_results: Maximum references to return (default: 5)

        Returns:
            SearchOutcome with ordered references and enriched tool entries

        Raises:
            SearchServiceError: If the search call fails or the response is malformed
        """
        definitions = self.tool_cache.all_definitions()
        limit = max_results or DEFAULT_MAX_RESULTS

        logger.info(
            f'Searching {len(definitions)} tools with query: "{query}"',
            extra={"tool_count": len(definitions), "max_results": limit},
        )

        request = build_search_request(query, definitions, self.search_type)
        raw_response = await self.search_client.invoke(request)
        references = extract_tool_references(parse_search_response(raw_response), limit)

        logger.info(
            f"Found {len(references)} matching tools: {', '.join(references)}",
            extra={"match_count": len(references)},
        )

        return SearchOutcome(
            query=query,
            tool_references=references,
            tools=enrich_references(references, self.tool_cache),
            total_tools_available=len(definitions),
        )
