"""Tools API router: HTTP rendition of search_tools and call_tool."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from tool_proxy.api.models import CallToolRequest, SearchToolsRequest
from tool_proxy.infra.error_handler import ErrorCategory
from tool_proxy.services.proxy_handler import ProxyRequestHandler, ProxyResult

router = APIRouter()

STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.ROUTING: 404,
    ErrorCategory.BACKEND_CALL: 502,
    ErrorCategory.SEARCH_SERVICE: 502,
}


def get_handler(request: Request) -> ProxyRequestHandler:
    """Proxy handler of the runtime the app was created for."""
    return request.app.state.runtime.handler


def to_response(result: ProxyResult) -> JSONResponse:
    if result.is_error:
        status_code = STATUS_BY_CATEGORY.get(result.category, 500)
        return JSONResponse(
            status_code=status_code,
            content={"error": result.text, "category": result.category.value if result.category else None},
        )
    return JSONResponse(status_code=200, content=result.payload)


@router.post("/tools/search", tags=["Tools"])
async def search_tools(request: SearchToolsRequest, handler: ProxyRequestHandler = Depends(get_handler)):
    """
    Search the backend tools for a natural language query.

    Returns the matched unique tool names in relevance order with short
    descriptions. When no backend is connected, returns an ``error`` field
    and an empty ``tool_references`` list with status 200.
    """
    result = await handler.discover(request.query, request.max_results)
    return to_response(result)


@router.post("/tools/call", tags=["Tools"])
async def call_tool(request: CallToolRequest, handler: ProxyRequestHandler = Depends(get_handler)):
    """
    Call a backend tool by its unique name (``backend__tool``).

    The backend result is returned unmodified.
    """
    result = await handler.invoke(request.tool_name, request.arguments)
    return to_response(result)
