"""Prometheus metrics export."""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Upstream operations (search_tools / call_tool)
proxy_requests_total = Counter(
    "tool_proxy_requests_total",
    "Total proxy operations handled",
    ["operation", "status"],
)

# Backend tool calls
backend_calls_total = Counter(
    "tool_proxy_backend_calls_total",
    "Total tool calls routed to backends",
    ["backend", "status"],
)

backend_call_duration = Histogram(
    "tool_proxy_backend_call_duration_seconds",
    "Backend tool call duration in seconds",
    ["backend"],
)

# Search capability calls
search_calls_total = Counter(
    "tool_proxy_search_calls_total",
    "Total Bedrock tool search invocations",
    ["status"],
)

search_call_duration = Histogram(
    "tool_proxy_search_call_duration_seconds",
    "Bedrock tool search duration in seconds",
)

# Pool state
backends_connected = Gauge(
    "tool_proxy_backends_connected",
    "Number of backends with a live connection",
)

cached_tools = Gauge(
    "tool_proxy_cached_tools",
    "Number of tools in the tool cache",
)


def get_metrics_response() -> Response:
    """Get Prometheus metrics as HTTP response."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
