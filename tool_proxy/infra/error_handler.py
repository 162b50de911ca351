"""Error taxonomy, classification and retry logic for the proxy."""

import asyncio
import random
from typing import Optional, Type, Tuple, Callable, Any
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories of errors for better handling."""
    CONFIGURATION = "configuration"  # Missing/malformed config, tool id collisions
    BACKEND_CONNECTION = "backend_connection"  # Backend failed to connect at startup
    VALIDATION = "validation"  # Caller input errors
    ROUTING = "routing"  # Unknown tool id, missing backend connection
    BACKEND_CALL = "backend_call"  # Transport/backend invocation errors
    SEARCH_SERVICE = "search_service"  # Bedrock errors, malformed search responses
    UNKNOWN = "unknown"


class ProxyError(Exception):
    """Base exception for all proxy errors."""
    def __init__(self, message: str, category: ErrorCategory, retryable: bool = False, retry_after: Optional[float] = None):
        self.message = message
        self.category = category
        self.retryable = retryable
        self.retry_after = retry_after
        super().__init__(message)


class ConfigurationError(ProxyError):
    """Backend configuration document is missing or malformed."""
    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.CONFIGURATION)


class ToolCollisionError(ProxyError):
    """Two registrations produced the same unique tool identifier."""
    def __init__(self, unique_id: str, existing_backend: str, new_backend: str):
        self.unique_id = unique_id
        self.existing_backend = existing_backend
        self.new_backend = new_backend
        super().__init__(
            f"Tool identifier '{unique_id}' from backend '{new_backend}' "
            f"collides with the one registered by '{existing_backend}'",
            ErrorCategory.CONFIGURATION,
        )


class BackendConnectionError(ProxyError):
    """A backend could not be connected or enumerated."""
    def __init__(self, backend_id: str, message: str):
        self.backend_id = backend_id
        super().__init__(f"Failed to connect to {backend_id}: {message}", ErrorCategory.BACKEND_CONNECTION)


class BackendNotFoundError(ProxyError):
    """No live connection exists for a backend (never connected or pool closed)."""
    def __init__(self, backend_id: str):
        self.backend_id = backend_id
        super().__init__(f"Backend server not found: {backend_id}", ErrorCategory.ROUTING)


class UnknownToolError(ProxyError):
    """A unique tool identifier is not present in the tool cache."""
    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(
            f'Unknown tool "{tool_name}". Use search_tools to find available tools.',
            ErrorCategory.ROUTING,
        )


class InvalidRequestError(ProxyError):
    """Caller input validation errors."""
    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.VALIDATION)


class BackendCallError(ProxyError):
    """A tools/call on a backend failed or timed out."""
    def __init__(self, backend_id: str, message: str):
        self.backend_id = backend_id
        super().__init__(message, ErrorCategory.BACKEND_CALL)


class SearchServiceError(ProxyError):
    """The external search capability failed or answered with a malformed body."""
    def __init__(self, message: str, retryable: bool = False, retry_after: Optional[float] = None):
        super().__init__(message, ErrorCategory.SEARCH_SERVICE, retryable=retryable, retry_after=retry_after)


class SearchThrottledError(SearchServiceError):
    """Bedrock throttled the search call."""
    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message, retryable=True, retry_after=retry_after)


# Bedrock error codes that are worth retrying
RETRYABLE_BEDROCK_CODES = {
    "ThrottlingException",
    "TooManyRequestsException",
    "ServiceUnavailableException",
    "ModelNotReadyException",
}


def classify_error(error: Exception) -> Tuple[ErrorCategory, bool, Optional[float]]:
    """
    Classify an error into a category and determine if it's retryable.

    Args:
        error: The exception to classify

    Returns:
        Tuple of (category, retryable, retry_after_seconds)
    """
    if isinstance(error, ProxyError):
        return error.category, error.retryable, error.retry_after

    if isinstance(error, (asyncio.TimeoutError, ConnectionError)):
        return ErrorCategory.BACKEND_CALL, False, None

    return ErrorCategory.UNKNOWN, False, None


def error_message(error: BaseException) -> str:
    """Return a caller-facing message for any exception."""
    if isinstance(error, ProxyError):
        return error.message
    text = str(error)
    if text:
        return text
    return type(error).__name__


async def retry_with_backoff(
    func: Callable,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[Exception, int], None]] = None,
) -> Any:
    """
    Retry a function with exponential backoff.

    Only errors classified as retryable are retried; everything else is
    re-raised immediately.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential backoff
        retryable_exceptions: Tuple of exception types to retry
        on_retry: Optional callback called on each retry (exception, attempt_number)

    Returns:
        Result of the function call

    Raises:
        Last exception if all retries fail
    """
    for attempt in range(max_retries + 1):
        try:
            return await func()
        except retryable_exceptions as e:
            category, retryable, retry_after = classify_error(e)

            if not retryable or attempt >= max_retries:
                raise

            if retry_after:
                delay = min(retry_after, max_delay)
            else:
                delay = min(initial_delay * (exponential_base ** attempt), max_delay)

            # Jitter to avoid thundering herd
            delay += random.uniform(0, delay * 0.1)

            if on_retry:
                result = on_retry(e, attempt + 1)
                if asyncio.iscoroutine(result):
                    await result

            await asyncio.sleep(delay)


def wrap_bedrock_error(error: Exception) -> SearchServiceError:
    """
    Wrap boto3/botocore errors into search service errors.

    Args:
        error: Original exception raised by the bedrock-runtime client

    Returns:
        SearchServiceError (SearchThrottledError when the call may be retried)
    """
    if isinstance(error, SearchServiceError):
        return error

    response = getattr(error, "response", None)
    if isinstance(response, dict):
        error_info = response.get("Error", {}) or {}
        code = error_info.get("Code", "")
        message = error_info.get("Message", "") or str(error)
        if code in RETRYABLE_BEDROCK_CODES:
            return SearchThrottledError(f"Bedrock {code}: {message}")
        if code:
            return SearchServiceError(f"Bedrock {code}: {message}")

    error_lower = str(error).lower()
    if "throttl" in error_lower or "too many requests" in error_lower:
        return SearchThrottledError(f"Bedrock throttled: {error}")

    return SearchServiceError(f"Bedrock invocation failed: {error_message(error)}")
