"""Amazon Bedrock client for the Anthropic tool search capability."""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

import boto3

from tool_proxy.infra.config import config
from tool_proxy.infra.error_handler import (
    SearchServiceError,
    retry_with_backoff,
    wrap_bedrock_error,
)
from tool_proxy.infra.metrics import search_call_duration, search_calls_total
from tool_proxy.models.search import SearchRequest

logger = logging.getLogger(__name__)


class BedrockSearchClient:
    """Sends tool search requests to Bedrock through the InvokeModel API.

    Tool search is only available on InvokeModel, not on Converse.
    """

    def __init__(
        self,
        region: str = config.AWS_REGION,
        profile: Optional[str] = config.AWS_PROFILE,
        model_id: str = config.BEDROCK_MODEL_ID,
        max_tokens: int = config.SEARCH_MAX_TOKENS,
        timeout: float = config.SEARCH_CALL_TIMEOUT,
        max_retries: int = config.SEARCH_MAX_RETRIES,
    ):
        self.region = region
        self.profile = profile
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = None

    @property
    def client(self):
        """Lazy initialization of the bedrock-runtime client."""
        if self._client is None:
            session = boto3.Session(profile_name=self.profile, region_name=self.region)
            self._client = session.client("bedrock-runtime")
        return self._client

    def _invoke_sync(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.client.invoke_model(
                modelId=self.model_id,
                contentType="application/json",
                accept="application/json",
                body=json.dumps(body),
            )
            payload = response["body"].read()
        except Exception as e:
            raise wrap_bedrock_error(e) from e

        try:
            return json.loads(payload)
        except (TypeError, ValueError) as e:
            raise SearchServiceError(f"Bedrock returned a non-JSON body: {e}")

    async def _invoke_once(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return await asyncio.wait_for(asyncio.to_thread(self._invoke_sync, body), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise SearchServiceError(f"Bedrock tool search timed out after {self.timeout} seconds")

    async def invoke(self, request: SearchRequest) -> Dict[str, Any]:
        """
        Run one tool search and return the decoded response body.

        Throttling is retried with backoff; every other failure is raised
        as SearchServiceError.

        Args:
            request: Search request with query and candidate tools

        Returns:
            Raw InvokeModel response body (dict)

        Raises:
            SearchServiceError: If Bedrock fails, times out or answers non-JSON
        """
        body = request.to_invoke_body(self.max_tokens)

        def _log_retry(error: Exception, attempt: int) -> None:
            logger.warning(
                f"Retrying Bedrock tool search (attempt {attempt}): {error}",
                extra={"attempt": attempt, "model_id": self.model_id},
            )

        start_time = time.time()
        status = "failure"
        try:
            result = await retry_with_backoff(
                lambda: self._invoke_once(body),
                max_retries=self.max_retries,
                retryable_exceptions=(SearchServiceError,),
                on_retry=_log_retry,
            )
            status = "success"
            return result
        finally:
            search_calls_total.labels(status=status).inc()
            search_call_duration.observe(time.time() - start_time)
