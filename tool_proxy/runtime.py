"""Process-level wiring: one cache, one pool, one search service, one handler."""

import logging
from pathlib import Path
from typing import Optional, Union

from tool_proxy.adapters.bedrock_client import BedrockSearchClient
from tool_proxy.adapters.mcp_client import create_backend_connection
from tool_proxy.infra.backend_config import load_proxy_config
from tool_proxy.infra.config import config
from tool_proxy.infra.error_handler import ConfigurationError
from tool_proxy.infra.metrics import cached_tools
from tool_proxy.models.backend import ProxyConfig
from tool_proxy.services.backend_pool import BackendPool, ConnectionFactory
from tool_proxy.services.proxy_handler import ProxyRequestHandler
from tool_proxy.services.tool_cache import ToolCache
from tool_proxy.services.tool_search import ToolSearchService

logger = logging.getLogger(__name__)


class ProxyRuntime:
    """Owns every shared instance of one proxy.

    Instances are independent, so several proxies (or tests) can live in
    one process.
    """

    def __init__(
        self,
        config_path: Union[str, Path, None] = None,
        search_client=None,
        connection_factory: ConnectionFactory = create_backend_connection,
        collision_policy: str = config.TOOL_COLLISION_POLICY,
        connect_timeout: float = config.BACKEND_CONNECT_TIMEOUT,
        call_timeout: float = config.BACKEND_CALL_TIMEOUT,
        search_type: str = config.TOOL_SEARCH_TYPE,
    ):
        self.config_path = config_path if config_path is not None else config.PROXY_CONFIG
        self.tool_cache = ToolCache(collision_policy=collision_policy)
        self.backend_pool = BackendPool(
            self.tool_cache,
            connection_factory=connection_factory,
            connect_timeout=connect_timeout,
            call_timeout=call_timeout,
        )
        self.search_client = search_client if search_client is not None else BedrockSearchClient()
        self.search_service = ToolSearchService(self.tool_cache, self.search_client, search_type=search_type)
        self.handler = ProxyRequestHandler(self.tool_cache, self.backend_pool, self.search_service)
        self._started = False
        self._closed = False

    def load_config(self) -> ProxyConfig:
        """Load the backend config; a bad document degrades to zero backends."""
        logger.info(f"Loading backend config from: {self.config_path}")
        try:
            return load_proxy_config(self.config_path)
        except ConfigurationError as e:
            logger.warning(f"Failed to load backends: {e.message}")
            logger.warning("Server will start but no tools will be available")
            return ProxyConfig()

    async def start(self, proxy_config: Optional[ProxyConfig] = None) -> None:
        """Connect every backend. Only the first call has an effect."""
        if self._started:
            return
        self._started = True
        if proxy_config is None:
            proxy_config = self.load_config()
        await self.backend_pool.initialize(proxy_config)
        logger.info(
            f"{self.tool_cache.size} tools available from {len(self.backend_pool.connected_backends())} backends"
        )

    async def shutdown(self) -> None:
        """Tear the pool down and drop the cache. Idempotent."""
        if self._closed:
            return
        self._closed = True
        logger.info("Shutting down...")
        await self.backend_pool.close()
        self.tool_cache.clear()
        cached_tools.set(0)
