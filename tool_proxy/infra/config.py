"""Configuration management for the tool proxy."""

import os
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv

from tool_proxy.infra.timeout import (
    BACKEND_CALL_TIMEOUT,
    BACKEND_CONNECT_TIMEOUT,
    REQUEST_TIMEOUT,
    SEARCH_CALL_TIMEOUT,
)

# Load .env file from project root
# override=False means existing environment variables take precedence
project_root = Path(__file__).parent.parent.parent
env_file = project_root / ".env"
load_dotenv(dotenv_path=env_file, override=False)


def _get_float(name: str, default: float) -> float:
    """Read a float setting, falling back to the default on bad input."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_int(name: str, default: int) -> int:
    """Read an integer setting, falling back to the default on bad input."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Config:
    """Proxy configuration read from the process environment."""
    # Backend config document
    PROXY_CONFIG: str = os.getenv("PROXY_CONFIG", "./proxy-config.json")
    TOOL_COLLISION_POLICY: str = os.getenv("TOOL_COLLISION_POLICY", "replace").lower()

    # Upstream transport: "stdio" (MCP) or "http" (FastAPI)
    PROXY_TRANSPORT: str = os.getenv("PROXY_TRANSPORT", "stdio").lower()
    HTTP_HOST: str = os.getenv("HTTP_HOST", "127.0.0.1")
    HTTP_PORT: int = _get_int("HTTP_PORT", 8000)

    # Bedrock search capability
    AWS_REGION: str = os.getenv("AWS_REGION", "us-west-2")
    AWS_PROFILE: Optional[str] = os.getenv("AWS_PROFILE") or None
    BEDROCK_MODEL_ID: str = os.getenv(
        "BEDROCK_MODEL_ID",
        "global.anthropic.claude-opus-4-5-20251101-v1:0",
    )
    TOOL_SEARCH_TYPE: str = os.getenv("TOOL_SEARCH_TYPE", "tool_search_tool_regex")
    SEARCH_MAX_TOKENS: int = _get_int("SEARCH_MAX_TOKENS", 4096)
    SEARCH_MAX_RETRIES: int = _get_int("SEARCH_MAX_RETRIES", 2)
    DEFAULT_MAX_RESULTS: int = _get_int("DEFAULT_MAX_RESULTS", 5)

    # Deadlines (seconds)
    BACKEND_CONNECT_TIMEOUT: float = _get_float("BACKEND_CONNECT_TIMEOUT", BACKEND_CONNECT_TIMEOUT)
    BACKEND_CALL_TIMEOUT: float = _get_float("BACKEND_CALL_TIMEOUT", BACKEND_CALL_TIMEOUT)
    SEARCH_CALL_TIMEOUT: float = _get_float("SEARCH_CALL_TIMEOUT", SEARCH_CALL_TIMEOUT)
    REQUEST_TIMEOUT: float = _get_float("REQUEST_TIMEOUT", REQUEST_TIMEOUT)

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json").lower()


config = Config()
