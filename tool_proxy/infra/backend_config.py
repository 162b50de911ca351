"""Backend configuration document loading.

The document is JSON of the form::

    {
        "backends": {
            "github": {"command": "npx", "args": ["-y", "@modelcontextprotocol/server-github"],
                       "env": {"GITHUB_TOKEN": "${GITHUB_TOKEN}"}},
            "docs": {"type": "http", "url": "https://docs.example.com/mcp",
                     "headers": {"Authorization": "Bearer ${DOCS_TOKEN}"}}
        }
    }

``${VAR}`` placeholders are replaced from the process environment before the
text is parsed.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from tool_proxy.infra.error_handler import ConfigurationError
from tool_proxy.models.backend import (
    BackendConfig,
    HttpBackendConfig,
    ProxyConfig,
    StdioBackendConfig,
    WebSocketBackendConfig,
)

logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{(\w+)\}")


def substitute_env_vars(text: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Replace ``${VAR}`` placeholders with environment values.

    Unset variables are replaced with an empty string.

    Args:
        text: Raw document text
        environ: Variables to substitute from (default: os.environ)

    Returns:
        Text with every placeholder substituted
    """
    env = os.environ if environ is None else environ
    return _ENV_VAR_PATTERN.sub(lambda match: env.get(match.group(1), ""), text)


def parse_backend_config(backend_id: str, raw: Dict[str, Any]) -> BackendConfig:
    """
    Select and validate the transport variant for one backend entry.

    An explicit ``type`` wins; otherwise a ``url`` selects a remote transport
    (WebSocket for ws:// and wss:// URLs, streamable HTTP otherwise) and a
    ``command`` selects a stdio subprocess.

    Raises:
        ConfigurationError: If the entry matches no transport or fails validation
    """
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Backend '{backend_id}' must be an object")

    transport = raw.get("type")
    url = raw.get("url")
    if transport is None:
        if url:
            transport = "websocket" if str(url).lower().startswith(("ws://", "wss://")) else "http"
        elif raw.get("command"):
            transport = "stdio"
        else:
            raise ConfigurationError(f"Backend '{backend_id}' needs either 'command' or 'url'")

    model = {
        "stdio": StdioBackendConfig,
        "http": HttpBackendConfig,
        "websocket": WebSocketBackendConfig,
    }.get(transport)
    if model is None:
        raise ConfigurationError(f"Backend '{backend_id}' has unsupported type '{transport}'")

    try:
        return model.model_validate({**raw, "type": transport})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config for backend '{backend_id}': {e}")


def parse_proxy_config(document: Dict[str, Any]) -> ProxyConfig:
    """
    Build a ProxyConfig from a decoded document.

    Invalid backend entries are logged and skipped so the remaining backends
    still come up.
    """
    if not isinstance(document, dict):
        raise ConfigurationError("Proxy config must be a JSON object")

    raw_backends = document.get("backends", {})
    if not isinstance(raw_backends, dict):
        raise ConfigurationError("'backends' must be an object keyed by backend id")

    backends: Dict[str, BackendConfig] = {}
    for backend_id, raw in raw_backends.items():
        try:
            backends[backend_id] = parse_backend_config(backend_id, raw)
        except ConfigurationError as e:
            logger.error(f"Skipping backend {backend_id}: {e}", extra={"backend": backend_id})

    return ProxyConfig(backends=backends)


def load_proxy_config(path: Union[str, Path], environ: Optional[Mapping[str, str]] = None) -> ProxyConfig:
    """
    Read, substitute and parse the backend configuration file.

    Args:
        path: Path to the JSON document
        environ: Variables for ``${VAR}`` substitution (default: os.environ)

    Returns:
        ProxyConfig with backends in declaration order

    Raises:
        ConfigurationError: If the file is missing, unreadable or not valid JSON
    """
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read proxy config {config_path}: {e}")

    try:
        document = json.loads(substitute_env_vars(raw, environ))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Proxy config {config_path} is not valid JSON: {e}")

    return parse_proxy_config(document)
