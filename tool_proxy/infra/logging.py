"""Structured logging configuration."""

import logging
import sys
from pythonjsonlogger import jsonlogger
from tool_proxy.infra.config import config


def setup_logging(debug: bool = config.DEBUG, log_format: str = config.LOG_FORMAT):
    """Setup structured logging on stderr.

    stdout is reserved for the MCP stdio protocol, so every handler writes
    to stderr.
    """
    logger = logging.getLogger("tool_proxy")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Remove existing handlers
    logger.handlers = []

    if log_format == "text":
        formatter = logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Set levels for third-party loggers
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("mcp").setLevel(logging.WARNING)

    return logger


# Initialize logging
proxy_logger = setup_logging()
