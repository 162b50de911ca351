#!/usr/bin/env python3
"""Connect every configured backend once and list the tools it provides.

Usage:
    python scripts/check_backends.py [--config proxy-config.json] [--json]

Useful to validate a backend config before pointing an agent at the proxy.
Exits non-zero when a backend fails to connect.
"""

import argparse
import asyncio
import json
import sys

from tool_proxy.infra.config import config
from tool_proxy.runtime import ProxyRuntime


async def check_backends(config_path: str) -> dict:
    runtime = ProxyRuntime(config_path=config_path)
    proxy_config = runtime.load_config()
    try:
        await runtime.start(proxy_config)
        status = runtime.handler.status()
        status["failed"] = [
            backend_id for backend_id in proxy_config.backends
            if backend_id not in status["backends"]
        ]
        return status
    finally:
        await runtime.shutdown()


def main():
    parser = argparse.ArgumentParser(description="Check backend MCP servers")
    parser.add_argument(
        "--config",
        default=config.PROXY_CONFIG,
        help=f"Backend config file (default: {config.PROXY_CONFIG})",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )

    args = parser.parse_args()
    status = asyncio.run(check_backends(args.config))

    if args.json:
        print(json.dumps(status, indent=2))
    else:
        for backend_id, tool_ids in status["backends"].items():
            print(f"{backend_id}: {len(tool_ids)} tools")
            for tool_id in tool_ids:
                print(f"  - {tool_id}")
        for backend_id in status["failed"]:
            print(f"{backend_id}: FAILED")
        print(f"\n{status['tool_count']} tools from {status['backend_count']} backends")

    return 1 if status["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
