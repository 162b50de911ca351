"""Tool proxy entry point.

Usage:
    tool-proxy [--config proxy-config.json] [--transport stdio|http] [--host HOST] [--port PORT]

stdio (default) serves MCP to the upstream agent over stdin/stdout. http
serves the FastAPI surface with uvicorn.
"""

import argparse
import asyncio
import signal
import sys

from tool_proxy.infra.config import config
from tool_proxy.infra.logging import proxy_logger
from tool_proxy.runtime import ProxyRuntime


async def run_stdio(runtime: ProxyRuntime) -> None:
    """
    Run the MCP stdio server until stdin closes or a shutdown signal arrives.

    Backends are connected and torn down from this same task.
    """
    from tool_proxy.api.mcp_server import create_mcp_server, run_stdio_server

    loop = asyncio.get_running_loop()
    main_task = asyncio.current_task()

    def _request_shutdown(sig: signal.Signals) -> None:
        proxy_logger.info(f"Received {sig.name}, shutting down")
        main_task.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_shutdown, sig)
        except NotImplementedError:
            # Windows event loops have no signal handlers; KeyboardInterrupt still works
            pass

    try:
        proxy_logger.info("Starting Tool Proxy MCP Server...")
        await runtime.start()
        await run_stdio_server(create_mcp_server(runtime.handler))
    except asyncio.CancelledError:
        pass
    finally:
        await runtime.shutdown()


def run_http(runtime: ProxyRuntime, host: str, port: int) -> None:
    """Serve the HTTP surface; uvicorn handles signals and drives the lifespan."""
    import uvicorn
    from tool_proxy.api.app import create_app

    uvicorn.run(
        create_app(runtime),
        host=host,
        port=port,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=30,
        log_config=None,
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="MCP tool proxy")
    parser.add_argument(
        "--config",
        default=config.PROXY_CONFIG,
        help=f"Backend config file (default: {config.PROXY_CONFIG})",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default=config.PROXY_TRANSPORT if config.PROXY_TRANSPORT in ("stdio", "http") else "stdio",
        help="Upstream transport (default: stdio)",
    )
    parser.add_argument("--host", default=config.HTTP_HOST, help="Host for the http transport")
    parser.add_argument("--port", type=int, default=config.HTTP_PORT, help="Port for the http transport")

    args = parser.parse_args(argv)
    runtime = ProxyRuntime(config_path=args.config)

    try:
        if args.transport == "http":
            run_http(runtime, args.host, args.port)
        else:
            asyncio.run(run_stdio(runtime))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        proxy_logger.error(f"Fatal error: {e}", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
