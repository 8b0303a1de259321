# SPDX-License-Identifier: GPL-3.0-only OR MIT
"""
Main entry point for the npm package MCP server.

Runs over STDIO by default, or as an HTTP server when TRANSPORT_MODE=http.
"""

import asyncio
import atexit
import logging
import shutil
import signal
import sys
from pathlib import Path

import mcp.server.stdio

from .config import ServerConfig, load_config, set_config

logger = logging.getLogger(__name__)


def ensure_temp_dir(temp_dir: Path) -> None:
    temp_dir.mkdir(parents=True, exist_ok=True)


def cleanup_temp_dir(temp_dir: Path) -> None:
    """Remove all extracted packages."""
    if not temp_dir.exists():
        return
    try:
        shutil.rmtree(temp_dir)
        logger.info(f"Removed temp directory {temp_dir}")
    except OSError as e:
        logger.error(f"Failed to cleanup temp directory: {e}")


async def run_stdio_server() -> None:
    """Run the server using STDIO transport."""
    from .server import server

    logger.info("Starting NPM Package MCP server in stdio mode")

    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options()
        )


async def run(config: ServerConfig) -> None:
    if config.transport_mode == "http":
        from .http_server import run_http_server
        await run_http_server(config)
    else:
        await run_stdio_server()


def main() -> None:
    """Console script entry point."""
    try:
        config = load_config()
    except ValueError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    # Logs go to stderr; stdout carries the STDIO protocol stream
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )
    set_config(config)

    ensure_temp_dir(config.temp_dir)
    atexit.register(cleanup_temp_dir, config.temp_dir)
    # SystemExit on SIGTERM so atexit cleanup still runs
    signal.signal(signal.SIGTERM, lambda signum, frame: sys.exit(0))

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down")


if __name__ == "__main__":
    main()
