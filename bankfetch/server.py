"""FastMCP server entry point for bankfetch.

This module exposes balance fetching, configuration validation and stored
balances through FastMCP tools.
"""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastmcp import FastMCP

from bankfetch.config import settings
from bankfetch.core import Orchestrator
from bankfetch.log import configure_logging
from bankfetch.store import SqliteBalanceStore

configure_logging(settings.log_level, settings.log_format)
logger = structlog.get_logger(__name__)

# Global instances (initialized in lifespan)
orchestrator: Orchestrator | None = None

# One fetch at a time: the data store is opened once per run
fetch_lock = asyncio.Lock()


@asynccontextmanager
async def lifespan(server):
    """Manage server startup and shutdown."""
    global orchestrator

    logger.info(
        "mcp_server_starting",
        config_path=settings.config_path,
        data_store_path=settings.data_store_path,
        log_level=settings.log_level,
    )

    orchestrator = Orchestrator.from_settings(settings)
    logger.info("mcp_server_startup_complete")

    try:
        yield
    finally:
        orchestrator = None
        logger.info("mcp_server_shutdown_complete")


# Create FastMCP instance
mcp = FastMCP("bankfetch", lifespan=lifespan)


def _not_initialized() -> dict:
    logger.error("server_not_initialized")
    return {
        "status": "error",
        "error": {"message": "Server not initialized", "type": "INITIALIZATION_ERROR"},
    }


@mcp.tool()
async def fetch_balances(debug: bool = False) -> dict:
    """Log in to every configured institution and fetch account balances.

    Each balance is written to the data store as it arrives. A failing
    institution is reported in its relationship entry and does not stop the
    others.

    Args:
        debug: Show the browser window and log every automation step.

    Returns:
        Dictionary containing:
            - status: "success" or "error"
            - data: balances, per-relationship outcomes and counts
            - metadata: Response metadata
    """
    from bankfetch.tools.fetch import fetch_balances as fetch_balances_impl

    if not orchestrator:
        return _not_initialized()

    async with fetch_lock:
        return await fetch_balances_impl(orchestrator, debug=debug)


@mcp.tool()
async def validate_config() -> dict:
    """Validate the relationship configuration.

    Returns relationship names and provider ids only; credentials are never
    read or shown.
    """
    from bankfetch.tools.configuration import validate_config as validate_config_impl

    if not orchestrator:
        return _not_initialized()

    return await validate_config_impl(orchestrator)


@mcp.tool()
async def list_providers() -> dict:
    """List provider identifiers that relationships can use."""
    from bankfetch.tools.configuration import list_providers as list_providers_impl

    if not orchestrator:
        return _not_initialized()

    return await list_providers_impl(orchestrator.registry)


@mcp.tool()
async def list_balances(limit: int = 50) -> dict:
    """List the most recently stored balances, newest first.

    Args:
        limit: Maximum number of records (1-500, default: 50)
    """
    from bankfetch.tools.balances import list_balances as list_balances_impl

    async with fetch_lock:
        return await list_balances_impl(SqliteBalanceStore(settings.data_store_path), limit=limit)


if __name__ == "__main__":
    # Recommended: fastmcp run bankfetch/server.py
    logger.info("starting_mcp_server_directly")
    mcp.run()
