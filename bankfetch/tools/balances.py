"""MCP tool for reading stored balances.

This module provides the list_balances tool which returns the most recent
balance records from the data store without touching any institution.
"""

from typing import Any

import structlog

from bankfetch.tools.common import build_error_response, build_success_response

logger = structlog.get_logger(__name__)


async def list_balances(
    store: Any,
    limit: int = 50,
) -> dict[str, Any]:
    """List recently stored balances.

    Args:
        store: SqliteBalanceStore instance (closed; opened for the call).
        limit: Maximum number of records (1-500, default: 50).

    Returns:
        Standardized response containing:
            - balances: List of balance records, newest first
            - count: Number of records returned
    """
    # Validate limit parameter
    limit = max(1, min(limit, 500))

    logger.info("list_balances_called", limit=limit)

    try:
        await store.open()
        try:
            rows = await store.list_balances(limit=limit)
        finally:
            await store.close()
    except Exception as e:
        logger.error("list_balances_failed", error=str(e), exc_info=True)
        return build_error_response(
            message=f"Failed to read balances: {e}",
            error_type="STORE_ERROR",
        )

    balances = [{**row, "balance": str(row["balance"])} for row in rows]
    return build_success_response(
        {"balances": balances, "count": len(balances)},
        source="store",
    )
