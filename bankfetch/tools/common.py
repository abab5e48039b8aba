"""Common utilities for MCP tools.

This module provides shared functionality for all MCP tools including:
- Unified response formatting
- JSON-safe serialization of run results
"""

from datetime import datetime, timezone
from typing import Any

import structlog

from bankfetch.models import RunSummary

logger = structlog.get_logger(__name__)


def build_success_response(
    data: dict[str, Any],
    source: str = "browser",
) -> dict[str, Any]:
    """Build a standardized success response.

    Args:
        data: The response data.
        source: Where the data came from ("browser", "store" or "config").

    Returns:
        Standardized response dictionary.
    """
    return {
        "status": "success",
        "data": data,
        "metadata": {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "source": source,
        },
    }


def build_error_response(
    message: str,
    error_type: str = "UNKNOWN_ERROR",
) -> dict[str, Any]:
    """Build a standardized error response.

    Args:
        message: Error message.
        error_type: Error type identifier.

    Returns:
        Standardized error response dictionary.
    """
    return {
        "status": "error",
        "error": {
            "message": message,
            "type": error_type,
        },
        "metadata": {
            "generated_at": datetime.now(timezone.utc).isoformat(),
        },
    }


def summarize_run(summary: RunSummary) -> dict[str, Any]:
    """Serialize a run summary; balances become strings to keep precision."""
    return {
        "balances": [balance.model_dump(mode="json") for balance in summary.balances],
        "relationships": [result.model_dump(mode="json") for result in summary.results],
        "counts": {
            "balances_written": summary.balances_written,
            "succeeded": summary.succeeded,
            "failed": summary.failed,
            "skipped": summary.skipped,
        },
    }
