"""MCP tool for running a balance fetch.

This module provides the fetch_balances tool which runs every configured
relationship and reports balances plus per-relationship outcomes.
"""

from typing import Any

import structlog

from bankfetch.config import ConfigError
from bankfetch.models import ExecutionContext
from bankfetch.tools.common import build_error_response, build_success_response, summarize_run

logger = structlog.get_logger(__name__)


async def fetch_balances(
    orchestrator: Any,
    debug: bool = False,
) -> dict[str, Any]:
    """Fetch balances from every configured relationship.

    Relationship failures do not make the response an error; they are
    reported per relationship. Only configuration and data store failures
    abort the run.

    Args:
        orchestrator: Orchestrator instance.
        debug: Show the browser and log every automation step.

    Returns:
        Standardized response containing:
            - balances: List of balance dictionaries
            - relationships: Per-relationship outcomes
            - counts: balances_written / succeeded / failed / skipped
    """
    logger.info("fetch_balances_called", debug=debug)

    try:
        summary = await orchestrator.fetch(ExecutionContext(debug=debug))
    except ConfigError as e:
        logger.error("fetch_balances_config_error", error=str(e))
        return build_error_response(message=str(e), error_type="CONFIG_ERROR")
    except Exception as e:
        logger.error("fetch_balances_failed", error=str(e), exc_info=True)
        return build_error_response(
            message=f"Failed to fetch balances: {e}",
            error_type="FETCH_ERROR",
        )

    return build_success_response(summarize_run(summary), source="browser")
