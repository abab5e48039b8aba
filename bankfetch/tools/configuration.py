"""MCP tools for inspecting the relationship configuration."""

from typing import Any

import structlog

from bankfetch.config import ConfigError
from bankfetch.tools.common import build_error_response, build_success_response

logger = structlog.get_logger(__name__)


async def validate_config(orchestrator: Any) -> dict[str, Any]:
    """Validate the relationship configuration without logging in anywhere.

    Returns:
        Standardized response containing relationship names, provider ids
        and any relationships whose provider is not registered. Option
        values are never included.
    """
    logger.info("validate_config_called")

    try:
        report = orchestrator.validate_config()
    except ConfigError as e:
        logger.error("validate_config_failed", error=str(e))
        return build_error_response(message=str(e), error_type="CONFIG_ERROR")

    if not report.ok:
        return build_error_response(
            message=(
                "Unknown provider for relationships: "
                + ", ".join(report.unknown_providers)
            ),
            error_type="UNKNOWN_PROVIDER",
        )

    return build_success_response(
        {"relationships": report.relationships, "count": len(report.relationships)},
        source="config",
    )


async def list_providers(registry: Any) -> dict[str, Any]:
    """List the provider identifiers available to relationships."""
    logger.info("list_providers_called")
    providers = registry.provider_ids()
    return build_success_response(
        {"providers": providers, "count": len(providers)},
        source="config",
    )
