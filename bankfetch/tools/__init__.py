"""MCP tools module for balance aggregation.

This module provides FastMCP tools for:
- Running a balance fetch
- Validating the relationship configuration
- Listing available providers
- Reading stored balances
"""

from bankfetch.tools.balances import list_balances
from bankfetch.tools.configuration import list_providers, validate_config
from bankfetch.tools.fetch import fetch_balances

__all__ = [
    "fetch_balances",
    "validate_config",
    "list_providers",
    "list_balances",
]
