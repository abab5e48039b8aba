"""Institution providers and the registry that resolves them by identifier."""

from bankfetch.providers.base import (
    LoginError,
    LogoutError,
    NotAuthenticatedError,
    Provider,
    ProviderError,
    ProviderNotFoundError,
    StepTimeoutError,
)
from bankfetch.providers.ing import IngProvider
from bankfetch.providers.registry import ProviderRegistry, default_registry

__all__ = [
    "IngProvider",
    "LoginError",
    "LogoutError",
    "NotAuthenticatedError",
    "Provider",
    "ProviderError",
    "ProviderNotFoundError",
    "ProviderRegistry",
    "StepTimeoutError",
    "default_registry",
]
