"""Provider lookup by identifier."""

from collections.abc import Callable

import structlog

from bankfetch.config import Relationship
from bankfetch.models import ExecutionContext
from bankfetch.providers.base import Provider, ProviderNotFoundError
from bankfetch.providers.ing import IngProvider

logger = structlog.get_logger(__name__)

ProviderFactory = Callable[[ExecutionContext, Relationship], Provider]

BUILTIN_PROVIDERS: tuple[type[Provider], ...] = (IngProvider,)


class ProviderRegistry:
    """Maps provider identifiers (case-insensitive) to factories."""

    def __init__(self) -> None:
        self._factories: dict[str, ProviderFactory] = {}

    def register(self, provider_id: str, factory: ProviderFactory) -> None:
        key = provider_id.lower()
        if key in self._factories:
            logger.info("provider_replaced", provider=provider_id)
        self._factories[key] = factory

    def create(self, relationship: Relationship, context: ExecutionContext) -> Provider:
        """Build a provider instance for ``relationship``.

        Raises:
            ProviderNotFoundError: If the relationship's provider is unknown.
        """
        factory = self._factories.get(relationship.provider.lower())
        if factory is None:
            raise ProviderNotFoundError(
                f"No provider registered for '{relationship.provider}' "
                f"(available: {', '.join(self.provider_ids()) or 'none'})"
            )
        return factory(context, relationship)

    def provider_ids(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, provider_id: object) -> bool:
        return isinstance(provider_id, str) and provider_id.lower() in self._factories


def default_registry() -> ProviderRegistry:
    """Registry populated with the built-in providers."""
    registry = ProviderRegistry()
    for provider_cls in BUILTIN_PROVIDERS:
        registry.register(provider_cls.provider_id, provider_cls)
    return registry
