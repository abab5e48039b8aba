"""Provider contract: one institution's login / fetch / logout lifecycle."""

from abc import ABC, abstractmethod
from typing import ClassVar

import structlog

from bankfetch.config import Relationship
from bankfetch.models import AccountBalance, ExecutionContext, StatementDocument
from bankfetch.secrets import SecretContext

logger = structlog.get_logger(__name__)


class ProviderError(Exception):
    """Base class for relationship-scoped provider failures."""


class ProviderNotFoundError(ProviderError):
    """Raised when no provider is registered under an identifier."""


class LoginError(ProviderError):
    """Raised when authentication fails or the site is in an unexpected state."""


class NotAuthenticatedError(ProviderError):
    """Raised when data is requested before a successful login."""


class LogoutError(ProviderError):
    """Raised when logout hits a condition that cannot be ignored."""


class StepTimeoutError(ProviderError):
    """Raised when a provider step exceeds its deadline."""


class Provider(ABC):
    """Base class for institution providers.

    Subclasses encapsulate whatever authentication ceremony their institution
    needs behind ``login`` and own their session resources exclusively.

    Attributes:
        provider_id: Registry identifier, e.g. ``"ing"``.
        institution: Institution label written on every balance.
        supports_documents: Whether ``get_documents`` is implemented.
        context: Run-wide execution flags.
        relationship: The relationship this instance serves.
    """

    provider_id: ClassVar[str]
    institution: ClassVar[str]
    supports_documents: ClassVar[bool] = False

    def __init__(self, context: ExecutionContext, relationship: Relationship) -> None:
        self.context = context
        self.relationship = relationship

    @abstractmethod
    async def login(self, secrets: SecretContext) -> None:
        """Establish an authenticated session.

        Raises:
            LoginError: On authentication failure. Resources opened so far
                are released before raising.
        """

    @abstractmethod
    async def get_balances(self) -> list[AccountBalance]:
        """Return every account balance visible in the session.

        Raises:
            NotAuthenticatedError: If ``login`` has not succeeded.
        """

    async def get_documents(self) -> list[StatementDocument]:
        """Enumerate (and optionally retrieve) statement documents."""
        raise NotImplementedError(f"{type(self).__name__} does not provide documents")

    @abstractmethod
    async def logout(self) -> None:
        """End the session and release all its resources.

        Must be safe to call without, or after a failed, ``login``.

        Raises:
            LogoutError: Only for conditions that cannot be ignored, and only
                after resources have been released.
        """

    def debug_step(self, stage: str, step: int | str) -> None:
        """Log automation progress when running in debug mode."""
        if self.context.debug:
            logger.debug(
                f"{self.provider_id}_step",
                relationship=self.relationship.name,
                stage=stage,
                step=step,
            )
