"""Secret resolution contract and the per-relationship secret context."""

import re
from abc import ABC, abstractmethod
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

SECRET_REFERENCE_PATTERN = re.compile(r"^\$secret (.+?)$")


class SecretNotFoundError(Exception):
    """Raised when a secret reference cannot be resolved.

    The message names the reference only, never a value.
    """

    def __init__(self, reference: str, reason: str = "not found") -> None:
        super().__init__(f"Secret '{reference}' {reason}")
        self.reference = reference


class SecretResolver(ABC):
    """Maps an opaque secret reference to its plaintext value.

    Implementations must be safe to call concurrently and return the same
    value for repeated lookups of a reference during a run.
    """

    @abstractmethod
    async def retrieve(self, reference: str) -> str:
        """Resolve ``reference``.

        Raises:
            SecretNotFoundError: If the reference is unknown.
        """


class SecretContext:
    """Secret lookups scoped to one relationship, handed to ``Provider.login``.

    A provider asks for a field (``"username"``); the context resolves
    ``"<relationship name>:<field>"``. When the relationship options hold a
    ``"$secret <reference>"`` string for that field, the explicit reference
    is resolved instead.

    Values handed out are kept only until ``clear()`` so that error messages
    raised during login can be scrubbed with ``redact()``.
    """

    def __init__(
        self,
        relationship_name: str,
        resolver: SecretResolver,
        options: dict[str, Any] | None = None,
    ) -> None:
        self.relationship_name = relationship_name
        self._resolver = resolver
        self._options = options or {}
        self._issued: list[str] = []
        self.requested_fields: list[str] = []

    def reference_for(self, field: str) -> str:
        option = self._options.get(field)
        if isinstance(option, str):
            match = SECRET_REFERENCE_PATTERN.match(option.strip())
            if match:
                return match.group(1)
        return f"{self.relationship_name}:{field}"

    async def retrieve(self, field: str) -> str:
        """Resolve the credential ``field`` for this relationship.

        Raises:
            SecretNotFoundError: If the backing store has no such secret.
        """
        reference = self.reference_for(field)
        logger.debug(
            "secret_requested", relationship=self.relationship_name, field=field
        )
        value = await self._resolver.retrieve(reference)
        self.requested_fields.append(field)
        if value:
            self._issued.append(value)
        return value

    def redact(self, text: str) -> str:
        """Replace every value issued so far with ``***``."""
        # Longest first so a value containing another is fully masked
        for value in sorted(self._issued, key=len, reverse=True):
            text = text.replace(value, "***")
        return text

    def clear(self) -> None:
        self._issued.clear()
