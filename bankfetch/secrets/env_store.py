"""Secret store backed by environment variables."""

import os
import re
from collections.abc import Mapping

import structlog

from bankfetch.secrets.base import SecretNotFoundError, SecretResolver

logger = structlog.get_logger(__name__)


class EnvSecretStore(SecretResolver):
    """Resolves ``"ING:password"`` from ``BANKFETCH_SECRET_ING_PASSWORD``.

    Non-alphanumeric characters in the reference collapse to ``_`` and the
    result is upper-cased. Empty variables count as missing.
    """

    def __init__(
        self,
        prefix: str = "BANKFETCH_SECRET_",
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.prefix = prefix
        self._environ = environ if environ is not None else os.environ

    def variable_for(self, reference: str) -> str:
        suffix = re.sub(r"[^A-Za-z0-9]+", "_", reference).strip("_").upper()
        return f"{self.prefix}{suffix}"

    async def retrieve(self, reference: str) -> str:
        variable = self.variable_for(reference)
        value = self._environ.get(variable)
        if not value:
            logger.warning("secret_not_found", reference=reference, variable=variable)
            raise SecretNotFoundError(reference, f"not found (expected ${variable})")
        return value
