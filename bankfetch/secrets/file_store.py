"""Secret store backed by a YAML file kept outside the relationship config."""

import asyncio
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import SecretStr

from bankfetch.secrets.base import SecretNotFoundError, SecretResolver

logger = structlog.get_logger(__name__)


class FileSecretStore(SecretResolver):
    """Resolves references from a YAML mapping.

    Both layouts are accepted::

        "ING:password": "1234"

        ING:
          password: "1234"

    The file is read once, on the first lookup. Values are held as
    ``SecretStr`` so an accidental repr never shows them.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()
        self._secrets: dict[str, SecretStr] | None = None
        self._load_error: str | None = None

    async def retrieve(self, reference: str) -> str:
        secrets = await self._ensure_loaded()
        if self._load_error:
            raise SecretNotFoundError(reference, f"unavailable ({self._load_error})")

        secret = secrets.get(reference)
        if secret is None:
            logger.warning("secret_not_found", reference=reference, path=str(self.path))
            raise SecretNotFoundError(reference)
        return secret.get_secret_value()

    async def _ensure_loaded(self) -> dict[str, SecretStr]:
        async with self._lock:
            if self._secrets is None:
                self._secrets = await asyncio.to_thread(self._load)
            return self._secrets

    def _load(self) -> dict[str, SecretStr]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            # Parser errors can quote file content, so only the type is kept
            self._load_error = f"cannot read {self.path}: {type(e).__name__}"
            logger.error("secrets_file_unreadable", path=str(self.path), error_type=type(e).__name__)
            return {}

        if not isinstance(data, dict):
            self._load_error = f"{self.path} is not a mapping"
            logger.error("secrets_file_malformed", path=str(self.path))
            return {}

        secrets = _flatten(data)
        logger.info("secrets_file_loaded", path=str(self.path), count=len(secrets))
        return secrets


def _flatten(data: dict[str, Any], prefix: str = "") -> dict[str, SecretStr]:
    flat: dict[str, SecretStr] = {}
    for key, value in data.items():
        reference = f"{prefix}:{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(_flatten(value, reference))
        elif value is not None:
            flat[reference] = SecretStr(str(value))
    return flat
