"""Secret resolution for provider logins.

Credentials are resolved lazily, while a login is in progress, through a
per-relationship ``SecretContext``. Backends are substitutable.
"""

from bankfetch.config import ConfigError, Settings
from bankfetch.secrets.base import SecretContext, SecretNotFoundError, SecretResolver
from bankfetch.secrets.env_store import EnvSecretStore
from bankfetch.secrets.file_store import FileSecretStore


def build_secret_resolver(settings: Settings) -> SecretResolver:
    """Create the secret backend selected by ``settings.secrets_backend``.

    Raises:
        ConfigError: If the backend name is unknown.
    """
    backend = settings.secrets_backend.lower()
    if backend == "env":
        return EnvSecretStore(prefix=settings.secret_env_prefix)
    if backend == "file":
        return FileSecretStore(settings.secrets_file)
    raise ConfigError(f"Unknown secrets backend: {settings.secrets_backend}")


__all__ = [
    "EnvSecretStore",
    "FileSecretStore",
    "SecretContext",
    "SecretNotFoundError",
    "SecretResolver",
    "build_secret_resolver",
]
