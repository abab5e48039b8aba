"""Application settings and relationship configuration loading.

``Settings`` loads runtime knobs from environment variables (``BANKFETCH_``
prefix) or a ``.env`` file. ``ConfigLoader`` turns the YAML relationship list
into an immutable ``Configuration``; it never resolves secrets.
"""

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

RESERVED_KEYS = frozenset({"name", "provider", "enabled", "options"})

DEFAULT_CONFIG = """\
# bankfetch relationship list.
#
# Each entry pairs one institution (provider) with one set of credentials.
# "name" defaults to the provider id; give explicit names when the same
# provider is used more than once.
#
# Credentials are never stored here. They are looked up at login time under
# "<name>:<field>" (e.g. "ING:username"), or through an explicit reference:
#   password: "$secret shared:ing-pin"
relationships:
  - provider: ing
    # download_statements: false
"""


class ConfigError(Exception):
    """Raised when the relationship configuration cannot be used.

    Attributes:
        duplicates: Relationship names that occur more than once, if that is
            why the configuration was rejected.
    """

    def __init__(self, message: str, duplicates: list[str] | None = None) -> None:
        super().__init__(message)
        self.duplicates = duplicates or []


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables.

    Credentials do not live here; see ``bankfetch.secrets``.
    """

    # Relationship configuration
    config_path: str = Field(
        default="config.yaml", description="Path to the relationship list YAML file"
    )

    # Data store
    data_store_path: str = Field(
        default="data/balances.db", description="SQLite database for balance records"
    )

    # Secret store
    secrets_backend: str = Field(
        default="env", description="Secret backend to use (env or file)"
    )
    secrets_file: str = Field(
        default="secrets.yaml", description="YAML secrets file for the file backend"
    )
    secret_env_prefix: str = Field(
        default="BANKFETCH_SECRET_",
        description="Environment variable prefix for the env backend",
    )

    # Browser
    browser_slow_mo_ms: int = Field(
        default=100, description="Delay between browser operations in milliseconds"
    )
    browser_timeout_ms: int = Field(
        default=30000, description="Default timeout for page operations in milliseconds"
    )
    download_dir: str = Field(
        default="statements", description="Directory for downloaded statements"
    )

    # Orchestration
    max_concurrency: int = Field(
        default=1,
        description="Relationships processed at once (1 = strictly sequential)",
    )
    step_timeout_seconds: float | None = Field(
        default=300.0,
        description="Deadline for each provider step; 0 or empty disables it",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="console", description="Log output format (json or console)"
    )

    model_config = SettingsConfigDict(
        env_prefix="BANKFETCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def step_timeout(self) -> float | None:
        if not self.step_timeout_seconds:
            return None
        return self.step_timeout_seconds


class Relationship(BaseModel):
    """One institution/credential pairing to fetch data from."""

    model_config = ConfigDict(frozen=True)

    name: str
    provider: str = Field(min_length=1)
    enabled: bool = True
    options: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        name = data.get("name")
        if name is None or (isinstance(name, str) and not name.strip()):
            return {**data, "name": data.get("provider")}
        return data


class Configuration(BaseModel):
    model_config = ConfigDict(frozen=True)

    relationships: tuple[Relationship, ...] = ()


class ConfigLoader:
    """Loads the relationship list from a YAML file.

    Attributes:
        path: Location of the YAML configuration.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> Configuration:
        """Parse and validate the configuration.

        Returns:
            The immutable configuration, relationships in file order.

        Raises:
            ConfigError: If the file is unreadable or malformed, or if two
                relationships end up with the same name.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read config file {self.path}: {e}") from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            # The parser message quotes file content, which may hold credentials
            mark = getattr(e, "problem_mark", None)
            where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark else ""
            raise ConfigError(f"Malformed YAML in {self.path}{where}") from None

        config = parse_configuration(data, source=str(self.path))
        logger.info(
            "config_loaded",
            path=str(self.path),
            relationships=len(config.relationships),
        )
        return config


def parse_configuration(data: Any, source: str = "<config>") -> Configuration:
    """Build a ``Configuration`` from already-parsed YAML data.

    Raises:
        ConfigError: On structural problems or duplicate names.
    """
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: top level must be a mapping")

    entries = data.get("relationships")
    if entries is None:
        raise ConfigError(f"{source}: missing 'relationships' list")
    if not isinstance(entries, list):
        raise ConfigError(f"{source}: 'relationships' must be a list")

    relationships = [_parse_relationship(entry, index, source) for index, entry in enumerate(entries)]

    duplicates = _find_duplicates(relationship.name for relationship in relationships)
    if duplicates:
        names = ", ".join(f"'{name}'" for name in duplicates)
        raise ConfigError(
            f"{source}: duplicate relationship names: {names}. Relationships "
            "default to their provider id as name; add an explicit 'name' to "
            "each relationship that shares a provider.",
            duplicates=duplicates,
        )

    return Configuration(relationships=tuple(relationships))


def write_default_config(path: str | Path, overwrite: bool = False) -> Path:
    """Write the starter configuration file.

    Raises:
        ConfigError: If the file exists and ``overwrite`` is false.
    """
    target = Path(path)
    if target.exists() and not overwrite:
        raise ConfigError(f"Config file already exists: {target}")

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(DEFAULT_CONFIG, encoding="utf-8")
    logger.info("default_config_written", path=str(target))
    return target


def _parse_relationship(entry: Any, index: int, source: str) -> Relationship:
    if not isinstance(entry, dict):
        raise ConfigError(f"{source}: relationship #{index + 1} must be a mapping")

    nested = entry.get("options") or {}
    if not isinstance(nested, dict):
        raise ConfigError(f"{source}: relationship #{index + 1} 'options' must be a mapping")

    options = {key: value for key, value in entry.items() if key not in RESERVED_KEYS}
    options.update(nested)

    try:
        return Relationship(
            name=entry.get("name"),
            provider=entry.get("provider"),
            enabled=entry.get("enabled", True),
            options=options,
        )
    except ValidationError as e:
        # Field values are omitted: option fields may hold credentials
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) or "<entry>" for error in e.errors()
        )
        raise ConfigError(
            f"{source}: relationship #{index + 1} is invalid (check: {fields})"
        ) from None


def _find_duplicates(names: Any) -> list[str]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for name in names:
        if name in seen and name not in duplicates:
            duplicates.append(name)
        seen.add(name)
    return duplicates


# Singleton instance - import this to access settings throughout the application
settings = Settings()
