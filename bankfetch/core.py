"""Orchestration of the per-relationship provider lifecycle.

For each configured relationship the orchestrator resolves a provider,
logs in with a relationship-scoped secret context, fetches balances (and
documents where supported), writes each balance through to the data store,
and always logs out. A failure in one relationship never stops the others.
"""

import asyncio
from collections.abc import Awaitable
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, Field

from bankfetch.config import ConfigLoader, Relationship, Settings, settings
from bankfetch.models import (
    ExecutionContext,
    RelationshipResult,
    RelationshipStatus,
    RunSummary,
)
from bankfetch.providers import (
    LoginError,
    Provider,
    ProviderRegistry,
    StepTimeoutError,
    default_registry,
)
from bankfetch.secrets import SecretContext, SecretResolver, build_secret_resolver
from bankfetch.store import DataStore, SqliteBalanceStore

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ValidationReport(BaseModel):
    """Result of checking a configuration without running it."""

    relationships: list[dict[str, Any]] = Field(default_factory=list)
    unknown_providers: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.unknown_providers


class Orchestrator:
    """Drives every configured relationship through its provider.

    Attributes:
        loader: Source of the relationship configuration.
        registry: Provider lookup by identifier.
        secrets: Backing secret store for logins.
        store: Sink for collected balances.
        max_concurrency: Relationships processed at once; 1 keeps the run
            strictly sequential in configuration order.
        step_timeout: Seconds allowed per provider step, or None.
    """

    def __init__(
        self,
        loader: ConfigLoader,
        registry: ProviderRegistry,
        secrets: SecretResolver,
        store: DataStore,
        *,
        max_concurrency: int = 1,
        step_timeout: float | None = None,
    ) -> None:
        self.loader = loader
        self.registry = registry
        self.secrets = secrets
        self.store = store
        self.max_concurrency = max(1, max_concurrency)
        self.step_timeout = step_timeout

    @classmethod
    def from_settings(
        cls, app_settings: Settings | None = None, config_path: str | None = None
    ) -> "Orchestrator":
        """Wire the production collaborators from settings."""
        app_settings = app_settings or settings
        return cls(
            loader=ConfigLoader(config_path or app_settings.config_path),
            registry=default_registry(),
            secrets=build_secret_resolver(app_settings),
            store=SqliteBalanceStore(app_settings.data_store_path),
            max_concurrency=app_settings.max_concurrency,
            step_timeout=app_settings.step_timeout,
        )

    async def init(self) -> None:
        """Open and close the data store once so its schema exists."""
        await self.store.open()
        try:
            logger.info("data_store_initialized")
        finally:
            await self.store.close()

    def validate_config(self) -> ValidationReport:
        """Load the configuration and check every provider is registered.

        Raises:
            ConfigError: If the configuration itself is invalid.
        """
        config = self.loader.load()
        report = ValidationReport()
        for relationship in config.relationships:
            report.relationships.append(
                {
                    "name": relationship.name,
                    "provider": relationship.provider,
                    "enabled": relationship.enabled,
                }
            )
            if relationship.provider not in self.registry:
                report.unknown_providers.append(relationship.name)
                logger.warning(
                    "unknown_provider",
                    relationship=relationship.name,
                    provider=relationship.provider,
                )

        logger.info(
            "config_validated",
            relationships=len(report.relationships),
            unknown_providers=len(report.unknown_providers),
        )
        return report

    async def fetch(self, context: ExecutionContext) -> RunSummary:
        """Fetch balances for every configured relationship.

        Raises:
            ConfigError: Before any provider runs, if the configuration is
                invalid.
            DataStoreError: If the data store cannot be opened or closed.
        """
        config = self.loader.load()
        logger.info(
            "fetch_started",
            relationships=len(config.relationships),
            max_concurrency=self.max_concurrency,
            debug=context.debug,
        )

        summary = RunSummary()
        await self.store.open()
        try:
            summary.results = await self._process_all(config.relationships, context, summary)
        finally:
            await self.store.close()

        logger.info(
            "fetch_completed",
            balances_written=summary.balances_written,
            succeeded=summary.succeeded,
            failed=summary.failed,
            skipped=summary.skipped,
        )
        return summary

    async def _process_all(
        self,
        relationships: tuple[Relationship, ...],
        context: ExecutionContext,
        summary: RunSummary,
    ) -> list[RelationshipResult]:
        if self.max_concurrency == 1:
            results = []
            for relationship in relationships:
                results.append(await self._process_relationship(relationship, context, summary))
            return results

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(relationship: Relationship) -> RelationshipResult:
            async with semaphore:
                return await self._process_relationship(relationship, context, summary)

        return list(await asyncio.gather(*(bounded(r) for r in relationships)))

    async def _process_relationship(
        self,
        relationship: Relationship,
        context: ExecutionContext,
        summary: RunSummary,
    ) -> RelationshipResult:
        log = logger.bind(relationship=relationship.name, provider=relationship.provider)
        result = RelationshipResult(name=relationship.name, provider=relationship.provider)

        if not relationship.enabled:
            result.status = RelationshipStatus.SKIPPED
            log.info("relationship_skipped", reason="disabled")
            return result

        log.info("relationship_started")

        try:
            provider = self.registry.create(relationship, context)
        except Exception as e:
            result.fail("resolve", _describe(e))
            log.error("relationship_failed", stage="resolve", error=result.error)
            return result

        try:
            await self._run_provider(provider, relationship, result, summary, log)
        finally:
            await self._logout(provider, result, log)

        log.info(
            "relationship_finished",
            status=result.status.value,
            balances=result.balances,
            documents=result.documents,
        )
        return result

    async def _run_provider(
        self,
        provider: Provider,
        relationship: Relationship,
        result: RelationshipResult,
        summary: RunSummary,
        log: Any,
    ) -> None:
        stage = "login"
        try:
            await self._login(provider, relationship)

            stage = "get_balances"
            balances = await self._run_step(stage, provider.get_balances())
            log.info("balances_fetched", count=len(balances))

            stage = "store"
            for balance in balances:
                await self.store.add_balance(balance)
                summary.balances.append(balance)
                result.balances += 1

        except Exception as e:
            result.fail(stage, _describe(e))
            # No traceback for login: frames may hold resolved credentials
            log.error(
                "relationship_failed",
                stage=stage,
                error=result.error,
                error_type=type(e).__name__,
                exc_info=stage != "login",
            )
            return

        if not provider.supports_documents:
            log.info("documents_skipped", reason="not_supported_by_provider")
            return

        try:
            documents = await self._run_step("get_documents", provider.get_documents())
        except Exception as e:
            result.documents_error = _describe(e)
            log.warning("documents_failed", error=result.documents_error, exc_info=True)
            return

        result.documents = len(documents)
        log.info("documents_fetched", count=len(documents))

    async def _login(self, provider: Provider, relationship: Relationship) -> None:
        secrets = SecretContext(relationship.name, self.secrets, relationship.options)
        try:
            await self._run_step("login", provider.login(secrets))
        except Exception as e:
            message = secrets.redact(_describe(e))
            if not isinstance(e, LoginError):
                message = f"{type(e).__name__}: {message}"
            raise LoginError(message) from None
        finally:
            secrets.clear()

    async def _logout(self, provider: Provider, result: RelationshipResult, log: Any) -> None:
        try:
            await self._run_step("logout", provider.logout())
        except Exception as e:
            result.logout_error = _describe(e)
            log.warning(
                "logout_failed",
                error=result.logout_error,
                error_type=type(e).__name__,
            )

    async def _run_step(self, step: str, awaitable: Awaitable[T]) -> T:
        if self.step_timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self.step_timeout)
        except asyncio.TimeoutError:
            raise StepTimeoutError(
                f"{step} exceeded its {self.step_timeout:g}s deadline"
            ) from None


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__
