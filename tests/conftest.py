"""Shared fakes for orchestrator, CLI and tool tests."""

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from bankfetch.config import ConfigLoader
from bankfetch.models import AccountBalance, StatementDocument
from bankfetch.providers import Provider, ProviderRegistry
from bankfetch.secrets import SecretNotFoundError, SecretResolver
from bankfetch.store import DataStore, DataStoreError


def make_balance(institution: str, number: str, amount: str) -> AccountBalance:
    return AccountBalance(
        institution=institution,
        account_name=f"{institution} account {number}",
        account_number=number,
        balance=Decimal(amount),
    )


@dataclass
class ConcurrencyTracker:
    active: int = 0
    peak: int = 0


@dataclass
class Behaviour:
    """How a fake provider behaves in each lifecycle step."""

    balances: list[AccountBalance] = field(default_factory=list)
    documents: list[StatementDocument] = field(default_factory=list)
    secret_fields: tuple[str, ...] = ()
    login_error: BaseException | None = None
    balances_error: Exception | None = None
    documents_error: Exception | None = None
    logout_error: Exception | None = None
    login_delay: float = 0.0
    tracker: ConcurrencyTracker | None = None


class FakeProvider(Provider):
    provider_id = "fake"
    institution = "Fake Bank"

    def __init__(self, context, relationship, behaviour: Behaviour) -> None:
        super().__init__(context, relationship)
        self.behaviour = behaviour
        self.calls: list[str] = []
        self.received_secrets: dict[str, str] = {}

    async def login(self, secrets) -> None:
        self.calls.append("login")
        tracker = self.behaviour.tracker
        if tracker:
            tracker.active += 1
            tracker.peak = max(tracker.peak, tracker.active)
        try:
            for secret_field in self.behaviour.secret_fields:
                self.received_secrets[secret_field] = await secrets.retrieve(secret_field)
            if self.behaviour.login_delay:
                await asyncio.sleep(self.behaviour.login_delay)
            if self.behaviour.login_error is not None:
                raise self.behaviour.login_error
        finally:
            if tracker:
                tracker.active -= 1

    async def get_balances(self):
        self.calls.append("get_balances")
        if self.behaviour.balances_error is not None:
            raise self.behaviour.balances_error
        return list(self.behaviour.balances)

    async def get_documents(self):
        self.calls.append("get_documents")
        return list(self.behaviour.documents)

    async def logout(self) -> None:
        self.calls.append("logout")
        if self.behaviour.logout_error is not None:
            raise self.behaviour.logout_error


class FakeDocumentProvider(FakeProvider):
    supports_documents = True

    async def get_documents(self):
        self.calls.append("get_documents")
        if self.behaviour.documents_error is not None:
            raise self.behaviour.documents_error
        return list(self.behaviour.documents)


class ProviderHarness:
    """Registry of fake providers that remembers every instance it builds."""

    def __init__(self) -> None:
        self.registry = ProviderRegistry()
        self.instances: dict[str, FakeProvider] = {}

    def add(self, provider_id: str, provider_cls=FakeProvider, **behaviour) -> Behaviour:
        expected = Behaviour(**behaviour)

        def factory(context, relationship):
            instance = provider_cls(context, relationship, expected)
            self.instances[relationship.name] = instance
            return instance

        self.registry.register(provider_id, factory)
        return expected


class MemoryStore(DataStore):
    def __init__(self) -> None:
        self.open_calls = 0
        self.close_calls = 0
        self.balances: list[AccountBalance] = []
        self._open = False
        # 1-based index of the add_balance call that raises, if any
        self.fail_on_write: int | None = None
        self.write_calls = 0

    async def open(self) -> None:
        self.open_calls += 1
        self._open = True

    async def add_balance(self, balance: AccountBalance) -> None:
        if not self._open:
            raise DataStoreError("store is closed")
        self.write_calls += 1
        if self.write_calls == self.fail_on_write:
            raise DataStoreError("disk I/O error")
        self.balances.append(balance)

    async def close(self) -> None:
        self.close_calls += 1
        self._open = False


class DictSecretResolver(SecretResolver):
    def __init__(self, secrets: dict[str, str] | None = None) -> None:
        self.secrets = secrets or {}
        self.requested: list[str] = []

    async def retrieve(self, reference: str) -> str:
        self.requested.append(reference)
        if reference not in self.secrets:
            raise SecretNotFoundError(reference)
        return self.secrets[reference]


@pytest.fixture
def harness():
    return ProviderHarness()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def secret_resolver():
    return DictSecretResolver()


@pytest.fixture
def write_config(tmp_path):
    """Write a relationship list to a temporary YAML file and return a loader."""

    def _write(relationships) -> ConfigLoader:
        path = Path(tmp_path) / "config.yaml"
        path.write_text(yaml.safe_dump({"relationships": relationships}), encoding="utf-8")
        return ConfigLoader(path)

    return _write
