"""Tests for provider lookup."""

import pytest

from bankfetch.config import Relationship
from bankfetch.models import ExecutionContext
from bankfetch.providers import IngProvider, ProviderNotFoundError, ProviderRegistry, default_registry


def test_default_registry_has_builtin_providers():
    registry = default_registry()

    assert "ing" in registry
    assert "ING" in registry
    assert registry.provider_ids() == ["ing"]


def test_create_builds_provider_without_side_effects():
    context = ExecutionContext()
    relationship = Relationship(provider="ING", name="Everyday")

    provider = default_registry().create(relationship, context)

    assert isinstance(provider, IngProvider)
    assert provider.relationship is relationship
    assert provider.context is context
    assert provider.supports_documents is True


def test_unknown_provider():
    registry = ProviderRegistry()

    with pytest.raises(ProviderNotFoundError, match="'nab'"):
        registry.create(Relationship(provider="nab"), ExecutionContext())


def test_register_replaces_factory():
    registry = default_registry()
    sentinel = object()
    registry.register("ING", lambda context, relationship: sentinel)

    assert registry.create(Relationship(provider="ing"), ExecutionContext()) is sentinel
    assert 42 not in registry
