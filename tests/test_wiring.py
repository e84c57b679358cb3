from __future__ import annotations

import pytest

from booking_sync.application.use_cases.booking_sync import BookingSyncUseCase
from booking_sync.core.config import settings
from booking_sync.domain.entities.actor import Actor, Scope
from booking_sync.infrastructure.authority.http_authority import HttpAuthority
from booking_sync.infrastructure.authority.mock_authority import InMemoryAuthority
from booking_sync.wiring import dependencies


def test_mock_provider_is_the_default(monkeypatch):
    monkeypatch.setattr(settings, "AUTHORITY_PROVIDER", "mock")
    actor = Actor.user("user_1")

    authority = dependencies.get_authority(actor)

    assert isinstance(authority, InMemoryAuthority)
    assert authority.acting_as == actor


def test_http_provider(monkeypatch):
    monkeypatch.setattr(settings, "AUTHORITY_PROVIDER", "HTTP")
    monkeypatch.setattr(settings, "API_BASE_URL", "https://api.example.test/api")

    assert isinstance(dependencies.get_authority(), HttpAuthority)


def test_unknown_provider_fails_fast(monkeypatch):
    monkeypatch.setattr(settings, "AUTHORITY_PROVIDER", "carrier-pigeon")

    with pytest.raises(ValueError, match="AUTHORITY_PROVIDER"):
        dependencies.get_authority()


def test_container_shares_one_event_bus(monkeypatch):
    monkeypatch.setattr(settings, "AUTHORITY_PROVIDER", "mock")

    container = dependencies.get_container(Actor.admin("admin_1"))
    engine = dependencies.get_booking_sync(Actor.admin("admin_1"))

    assert isinstance(container["engine"], BookingSyncUseCase)
    assert container["events"] is dependencies.get_event_bus()
    assert container["engine"].scope == Scope.all
    assert isinstance(engine, BookingSyncUseCase)
