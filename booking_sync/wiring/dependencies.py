import logging

from booking_sync.application.ports.authority import AuthorityPort
from booking_sync.application.ports.notifications import NotificationPort
from booking_sync.application.use_cases.booking_sync import BookingSyncUseCase
from booking_sync.core.config import settings
from booking_sync.domain.entities.actor import Actor
from booking_sync.infrastructure.authority.http_authority import HttpAuthority
from booking_sync.infrastructure.authority.mock_authority import InMemoryAuthority
from booking_sync.infrastructure.notifications.event_bus import LocalEventBus


_event_bus: LocalEventBus | None = None


def get_event_bus() -> NotificationPort:
    global _event_bus
    if _event_bus is None:
        _event_bus = LocalEventBus()
    return _event_bus


def get_authority(actor: Actor | None = None) -> AuthorityPort:
    logger = logging.getLogger(__name__)
    provider = settings.AUTHORITY_PROVIDER.lower()
    logger.info("AUTHORITY_PROVIDER=%s ENV=%s", provider, settings.ENV)

    if provider == "http":
        if not settings.API_BASE_URL:
            raise ValueError("API_BASE_URL is required when AUTHORITY_PROVIDER=http")
        return HttpAuthority()
    if provider == "mock":
        if settings.ENV.lower() not in {"dev", "local", "test"}:
            logger.warning("Using InMemoryAuthority outside dev", extra={"reason": settings.ENV})
        return InMemoryAuthority(acting_as=actor, latency=settings.MOCK_LATENCY_SECONDS)
    raise ValueError(f"Unknown AUTHORITY_PROVIDER: {settings.AUTHORITY_PROVIDER}")


def get_booking_sync(actor: Actor | None = None) -> BookingSyncUseCase:
    return BookingSyncUseCase(
        authority=get_authority(actor),
        notifier=get_event_bus(),
        actor=actor,
    )


def get_container(actor: Actor | None = None) -> dict[str, object]:
    authority = get_authority(actor)
    engine = BookingSyncUseCase(authority=authority, notifier=get_event_bus(), actor=actor)
    return {
        "engine": engine,
        "authority": authority,
        "events": get_event_bus(),
    }
