from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from booking_sync.domain.entities.booking import Booking, BookingStatus, ClientIdentity, PackageSelection
from booking_sync.domain.entities.booking_event import BookingEvent
from booking_sync.infrastructure.notifications.event_bus import LocalEventBus

BASE_TIME = datetime(2026, 1, 10, 9, 0, tzinfo=timezone.utc)

BORACAY = PackageSelection(package_id="pkg_boracay", title="Boracay Island Escape", price=1500.0, duration_days=3)


def build_booking(booking_id: str = "bk_0001", **overrides) -> Booking:
    seq = int("".join(ch for ch in booking_id if ch.isdigit()) or 0)
    fields = dict(
        id=booking_id,
        status=BookingStatus.pending,
        client=ClientIdentity(name="Juan Dela Cruz", email="juan@example.com", phone="09170000000"),
        packages=(BORACAY,),
        guests=2,
        booking_date=BASE_TIME + timedelta(days=30),
        total_amount=3000.0,
        created_at=BASE_TIME + timedelta(minutes=seq),
        updated_at=BASE_TIME + timedelta(minutes=seq),
        owner_id="user_1",
    )
    fields.update(overrides)
    return Booking(**fields)


@pytest.fixture
def make_booking():
    return build_booking


class RecordingBus(LocalEventBus):
    def __init__(self) -> None:
        super().__init__()
        self.events: list[BookingEvent] = []
        self.subscribe(self.events.append)

    @property
    def kinds(self) -> list[str]:
        return [e.kind for e in self.events]


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()
