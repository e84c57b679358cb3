from __future__ import annotations

from dataclasses import dataclass

from booking_sync.domain.entities.booking import Booking


@dataclass(frozen=True)
class SetAll:
    records: tuple[Booking, ...]


@dataclass(frozen=True)
class Add:
    record: Booking
    index: int = 0  # new bookings go on top, rollbacks put a record back where it was


@dataclass(frozen=True)
class Update:
    record: Booking


@dataclass(frozen=True)
class Remove:
    booking_id: str


@dataclass(frozen=True)
class Clear:
    pass


Action = SetAll | Add | Update | Remove | Clear
