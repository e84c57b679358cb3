from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    requested = "requested"  # client asked to cancel, awaiting admin review


@dataclass(frozen=True)
class ClientIdentity:
    name: str
    email: str
    phone: str


@dataclass(frozen=True)
class PackageSelection:
    package_id: str
    title: str
    price: float
    duration_days: int = 0


@dataclass(frozen=True)
class Booking:
    id: str
    status: BookingStatus
    client: ClientIdentity
    packages: tuple[PackageSelection, ...]
    guests: int
    booking_date: datetime
    total_amount: float
    created_at: datetime
    updated_at: datetime
    archived: bool = False
    archived_reason: str | None = None
    archived_at: datetime | None = None
    owner_id: str | None = None
    admin_notes: str = ""
    special_requests: str = ""
    status_updated_at: datetime | None = None

    @property
    def package_titles(self) -> tuple[str, ...]:
        return tuple(p.title for p in self.packages)
