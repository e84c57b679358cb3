from __future__ import annotations

from dataclasses import dataclass

from booking_sync.domain.entities.booking import Booking

BOOKINGS_LOADED = "bookings_loaded"
BOOKING_CREATED = "booking_created"
STATUS_CHANGED = "status_changed"
ARCHIVED = "archived"
RESTORED = "restored"
DELETED = "deleted"
NOTES_SAVED = "notes_saved"
CONFIRMATION_RESENT = "confirmation_resent"
CANCELLATION_REQUESTED = "cancellation_requested"


@dataclass(frozen=True)
class BookingEvent:
    kind: str  # one of the constants above, "<kind>_failed" on failure
    booking_id: str | None = None
    booking: Booking | None = None
    error: Exception | None = None
    count: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
