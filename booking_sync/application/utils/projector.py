from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from typing import Any, Iterable, Sequence

from booking_sync.domain.entities.booking import Booking, BookingStatus
from booking_sync.domain.entities.filter_set import SORT_FIELDS, FilterSet


@dataclass(frozen=True)
class BookingStats:
    total: int
    pending: int
    confirmed: int
    cancelled: int
    requested: int
    archived: int
    revenue: float


def project(records: Sequence[Booking], filters: FilterSet | None = None) -> list[Booking]:
    """
    Derive a filtered, sorted view of `records`.

    All non-empty criteria must match. `records` is never modified; the result
    is a new list.
    """
    filters = filters or FilterSet()
    matched = [b for b in records if _in_view(b, filters.view) and _matches(b, filters)]
    sort_by = filters.sort_by if filters.sort_by in SORT_FIELDS else "created_at"
    matched.sort(key=lambda b: _sort_key(b, sort_by), reverse=filters.descending)
    return matched


def summarize(records: Iterable[Booking]) -> BookingStats:
    """Dashboard counters. Archived bookings are counted separately and excluded from the rest."""
    counts = {status: 0 for status in BookingStatus}
    archived = 0
    revenue = 0.0
    total = 0
    for booking in records:
        if booking.archived:
            archived += 1
            continue
        total += 1
        counts[booking.status] += 1
        if booking.status == BookingStatus.confirmed:
            revenue += booking.total_amount
    return BookingStats(
        total=total,
        pending=counts[BookingStatus.pending],
        confirmed=counts[BookingStatus.confirmed],
        cancelled=counts[BookingStatus.cancelled],
        requested=counts[BookingStatus.requested],
        archived=archived,
        revenue=revenue,
    )


def _in_view(booking: Booking, view: str) -> bool:
    if view == "all":
        return True
    if view == "archived":
        return booking.archived
    return not booking.archived


def _matches(booking: Booking, filters: FilterSet) -> bool:
    term = filters.search.strip().lower()
    if term:
        haystacks = (booking.client.name, booking.client.email, *booking.package_titles)
        if not any(term in (h or "").lower() for h in haystacks):
            return False

    if filters.status is not None and booking.status != filters.status:
        return False

    if filters.start_date is not None:
        start = datetime.combine(filters.start_date, time.min, tzinfo=booking.booking_date.tzinfo)
        if booking.booking_date < start:
            return False

    if filters.end_date is not None:
        # the whole end day is included
        end = datetime.combine(filters.end_date, time.max, tzinfo=booking.booking_date.tzinfo)
        if booking.booking_date > end:
            return False

    if filters.min_guests is not None and booking.guests < filters.min_guests:
        return False
    if filters.min_amount is not None and booking.total_amount < filters.min_amount:
        return False
    if filters.max_amount is not None and booking.total_amount > filters.max_amount:
        return False
    return True


def _sort_key(booking: Booking, sort_by: str) -> Any:
    if sort_by == "client_name":
        return booking.client.name.lower()
    if sort_by == "booking_date":
        return booking.booking_date.timestamp()
    if sort_by == "created_at":
        return booking.created_at.timestamp()
    return getattr(booking, sort_by)
