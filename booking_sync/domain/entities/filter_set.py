from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from booking_sync.domain.entities.booking import BookingStatus

SORT_FIELDS = ("created_at", "booking_date", "total_amount", "guests", "client_name")
VIEWS = ("active", "archived", "all")


@dataclass(frozen=True)
class FilterSet:
    search: str = ""
    status: BookingStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    min_guests: int | None = None
    min_amount: float | None = None
    max_amount: float | None = None
    view: str = "active"  # "active", "archived", "all"
    sort_by: str = "created_at"
    descending: bool = True

    @property
    def is_empty(self) -> bool:
        return (
            not self.search.strip()
            and self.status is None
            and self.start_date is None
            and self.end_date is None
            and self.min_guests is None
            and self.min_amount is None
            and self.max_amount is None
        )

    def to_query_params(self) -> dict[str, str]:
        """Server-side subset of the filters, keyed the way the authority expects them."""
        params: dict[str, str] = {}
        if self.status is not None:
            params["status"] = self.status.value
        if self.search.strip():
            params["search"] = self.search.strip()
        if self.start_date is not None:
            params["startDate"] = self.start_date.isoformat()
        if self.end_date is not None:
            params["endDate"] = self.end_date.isoformat()
        if self.view == "archived":
            params["onlyArchived"] = "true"
        return params
