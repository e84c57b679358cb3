from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Callable

from booking_sync.application.dto.booking_payload import validate_create_payload
from booking_sync.application.exceptions import ConflictFailure, TransportFailure, ValidationFailure
from booking_sync.application.ports.authority import (
    AuthorityPort,
    AuthorityResult,
    CancellationToken,
    Command,
    CommandKind,
)
from booking_sync.application.utils.lifecycle_rules import ADMIN_STATUS_TRANSITIONS, CLIENT_DELETABLE
from booking_sync.domain.entities.actor import Actor
from booking_sync.domain.entities.booking import Booking, BookingStatus, ClientIdentity, PackageSelection

DEFAULT_CATALOG = (
    PackageSelection(package_id="pkg_boracay", title="Boracay Island Escape", price=1500.0, duration_days=3),
    PackageSelection(package_id="pkg_palawan", title="El Nido Lagoon Tour", price=2500.0, duration_days=4),
    PackageSelection(package_id="pkg_bohol", title="Bohol Countryside Day Trip", price=900.0, duration_days=1),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryAuthority(AuthorityPort):
    """
    Stand-in for the remote booking backend.

    Keeps records in a dict, computes totals from its package catalog and
    answers stale transitions with ConflictFailure, the way the real
    authority does.
    """

    def __init__(
        self,
        catalog: tuple[PackageSelection, ...] = DEFAULT_CATALOG,
        acting_as: Actor | None = None,
        latency: float = 0.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._catalog = {p.package_id: p for p in catalog}
        self._records: dict[str, Booking] = {}
        self._failures: dict[CommandKind, list[Exception]] = {}
        self._next_id = 1
        self._latency = latency
        self._clock = clock
        self.acting_as = acting_as or Actor.anonymous()
        self.calls: list[Command] = []
        self._logger = logging.getLogger(__name__)

    def seed(self, *records: Booking) -> None:
        for record in records:
            self._records[record.id] = record

    def record(self, booking_id: str) -> Booking | None:
        return self._records.get(booking_id)

    def fail_next(self, kind: CommandKind, failure: Exception) -> None:
        """Make the next `kind` command raise `failure` instead of running."""
        self._failures.setdefault(kind, []).append(failure)

    async def execute(self, command: Command, token: CancellationToken | None = None) -> AuthorityResult:
        self.calls.append(command)
        if token is not None:
            token.raise_if_cancelled()
        if self._latency:
            await asyncio.sleep(self._latency)
        if token is not None:
            token.raise_if_cancelled()

        queued = self._failures.get(command.kind)
        if queued:
            raise queued.pop(0)

        if not self.acting_as.is_authenticated:
            raise TransportFailure("http_401", raw_message="Not authorized, no token", status_code=401)

        handler = getattr(self, f"_handle_{command.kind.value}")
        return handler(command)

    def _handle_list(self, command: Command) -> list[Booking]:
        self._require_admin()
        params = command.params
        only_archived = params.get("onlyArchived") == "true"
        records = [r for r in self._records.values() if r.archived == only_archived]
        if params.get("status"):
            records = [r for r in records if r.status.value == params["status"]]
        if params.get("search"):
            term = params["search"].lower()
            records = [
                r
                for r in records
                if any(term in h.lower() for h in (r.client.name, r.client.email, *r.package_titles))
            ]
        if params.get("startDate"):
            start = date.fromisoformat(params["startDate"])
            records = [r for r in records if r.booking_date.date() >= start]
        if params.get("endDate"):
            end = date.fromisoformat(params["endDate"])
            records = [r for r in records if r.booking_date.date() <= end]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def _handle_list_mine(self, command: Command) -> list[Booking]:
        records = [r for r in self._records.values() if r.owner_id == self.acting_as.user_id and not r.archived]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def _handle_get(self, command: Command) -> Booking:
        record = self._find(command.booking_id)
        if not self.acting_as.is_admin and record.owner_id != self.acting_as.user_id:
            raise TransportFailure("http_403", raw_message="Not authorized to view this booking", status_code=403)
        return record

    def _handle_create(self, command: Command) -> Booking:
        try:
            payload = validate_create_payload(command.payload)
        except ValidationFailure as e:
            raise TransportFailure("http_400", raw_message=e.message, status_code=400) from e

        packages = []
        for package_id in payload.package_ids:
            package = self._catalog.get(package_id)
            if package is None:
                raise TransportFailure("http_404", raw_message="Package not found", status_code=404)
            packages.append(package)

        now = self._clock()
        booking = Booking(
            id=f"bk_{self._next_id:04d}",
            status=BookingStatus.pending,
            client=ClientIdentity(name=payload.client_name, email=payload.client_email, phone=payload.client_phone),
            packages=tuple(packages),
            guests=payload.guests,
            booking_date=payload.booking_date,
            total_amount=sum(p.price * payload.guests for p in packages),
            created_at=now,
            updated_at=now,
            owner_id=self.acting_as.user_id,
            special_requests=payload.special_requests or "",
        )
        self._next_id += 1
        self._records[booking.id] = booking
        self._logger.info("Mock booking created", extra={"booking_id": booking.id})
        return booking

    def _handle_set_status(self, command: Command) -> Booking:
        self._require_admin()
        record = self._find(command.booking_id)
        target = BookingStatus(command.payload["status"])
        if record.archived or target not in ADMIN_STATUS_TRANSITIONS.get(record.status, frozenset()):
            raise ConflictFailure(
                "conflict",
                raw_message=f"Booking is {record.status.value}; cannot set {target.value}",
                booking_id=record.id,
            )
        now = self._clock()
        return self._save(replace(record, status=target, updated_at=now, status_updated_at=now))

    def _handle_archive(self, command: Command) -> Booking:
        self._require_admin()
        record = self._find(command.booking_id)
        if record.archived:
            raise ConflictFailure("conflict", raw_message="Booking is already archived", booking_id=record.id)
        now = self._clock()
        reason = command.payload.get("reason")
        return self._save(replace(record, archived=True, archived_reason=reason, archived_at=now, updated_at=now))

    def _handle_restore(self, command: Command) -> Booking:
        self._require_admin()
        record = self._find(command.booking_id)
        if not record.archived:
            raise ConflictFailure("conflict", raw_message="Booking is not archived", booking_id=record.id)
        return self._save(
            replace(record, archived=False, archived_reason=None, archived_at=None, updated_at=self._clock())
        )

    def _handle_destroy_permanent(self, command: Command) -> None:
        self._require_admin()
        self._find(command.booking_id)
        del self._records[command.booking_id]

    def _handle_save_notes(self, command: Command) -> Booking:
        self._require_admin()
        record = self._find(command.booking_id)
        if record.archived:
            raise ConflictFailure("conflict", raw_message="Booking is archived", booking_id=record.id)
        return self._save(replace(record, admin_notes=command.payload.get("adminNotes") or "", updated_at=self._clock()))

    def _handle_resend_confirmation(self, command: Command) -> Booking:
        self._require_admin()
        record = self._find(command.booking_id)
        if record.status != BookingStatus.confirmed:
            raise ConflictFailure("conflict", raw_message="Booking is not confirmed", booking_id=record.id)
        return record

    def _handle_request_cancellation(self, command: Command) -> Booking:
        record = self._find_owned(command.booking_id)
        if record.status != BookingStatus.pending:
            raise ConflictFailure(
                "conflict", raw_message=f"Booking is {record.status.value}", booking_id=record.id
            )
        now = self._clock()
        return self._save(replace(record, status=BookingStatus.requested, updated_at=now, status_updated_at=now))

    def _handle_delete_own(self, command: Command) -> None:
        record = self._find_owned(command.booking_id)
        if record.status not in CLIENT_DELETABLE:
            raise ConflictFailure("conflict", raw_message="Confirmed bookings cannot be deleted", booking_id=record.id)
        del self._records[record.id]

    def _find(self, booking_id: str | None) -> Booking:
        record = self._records.get(booking_id or "")
        if record is None:
            raise TransportFailure("http_404", raw_message="Booking not found", status_code=404)
        return record

    def _find_owned(self, booking_id: str | None) -> Booking:
        record = self._find(booking_id)
        if record.owner_id != self.acting_as.user_id:
            raise TransportFailure("http_403", raw_message="Not authorized", status_code=403)
        return record

    def _require_admin(self) -> None:
        if not self.acting_as.is_admin:
            raise TransportFailure("http_403", raw_message="Admin access required", status_code=403)

    def _save(self, record: Booking) -> Booking:
        self._records[record.id] = record
        return record
