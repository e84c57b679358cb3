from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable

from booking_sync.application.dto.booking_payload import CreateBookingPayload, validate_create_payload
from booking_sync.application.exceptions import (
    AuthorityFailure,
    BookingSyncError,
    CancelledFailure,
    ValidationFailure,
)
from booking_sync.application.ports.authority import AuthorityPort, Command
from booking_sync.application.ports.notifications import NotificationPort
from booking_sync.application.state.actions import Add, Clear, SetAll, Update
from booking_sync.application.state.store import BookingStore
from booking_sync.application.use_cases.optimistic import OptimisticUpdateController, PatchFn
from booking_sync.application.use_cases.request_coordinator import RequestCoordinator
from booking_sync.application.utils import lifecycle_rules
from booking_sync.application.utils.projector import BookingStats, project, summarize
from booking_sync.domain.entities import booking_event
from booking_sync.domain.entities.actor import Actor, Scope
from booking_sync.domain.entities.booking import Booking, BookingStatus
from booking_sync.domain.entities.booking_event import BookingEvent
from booking_sync.domain.entities.filter_set import FilterSet


class BookingSyncUseCase:
    """
    Keeps the local booking store in step with the authority.

    Reads go through the request coordinator (latest request wins), writes go
    through the optimistic controller (instant local effect, rollback on
    failure). Lifecycle rules are checked before anything is sent.
    """

    def __init__(
        self,
        authority: AuthorityPort,
        notifier: NotificationPort,
        store: BookingStore | None = None,
        coordinator: RequestCoordinator | None = None,
        optimistic: OptimisticUpdateController | None = None,
        actor: Actor | None = None,
    ) -> None:
        self._authority = authority
        self._notifier = notifier
        self._store = store or BookingStore()
        self._coordinator = coordinator or RequestCoordinator()
        self._optimistic = optimistic or OptimisticUpdateController(self._store)
        self._actor = actor or Actor.anonymous()
        self._scope = self._actor.default_scope
        self._archived_view = False
        self._epoch = 0
        self._logger = logging.getLogger(__name__)

    @property
    def store(self) -> BookingStore:
        return self._store

    @property
    def actor(self) -> Actor:
        return self._actor

    @property
    def scope(self) -> Scope | None:
        return self._scope

    @property
    def archived_view(self) -> bool:
        return self._archived_view

    # -- session -------------------------------------------------------------

    def set_actor(self, actor: Actor, access_token: str | None = None) -> None:
        """
        Called by the auth layer whenever the signed-in actor changes.

        `access_token` replaces the authority credentials. Signing out always
        drops them; signing in without a token keeps the configured one.
        """
        if not actor.is_authenticated:
            self._authority.set_access_token(None)
        elif access_token is not None:
            self._authority.set_access_token(access_token)

        if actor == self._actor:
            return
        self._logger.info("Actor changed", extra={"reason": actor.kind.value})
        self._actor = actor
        self._reset(actor.default_scope)

    def sign_out(self) -> None:
        self.set_actor(Actor.anonymous())

    async def switch_scope(self, scope: Scope, archived: bool = False) -> list[Booking] | None:
        """Move between "my bookings" and the admin's "all bookings" (active or archived) views."""
        if scope == Scope.all and not self._actor.is_admin:
            raise ValidationFailure("Only administrators can view all bookings")
        if scope == Scope.mine and not self._actor.is_authenticated:
            raise ValidationFailure("You must be signed in to view your bookings")
        archived = archived and scope == Scope.all
        if scope != self._scope or archived != self._archived_view:
            self._reset(scope)
            self._archived_view = archived
        return await self.load()

    def _reset(self, scope: Scope | None) -> None:
        self._epoch += 1
        self._coordinator.forget()
        self._optimistic.reset()
        self._store.dispatch(Clear())
        self._scope = scope
        self._archived_view = False

    # -- reads -----------------------------------------------------------------

    async def load(self) -> list[Booking] | None:
        """Fetch the bookings of the current scope. Returns None if a newer load superseded this one."""
        if self._scope is None:
            raise ValidationFailure("You must be signed in to view bookings")
        if self._scope == Scope.mine:
            return await self.list_mine()
        return await self.list_bookings({"onlyArchived": "true"} if self._archived_view else None)

    async def list_bookings(self, params: dict[str, str] | None = None) -> list[Booking] | None:
        if not self._actor.is_admin:
            raise ValidationFailure("Only administrators can list all bookings")
        return await self._read_many(Command.list(params))

    async def list_mine(self) -> list[Booking] | None:
        if not self._actor.is_authenticated:
            raise ValidationFailure("You must be signed in to view your bookings")
        return await self._read_many(Command.list_mine())

    async def refresh(self) -> list[Booking] | None:
        """Re-run the last list request; the explicit way to resync after a ConflictFailure."""
        try:
            result = await self._coordinator.refresh()
        except CancelledFailure:
            return None
        except AuthorityFailure as e:
            self._notify(BookingEvent(f"{booking_event.BOOKINGS_LOADED}_failed", error=e))
            raise
        if result is None:
            return await self.load()
        return result

    async def get(self, booking_id: str) -> Booking | None:
        """Fetch one booking and refresh its copy in the store (never inserts)."""
        if not self._actor.is_authenticated:
            raise ValidationFailure("You must be signed in to view bookings")

        def apply(record: Booking) -> None:
            self._store.dispatch(Update(record))

        command = Command.get(booking_id)
        try:
            return await self._coordinator.run(
                f"get:{booking_id}", lambda token: self._authority.execute(command, token), apply, replayable=False
            )
        except CancelledFailure:
            return None

    async def _read_many(self, command: Command) -> list[Booking] | None:
        def apply(records: list[Booking]) -> None:
            self._store.dispatch(SetAll(tuple(records)))
            self._notify(BookingEvent(booking_event.BOOKINGS_LOADED, count=len(records)))

        try:
            return await self._coordinator.run(
                command.kind.value, lambda token: self._authority.execute(command, token), apply
            )
        except CancelledFailure:
            return None
        except AuthorityFailure as e:
            self._logger.error("Failed to load bookings", extra={"command": command.kind.value, "reason": e.reason})
            self._notify(BookingEvent(f"{booking_event.BOOKINGS_LOADED}_failed", error=e))
            raise

    # -- writes ----------------------------------------------------------------

    async def create(self, payload: CreateBookingPayload | dict[str, Any]) -> Booking:
        try:
            if not self._actor.is_authenticated:
                raise ValidationFailure("You must be signed in to book a tour")
            validated = validate_create_payload(payload)
            epoch = self._epoch
            record = await self._authority.execute(Command.create(validated.to_wire()))
        except BookingSyncError as e:
            self._notify(BookingEvent(f"{booking_event.BOOKING_CREATED}_failed", error=e))
            raise

        if epoch == self._epoch and not self._archived_view:
            self._store.dispatch(Add(record))
        self._logger.info("Booking created", extra={"booking_id": record.id, "status": record.status.value})
        self._notify(BookingEvent(booking_event.BOOKING_CREATED, booking_id=record.id, booking=record))
        return record

    async def set_status(self, booking_id: str, status: BookingStatus | str) -> Booking | None:
        try:
            target = _coerce_status(status)
        except ValidationFailure as e:
            self._notify(BookingEvent(f"{booking_event.STATUS_CHANGED}_failed", booking_id=booking_id, error=e))
            raise
        return await self._mutate(
            booking_id,
            booking_event.STATUS_CHANGED,
            lambda b: lifecycle_rules.ensure_status_change(b, target, self._actor),
            lambda b: replace(b, status=target),
            Command.set_status(booking_id, target),
        )

    async def archive(self, booking_id: str, reason: str | None = None) -> Booking | None:
        return await self._mutate(
            booking_id,
            booking_event.ARCHIVED,
            lambda b: lifecycle_rules.ensure_can_archive(b, self._actor),
            lambda b: replace(b, archived=True, archived_reason=reason),
            Command.archive(booking_id, reason),
        )

    async def restore(self, booking_id: str) -> Booking | None:
        return await self._mutate(
            booking_id,
            booking_event.RESTORED,
            lambda b: lifecycle_rules.ensure_can_restore(b, self._actor),
            lambda b: replace(b, archived=False, archived_reason=None, archived_at=None),
            Command.restore(booking_id),
        )

    async def destroy_permanent(self, booking_id: str, confirmed: bool = False) -> None:
        """Irreversibly delete a booking. `confirmed` must be True; the caller asks the user first."""
        await self._mutate(
            booking_id,
            booking_event.DELETED,
            lambda b: lifecycle_rules.ensure_can_destroy(b, self._actor, confirmed),
            lambda b: None,
            Command.destroy_permanent(booking_id),
        )

    async def save_notes(self, booking_id: str, text: str) -> Booking | None:
        return await self._mutate(
            booking_id,
            booking_event.NOTES_SAVED,
            lambda b: lifecycle_rules.ensure_can_save_notes(b, self._actor),
            lambda b: replace(b, admin_notes=text),
            Command.save_notes(booking_id, text),
        )

    async def request_cancellation(self, booking_id: str) -> Booking | None:
        return await self._mutate(
            booking_id,
            booking_event.CANCELLATION_REQUESTED,
            lambda b: lifecycle_rules.ensure_can_request_cancellation(b, self._actor, self._owns(b)),
            lambda b: replace(b, status=BookingStatus.requested),
            Command.request_cancellation(booking_id),
        )

    async def delete_booking(self, booking_id: str) -> None:
        """Client-side delete of one of the actor's own, not yet confirmed, bookings."""
        await self._mutate(
            booking_id,
            booking_event.DELETED,
            lambda b: lifecycle_rules.ensure_can_delete_own(b, self._actor, self._owns(b)),
            lambda b: None,
            Command.delete_own(booking_id),
        )

    async def resend_confirmation(self, booking_id: str) -> Booking:
        kind = booking_event.CONFIRMATION_RESENT
        try:
            booking = self._require_loaded(booking_id)
            lifecycle_rules.ensure_can_resend_confirmation(booking, self._actor)
            record = await self._authority.execute(Command.resend_confirmation(booking_id))
        except BookingSyncError as e:
            self._notify(BookingEvent(f"{kind}_failed", booking_id=booking_id, error=e))
            raise
        self._store.dispatch(Update(record))
        self._notify(BookingEvent(kind, booking_id=booking_id, booking=record))
        return record

    async def _mutate(
        self,
        booking_id: str,
        event_kind: str,
        check: Callable[[Booking], None],
        patch: PatchFn,
        command: Command,
    ) -> Booking | None:
        try:
            booking = self._require_loaded(booking_id)
            check(booking)
            result = await self._optimistic.mutate(booking_id, patch, lambda: self._authority.execute(command))
        except BookingSyncError as e:
            reason = getattr(e, "reason", None) or str(e)
            self._logger.info(
                "Booking mutation rejected",
                extra={"booking_id": booking_id, "event": event_kind, "reason": reason},
            )
            self._notify(BookingEvent(f"{event_kind}_failed", booking_id=booking_id, error=e))
            raise

        self._logger.info("Booking mutation committed", extra={"booking_id": booking_id, "event": event_kind})
        self._notify(BookingEvent(event_kind, booking_id=booking_id, booking=result))
        return result

    # -- views -----------------------------------------------------------------

    def view(self, filters: FilterSet | None = None) -> list[Booking]:
        filters = filters or FilterSet(view="archived" if self._archived_view else "active")
        return project(self._store.get_state().bookings, filters)

    def stats(self) -> BookingStats:
        return summarize(self._store.get_state().bookings)

    def actions_for(self, booking_id: str) -> list[str]:
        booking = self._store.get(booking_id)
        if booking is None:
            return []
        return lifecycle_rules.available_actions(booking, self._actor, self._owns(booking))

    async def close(self) -> None:
        self._coordinator.cancel_all()
        await self._authority.aclose()

    # -- helpers ---------------------------------------------------------------

    def _require_loaded(self, booking_id: str) -> Booking:
        booking = self._store.get(booking_id)
        if booking is None:
            raise ValidationFailure(f"Booking {booking_id} is not loaded", field="id")
        return booking

    def _owns(self, booking: Booking) -> bool:
        if booking.owner_id is None:
            # "my bookings" only ever holds the actor's own records
            return self._scope == Scope.mine
        return lifecycle_rules.is_owner(booking, self._actor)

    def _notify(self, event: BookingEvent) -> None:
        self._notifier.publish(event)


def _coerce_status(value: BookingStatus | str) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in BookingStatus)
        raise ValidationFailure(f"Invalid status. Must be one of: {allowed}", field="status") from None
