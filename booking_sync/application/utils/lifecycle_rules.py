from __future__ import annotations

from booking_sync.application.exceptions import ValidationFailure
from booking_sync.domain.entities.actor import Actor
from booking_sync.domain.entities.booking import Booking, BookingStatus

# Administrator status moves within the active (non-archived) set.
ADMIN_STATUS_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.pending: frozenset({BookingStatus.confirmed, BookingStatus.cancelled}),
    BookingStatus.confirmed: frozenset({BookingStatus.cancelled}),
    BookingStatus.cancelled: frozenset({BookingStatus.pending}),
    # approve or decline a client cancellation request
    BookingStatus.requested: frozenset({BookingStatus.cancelled, BookingStatus.pending}),
}

# The only status move a client may make on its own booking.
CLIENT_STATUS_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.pending: frozenset({BookingStatus.requested}),
}

CLIENT_DELETABLE = frozenset({BookingStatus.pending, BookingStatus.cancelled, BookingStatus.requested})


def is_owner(booking: Booking, actor: Actor) -> bool:
    return actor.user_id is not None and booking.owner_id == actor.user_id


def _require_signed_in(actor: Actor) -> None:
    if not actor.is_authenticated:
        raise ValidationFailure("You must be signed in to manage bookings")


def _require_admin(actor: Actor, what: str) -> None:
    _require_signed_in(actor)
    if not actor.is_admin:
        raise ValidationFailure(f"Only administrators can {what}")


def _require_active(booking: Booking, what: str) -> None:
    if booking.archived:
        raise ValidationFailure(f"Booking {booking.id} is archived; restore it before you {what}")


def _require_owner(booking: Booking, actor: Actor, owned: bool | None) -> None:
    if not (owned if owned is not None else is_owner(booking, actor)):
        raise ValidationFailure(f"Booking {booking.id} does not belong to you")


def ensure_status_change(booking: Booking, target: BookingStatus, actor: Actor) -> None:
    _require_admin(actor, "change a booking status")
    _require_active(booking, "change its status")
    if booking.status == target:
        raise ValidationFailure(f"Booking {booking.id} is already {target.value}", field="status")
    allowed = ADMIN_STATUS_TRANSITIONS.get(booking.status, frozenset())
    if target not in allowed:
        raise ValidationFailure(
            f"Cannot move booking {booking.id} from {booking.status.value} to {target.value}",
            field="status",
        )


def ensure_can_archive(booking: Booking, actor: Actor) -> None:
    _require_admin(actor, "archive bookings")
    if booking.archived:
        raise ValidationFailure(f"Booking {booking.id} is already archived")


def ensure_can_restore(booking: Booking, actor: Actor) -> None:
    _require_admin(actor, "restore bookings")
    if not booking.archived:
        raise ValidationFailure(f"Booking {booking.id} is not archived")


def ensure_can_destroy(booking: Booking, actor: Actor, confirmed: bool) -> None:
    _require_admin(actor, "permanently delete bookings")
    if not confirmed:
        raise ValidationFailure(f"Permanent deletion of booking {booking.id} must be explicitly confirmed")


def ensure_can_save_notes(booking: Booking, actor: Actor) -> None:
    _require_admin(actor, "edit admin notes")
    _require_active(booking, "edit its notes")


def ensure_can_resend_confirmation(booking: Booking, actor: Actor) -> None:
    _require_admin(actor, "resend confirmations")
    _require_active(booking, "resend its confirmation")
    if booking.status != BookingStatus.confirmed:
        raise ValidationFailure(f"Booking {booking.id} is not confirmed")


def ensure_can_request_cancellation(booking: Booking, actor: Actor, owned: bool | None = None) -> None:
    _require_signed_in(actor)
    _require_owner(booking, actor, owned)
    _require_active(booking, "cancel it")
    allowed = CLIENT_STATUS_TRANSITIONS.get(booking.status, frozenset())
    if BookingStatus.requested not in allowed:
        raise ValidationFailure(
            f"Cancellation cannot be requested for a {booking.status.value} booking", field="status"
        )


def ensure_can_delete_own(booking: Booking, actor: Actor, owned: bool | None = None) -> None:
    _require_signed_in(actor)
    _require_owner(booking, actor, owned)
    _require_active(booking, "delete it")
    if booking.status not in CLIENT_DELETABLE:
        raise ValidationFailure(f"Booking {booking.id} is already confirmed and cannot be deleted")


def available_actions(booking: Booking, actor: Actor, owned: bool | None = None) -> list[str]:
    """Names of the actions `actor` may take on `booking`, in menu order."""
    if not actor.is_authenticated:
        return []
    if actor.is_admin:
        if booking.archived:
            return ["restore", "destroy_permanent"]
        actions = [f"set_status:{s.value}" for s in BookingStatus if s in ADMIN_STATUS_TRANSITIONS[booking.status]]
        actions.append("save_notes")
        if booking.status == BookingStatus.confirmed:
            actions.append("resend_confirmation")
        actions.append("archive")
        return actions

    if not (owned if owned is not None else is_owner(booking, actor)) or booking.archived:
        return []
    actions = []
    if booking.status in CLIENT_STATUS_TRANSITIONS:
        actions.append("request_cancellation")
    if booking.status in CLIENT_DELETABLE:
        actions.append("delete")
    return actions
