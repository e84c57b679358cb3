from __future__ import annotations

from dataclasses import dataclass

from booking_sync.application.state.actions import Action, Add, Clear, Remove, SetAll, Update
from booking_sync.domain.entities.booking import Booking


@dataclass(frozen=True)
class StoreState:
    bookings: tuple[Booking, ...] = ()

    def get(self, booking_id: str) -> Booking | None:
        for booking in self.bookings:
            if booking.id == booking_id:
                return booking
        return None

    def index_of(self, booking_id: str) -> int | None:
        for i, booking in enumerate(self.bookings):
            if booking.id == booking_id:
                return i
        return None


EMPTY_STATE = StoreState()


def reduce(state: StoreState, action: Action) -> StoreState:
    """
    Apply one action and return the next state. Never mutates `state`.

    Records are keyed by id: SET_ALL keeps the last record seen for a repeated id,
    ADD of a known id replaces it in place, UPDATE of an unknown id is a no-op.
    """
    if isinstance(action, SetAll):
        return StoreState(bookings=_dedupe(action.records))

    if isinstance(action, Add):
        index = state.index_of(action.record.id)
        if index is not None:
            return _replace_at(state, index, action.record)
        position = max(0, min(action.index, len(state.bookings)))
        bookings = state.bookings[:position] + (action.record,) + state.bookings[position:]
        return StoreState(bookings=bookings)

    if isinstance(action, Update):
        index = state.index_of(action.record.id)
        if index is None:
            return state
        return _replace_at(state, index, action.record)

    if isinstance(action, Remove):
        if state.index_of(action.booking_id) is None:
            return state
        return StoreState(bookings=tuple(b for b in state.bookings if b.id != action.booking_id))

    if isinstance(action, Clear):
        return EMPTY_STATE

    raise TypeError(f"Unknown action: {action!r}")


def _replace_at(state: StoreState, index: int, record: Booking) -> StoreState:
    if state.bookings[index] == record:
        return state
    bookings = state.bookings[:index] + (record,) + state.bookings[index + 1 :]
    return StoreState(bookings=bookings)


def _dedupe(records: tuple[Booking, ...]) -> tuple[Booking, ...]:
    positions: dict[str, int] = {}
    out: list[Booking] = []
    for record in records:
        if record.id in positions:
            out[positions[record.id]] = record
            continue
        positions[record.id] = len(out)
        out.append(record)
    return tuple(out)
