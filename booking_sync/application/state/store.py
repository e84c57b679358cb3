from __future__ import annotations

import logging
from typing import Callable

from booking_sync.application.state.actions import Action
from booking_sync.application.state.reducer import EMPTY_STATE, StoreState, reduce
from booking_sync.domain.entities.booking import Booking

StoreListener = Callable[[StoreState], None]


class BookingStore:
    """
    Canonical client-side collection of bookings.

    Every change goes through `dispatch`; listeners are told about a new state
    only when the reducer actually produced one.
    """

    def __init__(self, initial: StoreState = EMPTY_STATE) -> None:
        self._state = initial
        self._listeners: list[StoreListener] = []
        self._logger = logging.getLogger(__name__)

    def get_state(self) -> StoreState:
        return self._state

    def get(self, booking_id: str) -> Booking | None:
        return self._state.get(booking_id)

    def dispatch(self, action: Action) -> StoreState:
        previous = self._state
        self._state = reduce(previous, action)
        if self._state is not previous:
            for listener in list(self._listeners):
                try:
                    listener(self._state)
                except Exception as e:
                    self._logger.exception("Store listener failed", extra={"reason": str(e)})
        return self._state

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
