from __future__ import annotations

import logging
from typing import Callable

from booking_sync.application.ports.notifications import Listener, NotificationPort
from booking_sync.domain.entities.booking_event import BookingEvent


class LocalEventBus(NotificationPort):
    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._logger = logging.getLogger(__name__)

    def publish(self, event: BookingEvent) -> None:
        self._logger.debug("Booking event", extra={"event": event.kind, "booking_id": event.booking_id})
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                self._logger.exception("Booking event listener failed", extra={"event": event.kind, "reason": str(e)})

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
