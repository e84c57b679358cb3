from abc import ABC, abstractmethod
from typing import Callable

from booking_sync.domain.entities.booking_event import BookingEvent

Listener = Callable[[BookingEvent], None]


class NotificationPort(ABC):
    @abstractmethod
    def publish(self, event: BookingEvent) -> None:
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for booking events.
        Returns a callable that removes the listener again.
        """
        raise NotImplementedError
