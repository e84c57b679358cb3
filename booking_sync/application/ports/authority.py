from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from booking_sync.application.exceptions import CancelledFailure
from booking_sync.domain.entities.booking import Booking, BookingStatus


class CommandKind(str, Enum):
    list = "list"
    list_mine = "list_mine"
    get = "get"
    create = "create"
    set_status = "set_status"
    archive = "archive"
    restore = "restore"
    destroy_permanent = "destroy_permanent"
    save_notes = "save_notes"
    resend_confirmation = "resend_confirmation"
    request_cancellation = "request_cancellation"
    delete_own = "delete_own"


READ_COMMANDS = frozenset({CommandKind.list, CommandKind.list_mine, CommandKind.get})


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    booking_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)

    @property
    def is_read(self) -> bool:
        return self.kind in READ_COMMANDS

    @classmethod
    def list(cls, params: dict[str, str] | None = None) -> "Command":
        return cls(CommandKind.list, params=dict(params or {}))

    @classmethod
    def list_mine(cls) -> "Command":
        return cls(CommandKind.list_mine)

    @classmethod
    def get(cls, booking_id: str) -> "Command":
        return cls(CommandKind.get, booking_id=booking_id)

    @classmethod
    def create(cls, payload: dict[str, Any]) -> "Command":
        return cls(CommandKind.create, payload=dict(payload))

    @classmethod
    def set_status(cls, booking_id: str, status: BookingStatus) -> "Command":
        return cls(CommandKind.set_status, booking_id=booking_id, payload={"status": status.value})

    @classmethod
    def archive(cls, booking_id: str, reason: str | None = None) -> "Command":
        return cls(CommandKind.archive, booking_id=booking_id, payload={"reason": reason})

    @classmethod
    def restore(cls, booking_id: str) -> "Command":
        return cls(CommandKind.restore, booking_id=booking_id)

    @classmethod
    def destroy_permanent(cls, booking_id: str) -> "Command":
        return cls(CommandKind.destroy_permanent, booking_id=booking_id)

    @classmethod
    def save_notes(cls, booking_id: str, text: str) -> "Command":
        return cls(CommandKind.save_notes, booking_id=booking_id, payload={"adminNotes": text})

    @classmethod
    def resend_confirmation(cls, booking_id: str) -> "Command":
        return cls(CommandKind.resend_confirmation, booking_id=booking_id)

    @classmethod
    def request_cancellation(cls, booking_id: str) -> "Command":
        return cls(CommandKind.request_cancellation, booking_id=booking_id)

    @classmethod
    def delete_own(cls, booking_id: str) -> "Command":
        return cls(CommandKind.delete_own, booking_id=booking_id)


class CancellationToken:
    """Cooperative cancellation flag handed to the authority with a read command."""

    def __init__(self, request_kind: str) -> None:
        self.request_kind = request_kind
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise CancelledFailure(self.request_kind)


AuthorityResult = Booking | list[Booking] | None


class AuthorityPort(ABC):
    @abstractmethod
    async def execute(self, command: Command, token: CancellationToken | None = None) -> AuthorityResult:
        """
        Issue one command to the authority.

        Returns:
            list[Booking] for list/list_mine, None for destroy_permanent/delete_own,
            the canonical Booking otherwise.

        Raises:
            TransportFailure: network, timeout, non-2xx, success=false, malformed envelope
            ConflictFailure: the authority rejected the command as stale (HTTP 409)
            CancelledFailure: `token` was cancelled before the reply was accepted
        """
        raise NotImplementedError

    def set_access_token(self, access_token: str | None) -> None:
        """Credentials for subsequent commands; None signs the adapter out."""
        return None

    async def aclose(self) -> None:
        return None
