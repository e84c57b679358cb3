class BookingSyncError(RuntimeError):
    """Base class for every failure the sync engine reports."""
    pass


class ValidationFailure(BookingSyncError):
    """Raised for illegal local transitions or malformed input. Never reaches the authority."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class AuthorityFailure(BookingSyncError):
    """Raised when a command sent to the authority did not produce a usable result."""

    def __init__(
        self,
        reason: str,
        raw_message: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(raw_message or reason)
        self.reason = reason
        self.raw_message = raw_message
        self.status_code = status_code


class TransportFailure(AuthorityFailure):
    """Raised for timeouts, network errors, non-2xx replies, success=false or malformed envelopes."""
    pass


class ConflictFailure(AuthorityFailure):
    """Raised when the authority rejects a transition because the client view is stale."""

    refresh_required = True

    def __init__(
        self,
        reason: str,
        raw_message: str | None = None,
        status_code: int | None = 409,
        booking_id: str | None = None,
    ) -> None:
        super().__init__(reason, raw_message=raw_message, status_code=status_code)
        self.booking_id = booking_id


class CancelledFailure(BookingSyncError):
    """Raised for a superseded read. Swallowed by the engine, never shown to the user."""

    def __init__(self, request_kind: str) -> None:
        super().__init__(f"{request_kind} request cancelled")
        self.request_kind = request_kind
