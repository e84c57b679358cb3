from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

from booking_sync.application.exceptions import CancelledFailure
from booking_sync.application.ports.authority import CancellationToken

T = TypeVar("T")

RequestFn = Callable[[CancellationToken], Awaitable[T]]
ResultFn = Callable[[T], None]


@dataclass
class _InFlight:
    token: CancellationToken
    task: asyncio.Task


@dataclass(frozen=True)
class _LastRequest(Generic[T]):
    kind: str
    request_fn: RequestFn
    on_result: ResultFn | None


class RequestCoordinator:
    """
    Serializes reads per logical query.

    Starting a request of a kind cancels the one of the same kind that is
    still pending. The superseded request's result, whenever it arrives, is
    dropped and reported as CancelledFailure.
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, _InFlight] = {}
        self._last: _LastRequest | None = None
        self._logger = logging.getLogger(__name__)

    def is_pending(self, kind: str) -> bool:
        return kind in self._in_flight

    async def run(
        self,
        kind: str,
        request_fn: RequestFn[T],
        on_result: ResultFn[T] | None = None,
        replayable: bool = True,
    ) -> T:
        """
        Run `request_fn` as the current request of `kind`.

        `on_result` is called synchronously with the result only if this
        request was not superseded in the meantime, so it is the safe place to
        write to the store.
        Only replayable requests are remembered for refresh().

        Raises:
            CancelledFailure: a newer request of the same kind (or cancel_all) superseded this one
        """
        self.cancel(kind)
        if replayable:
            self._last = _LastRequest(kind=kind, request_fn=request_fn, on_result=on_result)

        token = CancellationToken(kind)
        task = asyncio.ensure_future(request_fn(token))
        entry = _InFlight(token=token, task=task)
        self._in_flight[kind] = entry

        try:
            result = await task
        except (Exception, asyncio.CancelledError):
            # a superseded request never reports its own outcome, failures included
            if token.cancelled:
                self._logger.debug("Request superseded", extra={"request_kind": kind})
                raise CancelledFailure(kind) from None
            raise
        finally:
            if self._in_flight.get(kind) is entry:
                del self._in_flight[kind]

        if token.cancelled:
            self._logger.debug("Discarding superseded result", extra={"request_kind": kind})
            raise CancelledFailure(kind)

        if on_result is not None:
            on_result(result)
        return result

    async def refresh(self):
        """Re-issue the most recent read, e.g. after a ConflictFailure. Returns None if nothing ran yet."""
        last = self._last
        if last is None:
            return None
        return await self.run(last.kind, last.request_fn, last.on_result)

    def cancel(self, kind: str) -> None:
        entry = self._in_flight.pop(kind, None)
        if entry is None:
            return
        entry.token.cancel()
        if not entry.task.done():
            entry.task.cancel()

    def cancel_all(self) -> None:
        for kind in list(self._in_flight):
            self.cancel(kind)

    def forget(self) -> None:
        """Cancel everything and drop the remembered request (sign-out, scope switch)."""
        self.cancel_all()
        self._last = None
