from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from booking_sync.application.exceptions import ValidationFailure
from booking_sync.application.state.actions import Add, Remove, Update
from booking_sync.application.state.store import BookingStore
from booking_sync.domain.entities.booking import Booking

PatchFn = Callable[[Booking], Booking | None]  # None removes the record
CommandFn = Callable[[], Awaitable[Booking | None]]  # None means the authority deleted it


@dataclass
class _Pending:
    seq: int
    epoch: int
    baseline: Booking | None  # last authority-confirmed record, None once confirmed deleted
    baseline_seq: int  # seq of the mutation that produced `baseline`, 0 for the loaded record
    index: int


class OptimisticUpdateController:
    """
    Applies a mutation to the store before the authority answers.

    One tentative state per booking id: a newer mutate() for the same id
    supersedes an older one (last writer wins). A failed latest mutation
    restores the last confirmed record. An older mutation that the authority
    confirms after every newer one has failed is applied, since it is then the
    authority's current state.
    """

    def __init__(self, store: BookingStore) -> None:
        self._store = store
        self._pending: dict[str, _Pending] = {}
        self._confirmed: dict[str, int] = {}  # seq of the newest confirmed result applied per id
        self._seq = 0
        self._epoch = 0
        self._logger = logging.getLogger(__name__)

    def has_pending(self, booking_id: str) -> bool:
        return booking_id in self._pending

    def reset(self) -> None:
        """Forget every tentative mutation; late resolutions will not touch the store."""
        self._pending.clear()
        self._confirmed.clear()
        self._epoch += 1

    async def mutate(self, booking_id: str, patch_fn: PatchFn, command_fn: CommandFn) -> Booking | None:
        current = self._store.get(booking_id)
        if current is None:
            raise ValidationFailure(f"Booking {booking_id} is not loaded", field="id")

        self._seq += 1
        previous = self._pending.get(booking_id)
        if previous is None:
            entry = _Pending(
                seq=self._seq,
                epoch=self._epoch,
                baseline=current,
                baseline_seq=self._confirmed.get(booking_id, 0),
                index=self._store.get_state().index_of(booking_id) or 0,
            )
        else:
            entry = _Pending(
                seq=self._seq,
                epoch=self._epoch,
                baseline=previous.baseline,
                baseline_seq=previous.baseline_seq,
                index=previous.index,
            )
        self._pending[booking_id] = entry

        tentative = patch_fn(current)
        if tentative is None:
            self._store.dispatch(Remove(booking_id))
        else:
            self._store.dispatch(Update(tentative))

        try:
            result = await command_fn()
        except BaseException:
            # no answer is treated like a rejection
            self._rollback(booking_id, entry)
            raise

        self._commit(booking_id, entry, result)
        return result

    def _commit(self, booking_id: str, entry: _Pending, result: Booking | None) -> None:
        if entry.epoch != self._epoch:
            self._logger.debug("Dropping mutation result from a previous session", extra={"booking_id": booking_id})
            return

        latest = self._pending.get(booking_id)
        if latest is entry:
            del self._pending[booking_id]
            self._apply(booking_id, entry.seq, result)
            return

        if latest is not None:
            if entry.seq > latest.baseline_seq:
                latest.baseline = result
                latest.baseline_seq = entry.seq
            self._logger.debug("Superseded mutation confirmed", extra={"booking_id": booking_id})
            return

        # every newer mutation has settled; apply this one only if none of them was confirmed
        if entry.seq > self._confirmed.get(booking_id, 0):
            self._logger.info("Applying late confirmation after newer failure", extra={"booking_id": booking_id})
            self._apply(booking_id, entry.seq, result)

    def _apply(self, booking_id: str, seq: int, result: Booking | None) -> None:
        self._confirmed[booking_id] = seq
        if result is None:
            self._store.dispatch(Remove(booking_id))
        elif self._store.get(booking_id) is not None:
            self._store.dispatch(Update(result))

    def _rollback(self, booking_id: str, entry: _Pending) -> None:
        if entry.epoch != self._epoch or self._pending.get(booking_id) is not entry:
            self._logger.debug("Superseded mutation failed", extra={"booking_id": booking_id})
            return

        del self._pending[booking_id]
        baseline = entry.baseline
        self._logger.warning("Rolling back optimistic update", extra={"booking_id": booking_id})
        if baseline is None:
            self._store.dispatch(Remove(booking_id))
        elif self._store.get(booking_id) is None:
            self._store.dispatch(Add(baseline, index=entry.index))
        else:
            self._store.dispatch(Update(baseline))
