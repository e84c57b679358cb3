"""
Tests for optimistic mutations: tentative state, commit, rollback and last-writer-wins.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from booking_sync.application.exceptions import ConflictFailure, TransportFailure, ValidationFailure
from booking_sync.application.state.actions import SetAll
from booking_sync.application.state.store import BookingStore
from booking_sync.application.use_cases.optimistic import OptimisticUpdateController
from booking_sync.domain.entities.booking import BookingStatus


def _store(*records) -> BookingStore:
    store = BookingStore()
    store.dispatch(SetAll(tuple(records)))
    return store


def _set_status(status: BookingStatus):
    return lambda booking: replace(booking, status=status)


class GatedCommand:
    """Command whose outcome is decided by the test after the mutation is in flight."""

    def __init__(self) -> None:
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()

    async def __call__(self):
        return await self._future

    def succeed(self, value) -> None:
        self._future.set_result(value)

    def fail(self, error: Exception) -> None:
        self._future.set_exception(error)


@pytest.mark.asyncio
async def test_tentative_state_is_visible_then_committed(make_booking):
    original = make_booking("bk_0001")
    store = _store(original)
    controller = OptimisticUpdateController(store)
    command = GatedCommand()
    canonical = replace(original, status=BookingStatus.confirmed, admin_notes="server copy")

    task = asyncio.ensure_future(controller.mutate("bk_0001", _set_status(BookingStatus.confirmed), command))
    await asyncio.sleep(0)

    assert store.get("bk_0001").status == BookingStatus.confirmed
    assert store.get("bk_0001").admin_notes == ""
    assert controller.has_pending("bk_0001")

    command.succeed(canonical)
    assert await task == canonical
    assert store.get("bk_0001") == canonical
    assert not controller.has_pending("bk_0001")


@pytest.mark.asyncio
async def test_failure_restores_exact_prior_record(make_booking):
    original = make_booking("bk_0001", admin_notes="keep me")
    store = _store(make_booking("bk_0000"), original)
    before = store.get_state()
    controller = OptimisticUpdateController(store)

    async def failing():
        raise TransportFailure("timeout")

    with pytest.raises(TransportFailure):
        await controller.mutate("bk_0001", _set_status(BookingStatus.cancelled), failing)

    assert store.get_state() == before
    assert not controller.has_pending("bk_0001")


@pytest.mark.asyncio
async def test_unexpected_adapter_error_still_rolls_back(make_booking):
    original = make_booking("bk_0001")
    store = _store(original)
    controller = OptimisticUpdateController(store)

    async def broken():
        raise RuntimeError("adapter bug")

    with pytest.raises(RuntimeError):
        await controller.mutate("bk_0001", _set_status(BookingStatus.confirmed), broken)

    assert store.get("bk_0001") == original
    assert not controller.has_pending("bk_0001")


@pytest.mark.asyncio
async def test_failed_removal_puts_record_back_at_its_index(make_booking):
    records = (make_booking("bk_0001"), make_booking("bk_0002"), make_booking("bk_0003"))
    store = _store(*records)
    controller = OptimisticUpdateController(store)
    command = GatedCommand()

    task = asyncio.ensure_future(controller.mutate("bk_0002", lambda b: None, command))
    await asyncio.sleep(0)
    assert store.get("bk_0002") is None

    command.fail(ConflictFailure("conflict", booking_id="bk_0002"))
    with pytest.raises(ConflictFailure):
        await task

    assert store.get_state().bookings == records


@pytest.mark.asyncio
async def test_confirmed_removal_stays_removed(make_booking):
    store = _store(make_booking("bk_0001"), make_booking("bk_0002"))
    controller = OptimisticUpdateController(store)

    async def deleted():
        return None

    assert await controller.mutate("bk_0001", lambda b: None, deleted) is None
    assert [b.id for b in store.get_state().bookings] == ["bk_0002"]


@pytest.mark.asyncio
async def test_later_mutation_wins_over_earlier_resolution(make_booking):
    """confirm(X) then cancel(X); the confirm resolving last must not overwrite the cancel."""
    original = make_booking("bk_0001")
    store = _store(original)
    controller = OptimisticUpdateController(store)
    first, second = GatedCommand(), GatedCommand()

    t1 = asyncio.ensure_future(controller.mutate("bk_0001", _set_status(BookingStatus.confirmed), first))
    await asyncio.sleep(0)
    t2 = asyncio.ensure_future(controller.mutate("bk_0001", _set_status(BookingStatus.cancelled), second))
    await asyncio.sleep(0)
    assert store.get("bk_0001").status == BookingStatus.cancelled

    second.succeed(replace(original, status=BookingStatus.cancelled))
    await t2
    first.succeed(replace(original, status=BookingStatus.confirmed))
    await t1

    assert store.get("bk_0001").status == BookingStatus.cancelled


@pytest.mark.asyncio
async def test_superseded_failure_is_ignored(make_booking):
    original = make_booking("bk_0001")
    store = _store(original)
    controller = OptimisticUpdateController(store)
    first, second = GatedCommand(), GatedCommand()

    t1 = asyncio.ensure_future(controller.mutate("bk_0001", _set_status(BookingStatus.confirmed), first))
    await asyncio.sleep(0)
    t2 = asyncio.ensure_future(controller.mutate("bk_0001", _set_status(BookingStatus.cancelled), second))
    await asyncio.sleep(0)

    first.fail(TransportFailure("timeout"))
    with pytest.raises(TransportFailure):
        await t1
    assert store.get("bk_0001").status == BookingStatus.cancelled
    assert controller.has_pending("bk_0001")

    second.succeed(replace(original, status=BookingStatus.cancelled))
    await t2
    assert store.get("bk_0001").status == BookingStatus.cancelled


@pytest.mark.asyncio
async def test_latest_failure_restores_last_confirmed_record(make_booking):
    """A superseded mutation that the authority accepted becomes the rollback target."""
    original = make_booking("bk_0001")
    store = _store(original)
    controller = OptimisticUpdateController(store)
    first, second = GatedCommand(), GatedCommand()
    confirmed = replace(original, status=BookingStatus.confirmed)

    t1 = asyncio.ensure_future(controller.mutate("bk_0001", _set_status(BookingStatus.confirmed), first))
    await asyncio.sleep(0)
    t2 = asyncio.ensure_future(
        controller.mutate("bk_0001", lambda b: replace(b, admin_notes="call first"), second)
    )
    await asyncio.sleep(0)

    first.succeed(confirmed)
    await t1
    second.fail(TransportFailure("http_500", status_code=500))
    with pytest.raises(TransportFailure):
        await t2

    assert store.get("bk_0001") == confirmed


@pytest.mark.asyncio
async def test_earlier_confirmation_applies_after_newer_failure(make_booking):
    """confirm(X) then notes(X); the notes call fails first, then the confirm succeeds."""
    original = make_booking("bk_0001")
    store = _store(original)
    controller = OptimisticUpdateController(store)
    first, second = GatedCommand(), GatedCommand()
    confirmed = replace(original, status=BookingStatus.confirmed)

    t1 = asyncio.ensure_future(controller.mutate("bk_0001", _set_status(BookingStatus.confirmed), first))
    await asyncio.sleep(0)
    t2 = asyncio.ensure_future(
        controller.mutate("bk_0001", lambda b: replace(b, admin_notes="call first"), second)
    )
    await asyncio.sleep(0)

    second.fail(TransportFailure("timeout"))
    with pytest.raises(TransportFailure):
        await t2
    assert store.get("bk_0001") == original

    first.succeed(confirmed)
    await t1

    assert store.get("bk_0001") == confirmed
    assert not controller.has_pending("bk_0001")


@pytest.mark.asyncio
async def test_reset_drops_late_resolutions(make_booking):
    original = make_booking("bk_0001")
    store = _store(original)
    controller = OptimisticUpdateController(store)
    command = GatedCommand()

    task = asyncio.ensure_future(controller.mutate("bk_0001", _set_status(BookingStatus.confirmed), command))
    await asyncio.sleep(0)
    controller.reset()
    store.dispatch(SetAll((original,)))

    command.succeed(replace(original, status=BookingStatus.confirmed, admin_notes="late"))
    await task

    assert store.get("bk_0001") == original


@pytest.mark.asyncio
async def test_mutating_unknown_booking_is_rejected():
    controller = OptimisticUpdateController(BookingStore())
    called = []

    async def command():
        called.append(True)

    with pytest.raises(ValidationFailure):
        await controller.mutate("bk_0404", lambda b: b, command)
    assert called == []
