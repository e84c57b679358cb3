"""
Tests for the filtered/sorted view projection and dashboard stats.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from booking_sync.application.utils.projector import project, summarize
from booking_sync.domain.entities.booking import BookingStatus, ClientIdentity, PackageSelection
from booking_sync.domain.entities.filter_set import FilterSet


def _records(make_booking):
    return [
        make_booking(
            "bk_0001",
            status=BookingStatus.confirmed,
            client=ClientIdentity(name="Ana Santos", email="ana@example.com", phone="09171111111"),
            total_amount=3000.0,
        ),
        make_booking(
            "bk_0002",
            status=BookingStatus.pending,
            client=ClientIdentity(name="Ana Reyes", email="reyes@example.com", phone="09172222222"),
        ),
        make_booking(
            "bk_0003",
            status=BookingStatus.confirmed,
            client=ClientIdentity(name="Mark Lim", email="mark@example.com", phone="09173333333"),
            packages=(PackageSelection(package_id="pkg_x", title="Sagada Caves", price=900.0),),
            total_amount=1800.0,
        ),
        make_booking(
            "bk_0004",
            status=BookingStatus.confirmed,
            client=ClientIdentity(name="Leo Cruz", email="LEO.ANAYA@example.com", phone="09174444444"),
            total_amount=4500.0,
            guests=3,
        ),
    ]


def test_status_and_search_are_conjunctive(make_booking):
    """status=confirmed AND 'ana' in name/email/package title, case-insensitive."""
    result = project(_records(make_booking), FilterSet(status=BookingStatus.confirmed, search="ana"))

    assert {b.id for b in result} == {"bk_0001", "bk_0004"}


def test_search_matches_package_title(make_booking):
    result = project(_records(make_booking), FilterSet(search="SAGADA"))

    assert [b.id for b in result] == ["bk_0003"]


def test_search_does_not_match_across_package_titles(make_booking):
    booking = make_booking(
        "bk_0001",
        packages=(
            PackageSelection(package_id="pkg_boracay", title="Boracay Island Escape", price=1500.0),
            PackageSelection(package_id="pkg_palawan", title="El Nido Lagoon Tour", price=2500.0),
        ),
    )

    assert project([booking], FilterSet(search="escape el")) == []
    assert project([booking], FilterSet(search="el nido")) == [booking]


def test_empty_filters_return_all_active_newest_first(make_booking):
    result = project(_records(make_booking), FilterSet())

    assert [b.id for b in result] == ["bk_0004", "bk_0003", "bk_0002", "bk_0001"]


def test_date_range_includes_whole_end_day(make_booking):
    records = [
        make_booking("bk_0001", booking_date=datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)),
        make_booking("bk_0002", booking_date=datetime(2026, 3, 5, 23, 30, tzinfo=timezone.utc)),
        make_booking("bk_0003", booking_date=datetime(2026, 3, 6, 0, 0, tzinfo=timezone.utc)),
        make_booking("bk_0004", booking_date=datetime(2026, 2, 28, 23, 59, tzinfo=timezone.utc)),
    ]

    result = project(records, FilterSet(start_date=date(2026, 3, 1), end_date=date(2026, 3, 5)))

    assert {b.id for b in result} == {"bk_0001", "bk_0002"}


def test_guest_threshold_and_amount_range(make_booking):
    records = _records(make_booking)

    assert [b.id for b in project(records, FilterSet(min_guests=3))] == ["bk_0004"]
    result = project(records, FilterSet(min_amount=2000, max_amount=3000))
    assert {b.id for b in result} == {"bk_0001", "bk_0002"}


def test_archived_records_only_show_in_archived_view(make_booking):
    records = [make_booking("bk_0001"), make_booking("bk_0002", archived=True)]

    assert [b.id for b in project(records, FilterSet())] == ["bk_0001"]
    assert [b.id for b in project(records, FilterSet(view="archived"))] == ["bk_0002"]
    assert len(project(records, FilterSet(view="all"))) == 2


def test_sorting_options(make_booking):
    records = _records(make_booking)

    by_amount = project(records, FilterSet(sort_by="total_amount", descending=False))
    # ties keep their input order
    assert [b.id for b in by_amount] == ["bk_0003", "bk_0001", "bk_0002", "bk_0004"]

    by_name = project(records, FilterSet(sort_by="client_name", descending=False))
    assert [b.client.name for b in by_name] == ["Ana Reyes", "Ana Santos", "Leo Cruz", "Mark Lim"]


def test_project_does_not_mutate_input(make_booking):
    records = _records(make_booking)
    before = list(records)

    project(records, FilterSet(status=BookingStatus.pending, sort_by="guests"))

    assert records == before


def test_summarize_counts_and_confirmed_revenue(make_booking):
    records = _records(make_booking) + [
        make_booking("bk_0005", status=BookingStatus.requested),
        make_booking("bk_0006", status=BookingStatus.confirmed, archived=True, total_amount=9999.0),
    ]

    stats = summarize(records)

    assert stats.total == 5
    assert stats.confirmed == 3
    assert stats.pending == 1
    assert stats.requested == 1
    assert stats.cancelled == 0
    assert stats.archived == 1
    assert stats.revenue == 3000.0 + 1800.0 + 4500.0


def test_query_params_for_server_side_filters():
    filters = FilterSet(
        search="  ana ",
        status=BookingStatus.confirmed,
        start_date=date(2026, 3, 1),
        view="archived",
    )

    assert filters.to_query_params() == {
        "status": "confirmed",
        "search": "ana",
        "startDate": "2026-03-01",
        "onlyArchived": "true",
    }
    assert FilterSet().is_empty
