from __future__ import annotations

from datetime import date, datetime, timezone

import pandas as pd
import pytest

from donor_crm.clock import FixedClock, SequentialIdFactory
from donor_crm.config import StoreConfig
from donor_crm.reports import (
    DonationFilters,
    active_filter_count,
    dashboard_stats,
    daily_trend,
    date_range,
    donations_by_month,
    donations_frame,
    donor_directory,
    donors_frame,
    filter_donations,
    format_currency,
    method_breakdown,
    month_bounds,
    paginate,
    purpose_breakdown,
    report_kpis,
)
from donor_crm.store import CRMStore


def _build_store() -> CRMStore:
    clock = FixedClock(datetime(2024, 3, 20, 8, 0, tzinfo=timezone.utc))
    store = CRMStore(clock=clock, id_factory=SequentialIdFactory())

    volunteer = store.add_tag("Volunteer").unwrap()
    major = store.add_tag("Major Donor").unwrap()
    alice = store.add_donor(
        name="Alice Johnson",
        email="alice.j@example.com",
        phone="123-456-7890",
        address="123 Maple St, Springfield",
        join_date=date(2023, 1, 15),
        tag_ids=[volunteer.id, major.id],
    ).unwrap()
    bob = store.add_donor(
        name="bob Williams",
        email="bob.w@example.com",
        phone="234-567-8901",
        address="456 Oak Ave, Metropolis",
        join_date=date(2024, 2, 20),
        tag_ids=[volunteer.id],
    ).unwrap()
    store.add_donor(
        name="Carol King",
        email="carol@example.com",
        phone="345-678-9012",
        address="9 Pine Rd, Springfield",
        join_date=date(2024, 3, 1),
    ).unwrap()

    gifts = [
        (alice.id, 100, date(2024, 1, 10), "Online", "Zakat", None, "None"),
        (alice.id, 200, date(2024, 3, 5), "Online", "Sponsor a Child", None, "Monthly"),
        (bob.id, 50, date(2024, 3, 5), "Cash", "Custom", "School Roof", "None"),
        (bob.id, 30, date(2023, 11, 2), "Cash", "Clean Water", None, "None"),
    ]
    for donor_id, amount, gift_date, method, purpose, custom, recurring in gifts:
        store.add_donation(
            donor_id=donor_id,
            amount=amount,
            donation_date=gift_date,
            method=method,
            purpose=purpose,
            custom_purpose=custom,
            recurring=recurring,
        ).unwrap()

    store.add_pledge(donor_id=alice.id, amount=500, due_date=date(2024, 3, 25)).unwrap()
    done = store.add_pledge(donor_id=bob.id, amount=300, due_date=date(2024, 2, 1)).unwrap()
    store.update_pledge_status_bulk([done.id], "Completed").unwrap()
    return store


def test_donor_directory_search_tags_and_sort() -> None:
    store = _build_store()

    by_total = donor_directory(store.state, sort=(("total_donated", "desc"),))
    assert list(by_total["name"]) == ["Alice Johnson", "bob Williams", "Carol King"]
    assert list(by_total["total_donated"]) == [300.0, 80.0, 0.0]

    by_name = donor_directory(store.state)
    assert list(by_name["name"]) == ["Alice Johnson", "bob Williams", "Carol King"]

    springfield = donor_directory(store.state, search="springfield")
    assert set(springfield["name"]) == {"Alice Johnson", "Carol King"}

    by_phone = donor_directory(store.state, search="(234) 567-8901")
    assert list(by_phone["name"]) == ["bob Williams"]

    tag_ids = [tag.id for tag in store.state.tags]
    both_tags = donor_directory(store.state, tag_ids=tag_ids)
    assert list(both_tags["name"]) == ["Alice Johnson"]

    joined_2024 = donor_directory(store.state, join_start=date(2024, 1, 1), min_total=10)
    assert list(joined_2024["name"]) == ["bob Williams"]


def test_donor_directory_on_empty_store() -> None:
    store = CRMStore()

    frame = donor_directory(store.state, search="anything", tag_ids=["tag-1"])

    assert frame.empty


def test_filter_donations_and_active_filter_count() -> None:
    store = _build_store()
    filters = DonationFilters(start=date(2024, 1, 1), end=date(2024, 3, 20))

    frame = filter_donations(store.state, filters)
    assert list(frame["amount"]) == [200.0, 50.0, 100.0]
    assert active_filter_count(filters) == 0

    online = DonationFilters(start=date(2024, 1, 1), method="Online", min_amount=150)
    assert list(filter_donations(store.state, online)["amount"]) == [200.0]
    assert active_filter_count(online) == 2

    custom = DonationFilters(purpose="Custom", custom_purpose="roof")
    custom_frame = filter_donations(store.state, custom)
    assert list(custom_frame["donor_name"]) == ["bob Williams"]

    by_name = DonationFilters(search="ALICE", recurring="Monthly")
    assert list(filter_donations(store.state, by_name)["amount"]) == [200.0]


def test_report_kpis_for_date_range() -> None:
    store = _build_store()
    filters = DonationFilters(start=date(2024, 1, 1), end=date(2024, 3, 31))

    kpis = report_kpis(store.state, filters)

    assert kpis["total_donated"] == 350.0
    assert kpis["donation_count"] == 3
    assert kpis["average_donation"] == pytest.approx(350 / 3)
    assert kpis["new_donors"] == 2
    assert kpis["pledge_fulfilment_percent"] == 50.0


def test_breakdowns_and_trend() -> None:
    store = _build_store()
    frame = filter_donations(store.state, DonationFilters(start=date(2024, 1, 1)))

    purposes = dict(zip(purpose_breakdown(frame)["name"], purpose_breakdown(frame)["value"]))
    assert purposes == {"Sponsor a Child": 200.0, "School Roof": 50.0, "Zakat": 100.0}

    methods = dict(zip(method_breakdown(frame)["name"], method_breakdown(frame)["value"]))
    assert methods == {"Online": 2, "Cash": 1}

    trend = daily_trend(frame)
    assert list(trend["date"]) == [date(2024, 1, 10), date(2024, 3, 5)]
    assert list(trend["amount"]) == [100.0, 250.0]

    empty = filter_donations(store.state, DonationFilters(search="nobody"))
    assert purpose_breakdown(empty).empty
    assert daily_trend(empty).empty


def test_dashboard_stats_and_monthly_series() -> None:
    store = _build_store()
    today = store.clock.today()

    stats = dashboard_stats(store.state, today)
    assert stats["donors_total"] == 3
    assert stats["donation_count"] == 4
    assert stats["donations_total"] == 380.0
    assert stats["upcoming_pledges"] == 1
    assert stats["active_recurring"] == 1
    assert stats["outbox_ready"] == 4
    assert stats["outbox_failed"] == 0

    series = donations_by_month(store.state, months=5, today=today)
    assert series == [
        {"month_key": "2023-11", "total": 30.0},
        {"month_key": "2023-12", "total": 0.0},
        {"month_key": "2024-01", "total": 100.0},
        {"month_key": "2024-02", "total": 0.0},
        {"month_key": "2024-03", "total": 250.0},
    ]
    assert donations_by_month(store.state, months=0, today=today) == []


def test_paginate_clamps_page_numbers() -> None:
    frame = pd.DataFrame({"value": range(23)})

    last = paginate(frame, page=99, per_page=10)
    assert last.page == 3
    assert last.total_pages == 3
    assert list(last.rows["value"]) == [20, 21, 22]

    first = paginate(frame.iloc[0:0], page=0, per_page=10)
    assert first.page == 1
    assert first.total_pages == 1
    assert first.rows.empty


def test_date_range_presets_and_currency() -> None:
    today = date(2024, 3, 20)

    assert date_range("this_month", today).start == date(2024, 3, 1)
    assert date_range("this_year", today).start == date(2024, 1, 1)
    assert date_range("last_30", today).start == date(2024, 2, 19)
    with pytest.raises(ValueError):
        date_range("last_decade", today)

    assert format_currency(1234.5) == "$1,234.50"


def test_frames_and_month_bounds() -> None:
    store = _build_store()

    donors = donors_frame(store.state)
    assert list(donors["name"]) == ["Alice Johnson", "bob Williams", "Carol King"]
    assert donors.loc[donors["name"] == "Carol King", "total_donated"].item() == 0.0

    donations = donations_frame(store.state)
    assert len(donations) == 4
    assert set(donations["donor_name"]) == {"Alice Johnson", "bob Williams"}
    assert donations_frame(CRMStore().state).empty

    february = month_bounds(date(2024, 2, 14))
    assert (february.start, february.end) == (date(2024, 2, 1), date(2024, 2, 29))
    december = month_bounds(date(2023, 12, 31))
    assert (december.start, december.end) == (date(2023, 12, 1), date(2023, 12, 31))


def test_store_config_drives_page_size_and_pledge_window() -> None:
    store = _build_store()
    today = store.clock.today()
    frame = pd.DataFrame({"value": range(23)})

    assert store.paginate(frame, page=1).total_pages == 3
    assert store.dashboard_stats()["upcoming_pledges"] == 1

    narrow = CRMStore(
        state=store.state,
        clock=store.clock,
        config=StoreConfig(items_per_page=25, upcoming_pledge_days=3),
    )
    assert narrow.paginate(frame, page=1).total_pages == 1
    assert len(narrow.paginate(frame, page=1).rows) == 23
    assert narrow.dashboard_stats(today)["upcoming_pledges"] == 0


def test_totals_are_summed_in_cents() -> None:
    store = CRMStore(clock=FixedClock(datetime(2024, 3, 20, tzinfo=timezone.utc)))
    donor = store.add_donor(name="Dana Cruz", email="dana@example.org", phone="555-0000").unwrap()
    for amount in (0.1, 0.2):
        store.add_donation(
            donor_id=donor.id,
            amount=amount,
            donation_date=date(2024, 3, 1),
            method="Cash",
            purpose="Zakat",
        ).unwrap()

    assert dashboard_stats(store.state, date(2024, 3, 20))["donations_total"] == 0.3
    assert donor_directory(store.state)["total_donated"].item() == 0.3
    assert report_kpis(store.state, DonationFilters())["total_donated"] == 0.3
    assert daily_trend(filter_donations(store.state, DonationFilters()))["amount"].item() == 0.3
    assert donations_by_month(store.state, months=1, today=date(2024, 3, 20)) == [
        {"month_key": "2024-03", "total": 0.3}
    ]
