from __future__ import annotations

import io
from datetime import date, datetime, timezone

import pytest

from donor_crm.clock import FixedClock, SequentialIdFactory
from donor_crm.importer import auto_map_columns, import_donors_csv
from donor_crm.seed import load_demo_data
from donor_crm.store import CRMStore


def _build_store() -> CRMStore:
    clock = FixedClock(datetime(2024, 4, 2, 10, 0, tzinfo=timezone.utc))
    store = CRMStore(clock=clock, id_factory=SequentialIdFactory())
    load_demo_data(store)
    return store


def test_auto_map_ignores_case_and_spaces() -> None:
    mapping = auto_map_columns(["Name", "E Mail", "Phone", "Join Date", "Unused", "email"])

    assert mapping == {
        "name": "Name",
        "email": "E Mail",
        "phone": "Phone",
        "joinDate": "Join Date",
    }


def test_import_skips_invalid_and_duplicate_rows(tmp_path) -> None:  # type: ignore[no-untyped-def]
    store = _build_store()
    csv_path = tmp_path / "donors.csv"
    csv_path.write_text(
        "Name,Email,Phone,Address,Join Date,Tags\n"
        "Omar Farooq,omar@example.org,555-1000,7 Elm St,2024-03-01,Volunteer; Corporate; Unknown\n"
        "Priya Nair,priya@example.org,555-1001,,,\n"
        "No Phone,nophone@example.org,,,,\n"
        "Alice Again,alice.j@example.com,555-1002,,,\n"
        "Omar Twin,OMAR@example.org,555-1003,,,\n"
        "Bad Date,bad@example.org,555-1004,,not-a-date,\n",
        encoding="utf-8",
    )

    report = import_donors_csv(store, csv_path)

    assert len(report.imported) == 2
    assert [(row.row_number, row.reason) for row in report.skipped] == [
        (4, "Missing required fields."),
        (5, "Email already exists."),
        (6, "Email already exists."),
        (7, "Invalid join date."),
    ]

    omar = store.get_donor(report.imported[0])
    priya = store.get_donor(report.imported[1])
    assert omar is not None and priya is not None
    assert omar.join_date == date(2024, 3, 1)
    assert omar.tag_ids == ["tag-1", "tag-3"]
    assert omar.address == "7 Elm St"
    assert priya.join_date == date(2024, 4, 2)
    assert priya.tag_ids == []


def test_import_requires_mapped_columns() -> None:
    store = _build_store()
    source = io.StringIO("Full Name,Email\nOmar,omar@example.org\n")

    with pytest.raises(ValueError):
        import_donors_csv(store, source)

    mapped = io.StringIO("Full Name,Mail,Mobile\nOmar,omar@example.org,555-1000\n")
    report = import_donors_csv(
        store,
        mapped,
        mapping={"name": "Full Name", "email": "Mail", "phone": "Mobile"},
    )
    assert len(report.imported) == 1


def test_demo_data_is_consistent() -> None:
    store = _build_store()
    state = store.state

    assert [role.name for role in state.roles] == ["Administrator", "Staff", "Viewer"]
    assert state.roles[0].is_system_role
    assert len(state.users) == 3
    assert state.settings.tags == state.tags
    assert state.backups == []

    donor_ids = state.donor_ids()
    assert all(donation.donor_id in donor_ids for donation in state.donations)
    assert all(pledge.donor_id in donor_ids for pledge in state.pledges)
    donor = store.get_donor("donor-1")
    assert donor is not None
    assert donor.total_donated == 300
