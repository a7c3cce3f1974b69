"""Read-only projections and report figures computed from a store snapshot."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Sequence

import pandas as pd

from .config import ITEMS_PER_PAGE, UPCOMING_PLEDGE_DAYS
from .models import DonationPurpose, OutboxStatus, PledgeStatus, RecurringStatus
from .state import EntityStore

DONOR_COLUMNS = [
    "id",
    "name",
    "email",
    "phone",
    "address",
    "join_date",
    "tag_ids",
    "total_donated",
]
DONATION_COLUMNS = [
    "id",
    "donor_id",
    "donor_name",
    "amount",
    "amount_cents",
    "date",
    "method",
    "purpose",
    "custom_purpose",
    "recurring",
]
ALL = "All"


def cents_from_amount(amount: float) -> int:
    return int(round(amount * 100))


def amount_from_cents(cents: int) -> float:
    return cents / 100


def format_currency(amount: float) -> str:
    return f"${amount_from_cents(cents_from_amount(amount)):,.2f}"


def _total(amounts: Iterable[float]) -> float:
    return amount_from_cents(sum(cents_from_amount(amount) for amount in amounts))


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date


def month_bounds(anchor: date) -> DateRange:
    first_day = anchor.replace(day=1)
    if first_day.month == 12:
        next_month = date(first_day.year + 1, 1, 1)
    else:
        next_month = date(first_day.year, first_day.month + 1, 1)
    return DateRange(start=first_day, end=next_month - timedelta(days=1))


def _month_shift(first_day_of_month: date, months_back: int) -> date:
    year = first_day_of_month.year
    month = first_day_of_month.month - months_back
    while month <= 0:
        month += 12
        year -= 1
    return date(year, month, 1)


def date_range(preset: str, today: date) -> DateRange:
    """Report periods ending today: this_month, last_30, last_90, this_year."""
    if preset == "this_month":
        return DateRange(start=month_bounds(today).start, end=today)
    if preset == "last_30":
        return DateRange(start=today - timedelta(days=30), end=today)
    if preset == "last_90":
        return DateRange(start=today - timedelta(days=90), end=today)
    if preset == "this_year":
        return DateRange(start=date(today.year, 1, 1), end=today)
    raise ValueError(f"Unknown date range preset: {preset}")


@dataclass(frozen=True)
class Page:
    rows: pd.DataFrame
    page: int
    total_pages: int
    total_rows: int


def paginate(frame: pd.DataFrame, page: int, per_page: int = ITEMS_PER_PAGE) -> Page:
    if per_page <= 0:
        raise ValueError("Page size must be positive.")
    total_rows = len(frame)
    total_pages = max(1, math.ceil(total_rows / per_page))
    current = min(max(page, 1), total_pages)
    start = (current - 1) * per_page
    return Page(
        rows=frame.iloc[start : start + per_page],
        page=current,
        total_pages=total_pages,
        total_rows=total_rows,
    )


def _lowered(column: pd.Series) -> pd.Series:
    if column.dtype == object:
        return column.map(lambda value: value.lower() if isinstance(value, str) else value)
    return column


def _sort(frame: pd.DataFrame, sort: Sequence[tuple[str, str]]) -> pd.DataFrame:
    if frame.empty or not sort:
        return frame
    keys = [key for key, _ in sort]
    ascending = [direction.lower() != "desc" for _, direction in sort]
    return frame.sort_values(by=keys, ascending=ascending, key=_lowered, kind="mergesort")


def _digits(value: str) -> str:
    return "".join(char for char in value if char.isdigit())


def donors_frame(state: EntityStore) -> pd.DataFrame:
    rows = [
        {
            "id": donor.id,
            "name": donor.name,
            "email": donor.email,
            "phone": donor.phone,
            "address": donor.address,
            "join_date": pd.Timestamp(donor.join_date),
            "tag_ids": list(donor.tag_ids),
            "total_donated": _total(entry.amount for entry in donor.donation_history),
        }
        for donor in state.donors
    ]
    return pd.DataFrame(rows, columns=DONOR_COLUMNS)


def donor_directory(
    state: EntityStore,
    search: str = "",
    join_start: date | None = None,
    join_end: date | None = None,
    min_total: float | None = None,
    max_total: float | None = None,
    tag_ids: Iterable[str] = (),
    sort: Sequence[tuple[str, str]] = (("name", "asc"),),
) -> pd.DataFrame:
    """Donor list with lifetime totals, filtered and sorted for display.

    Search is case-insensitive over name, email and address; when the term
    contains digits it also matches the digits of the phone number. Every
    tag in ``tag_ids`` must be present on a donor for it to be kept.
    """
    frame = donors_frame(state)
    if frame.empty:
        return frame

    term = search.strip().lower()
    if term:
        mask = (
            frame["name"].str.lower().str.contains(term, regex=False)
            | frame["email"].str.lower().str.contains(term, regex=False)
            | frame["address"].str.lower().str.contains(term, regex=False)
        )
        term_digits = _digits(term)
        if term_digits:
            mask |= frame["phone"].map(lambda phone: term_digits in _digits(phone))
        frame = frame[mask]

    if join_start is not None:
        frame = frame[frame["join_date"] >= pd.Timestamp(join_start)]
    if join_end is not None:
        frame = frame[frame["join_date"] <= pd.Timestamp(join_end)]
    if min_total is not None:
        frame = frame[frame["total_donated"] >= min_total]
    if max_total is not None:
        frame = frame[frame["total_donated"] <= max_total]

    required = set(tag_ids)
    if required and not frame.empty:
        frame = frame[frame["tag_ids"].map(lambda ids: required.issubset(ids)).astype(bool)]

    return _sort(frame, sort).reset_index(drop=True)


@dataclass(frozen=True)
class DonationFilters:
    start: date | None = None
    end: date | None = None
    search: str = ""
    min_amount: float | None = None
    max_amount: float | None = None
    method: str = ALL
    purpose: str = ALL
    custom_purpose: str = ""
    recurring: str = ALL


def active_filter_count(filters: DonationFilters) -> int:
    """Number of filters in use, not counting the date range."""
    count = 0
    if filters.search:
        count += 1
    if filters.min_amount is not None or filters.max_amount is not None:
        count += 1
    if filters.method != ALL:
        count += 1
    if filters.purpose != ALL:
        count += 1
    if filters.recurring != ALL:
        count += 1
    return count


def donations_frame(state: EntityStore) -> pd.DataFrame:
    names = {donor.id: donor.name for donor in state.donors}
    rows = [
        {
            "id": donation.id,
            "donor_id": donation.donor_id,
            "donor_name": names.get(donation.donor_id, "Unknown"),
            "amount": float(donation.amount),
            "amount_cents": cents_from_amount(donation.amount),
            "date": pd.Timestamp(donation.date),
            "method": donation.method.value,
            "purpose": donation.purpose.value,
            "custom_purpose": donation.custom_purpose or "",
            "recurring": donation.recurring.value,
        }
        for donation in state.donations
    ]
    return pd.DataFrame(rows, columns=DONATION_COLUMNS)


def filter_donations(
    state: EntityStore,
    filters: DonationFilters,
    sort: Sequence[tuple[str, str]] = (("date", "desc"),),
) -> pd.DataFrame:
    frame = donations_frame(state)
    if frame.empty:
        return frame

    if filters.start is not None:
        frame = frame[frame["date"] >= pd.Timestamp(filters.start)]
    if filters.end is not None:
        frame = frame[frame["date"] <= pd.Timestamp(filters.end)]

    term = filters.search.strip().lower()
    if term:
        frame = frame[
            frame["donor_name"].str.lower().str.contains(term, regex=False)
            | frame["id"].str.lower().str.contains(term, regex=False)
        ]
    if filters.min_amount is not None:
        frame = frame[frame["amount"] >= filters.min_amount]
    if filters.max_amount is not None:
        frame = frame[frame["amount"] <= filters.max_amount]
    if filters.method != ALL:
        frame = frame[frame["method"] == filters.method]
    if filters.purpose != ALL:
        frame = frame[frame["purpose"] == filters.purpose]
    custom_term = filters.custom_purpose.strip().lower()
    if filters.purpose == DonationPurpose.CUSTOM.value and custom_term:
        frame = frame[frame["custom_purpose"].str.lower().str.contains(custom_term, regex=False)]
    if filters.recurring != ALL:
        frame = frame[frame["recurring"] == filters.recurring]

    return _sort(frame, sort).reset_index(drop=True)


def _in_range(value: date, start: date | None, end: date | None) -> bool:
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


def report_kpis(state: EntityStore, filters: DonationFilters) -> dict[str, float | int]:
    frame = filter_donations(state, filters)
    total_cents = int(frame["amount_cents"].sum()) if not frame.empty else 0
    total_donated = amount_from_cents(total_cents)
    donation_count = int(len(frame))

    new_donors = sum(
        1 for donor in state.donors if _in_range(donor.join_date, filters.start, filters.end)
    )
    pledges = [
        pledge for pledge in state.pledges if _in_range(pledge.due_date, filters.start, filters.end)
    ]
    completed = sum(1 for pledge in pledges if pledge.status == PledgeStatus.COMPLETED)

    return {
        "total_donated": total_donated,
        "donation_count": donation_count,
        "average_donation": total_donated / donation_count if donation_count else 0.0,
        "new_donors": new_donors,
        "pledge_fulfilment_percent": round(completed / len(pledges) * 100, 1) if pledges else 0.0,
    }


def purpose_breakdown(frame: pd.DataFrame) -> pd.DataFrame:
    """Amount given per purpose; custom purposes are reported by their own label."""
    if frame.empty:
        return pd.DataFrame(columns=["name", "value"])
    labels = frame["purpose"].where(
        frame["purpose"] != DonationPurpose.CUSTOM.value,
        frame["custom_purpose"].replace("", DonationPurpose.CUSTOM.value),
    )
    totals = frame.groupby(labels, sort=False)["amount_cents"].sum()
    return pd.DataFrame({"name": totals.index, "value": totals.values / 100})


def method_breakdown(frame: pd.DataFrame) -> pd.DataFrame:
    """Number of gifts per payment method."""
    if frame.empty:
        return pd.DataFrame(columns=["name", "value"])
    counts = frame.groupby("method", sort=False)["id"].count()
    return pd.DataFrame({"name": counts.index, "value": counts.values})


def daily_trend(frame: pd.DataFrame) -> pd.DataFrame:
    if frame.empty:
        return pd.DataFrame(columns=["date", "amount"])
    totals = frame.groupby("date")["amount_cents"].sum().sort_index()
    return pd.DataFrame({"date": totals.index.date, "amount": totals.values / 100})


def dashboard_stats(
    state: EntityStore,
    today: date,
    upcoming_days: int = UPCOMING_PLEDGE_DAYS,
) -> dict[str, int | float]:
    horizon = today + timedelta(days=upcoming_days)
    upcoming_pledges = sum(
        1
        for pledge in state.pledges
        if pledge.status == PledgeStatus.PENDING and today <= pledge.due_date <= horizon
    )
    return {
        "donors_total": len(state.donors),
        "donation_count": len(state.donations),
        "donations_total": _total(donation.amount for donation in state.donations),
        "upcoming_pledges": upcoming_pledges,
        "active_recurring": sum(
            1 for profile in state.recurring_profiles if profile.status == RecurringStatus.ACTIVE
        ),
        "outbox_ready": sum(1 for item in state.outbox if item.status == OutboxStatus.READY),
        "outbox_failed": sum(1 for item in state.outbox if item.status == OutboxStatus.FAILED),
    }


def donations_by_month(
    state: EntityStore,
    months: int = 12,
    today: date | None = None,
) -> list[dict[str, Any]]:
    if months <= 0:
        return []

    anchor = (today or date.today()).replace(day=1)
    start_month = _month_shift(anchor, months - 1)

    frame = donations_frame(state)
    totals: dict[str, float] = {}
    if not frame.empty:
        recent = frame[frame["date"] >= pd.Timestamp(start_month)]
        grouped = recent.groupby(recent["date"].dt.strftime("%Y-%m"))["amount_cents"].sum()
        totals = {str(key): amount_from_cents(int(value)) for key, value in grouped.items()}

    output: list[dict[str, Any]] = []
    for month_offset in range(months - 1, -1, -1):
        month_start = _month_shift(anchor, month_offset)
        key = month_start.strftime("%Y-%m")
        output.append({"month_key": key, "total": totals.get(key, 0.0)})
    return output
