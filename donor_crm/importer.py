"""CSV import of donor records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Mapping

import pandas as pd

from .store import CRMStore

logger = logging.getLogger(__name__)

IMPORT_FIELDS = ("name", "email", "phone", "address", "joinDate", "notes", "tags")
REQUIRED_FIELDS = ("name", "email", "phone")


@dataclass(frozen=True)
class SkippedRow:
    row_number: int
    reason: str


@dataclass
class ImportReport:
    imported: list[str] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)


def _header_key(header: str) -> str:
    return "".join(header.split()).lower()


def auto_map_columns(headers: list[str]) -> dict[str, str]:
    """Match CSV headers to import fields ignoring case and spaces."""
    by_key = {_header_key(field_name): field_name for field_name in IMPORT_FIELDS}
    mapping: dict[str, str] = {}
    for header in headers:
        field_name = by_key.get(_header_key(header))
        if field_name and field_name not in mapping:
            mapping[field_name] = header
    return mapping


def _cell(row: pd.Series, column: str | None) -> str:
    if not column or column not in row.index:
        return ""
    value = row[column]
    if pd.isna(value):
        return ""
    return str(value).strip()


def import_donors_csv(
    store: CRMStore,
    source: str | Path | IO[str],
    mapping: Mapping[str, str] | None = None,
) -> ImportReport:
    """Add a donor for every valid CSV row.

    Rows missing a name, email or phone are skipped, as are rows whose email
    already belongs to a donor (including one imported earlier in the same
    file). ``tags`` holds ``;``-separated tag names; names without a matching
    tag are ignored.
    """
    frame = pd.read_csv(source, dtype=str, keep_default_na=False)
    column_map = dict(mapping) if mapping is not None else auto_map_columns(list(frame.columns))

    missing = [field_name for field_name in REQUIRED_FIELDS if field_name not in column_map]
    if missing:
        raise ValueError(f"CSV is missing required column(s): {', '.join(missing)}.")

    tag_ids_by_name = {tag.name.lower(): tag.id for tag in store.state.tags}
    known_emails = {donor.email.lower() for donor in store.state.donors if donor.email}

    report = ImportReport()
    for position, (_, row) in enumerate(frame.iterrows(), start=2):
        values = {field_name: _cell(row, column_map.get(field_name)) for field_name in IMPORT_FIELDS}

        if not all(values[field_name] for field_name in REQUIRED_FIELDS):
            report.skipped.append(SkippedRow(position, "Missing required fields."))
            continue
        if values["email"].lower() in known_emails:
            report.skipped.append(SkippedRow(position, "Email already exists."))
            continue

        join_date = None
        if values["joinDate"]:
            parsed = pd.to_datetime(values["joinDate"], errors="coerce")
            if pd.isna(parsed):
                report.skipped.append(SkippedRow(position, "Invalid join date."))
                continue
            join_date = parsed.date()

        tag_names = [name.strip().lower() for name in values["tags"].split(";") if name.strip()]
        result = store.add_donor(
            name=values["name"],
            email=values["email"],
            phone=values["phone"],
            address=values["address"],
            join_date=join_date,
            tag_ids=[tag_ids_by_name[name] for name in tag_names if name in tag_ids_by_name],
            notes=values["notes"] or None,
        )
        if not result.ok:
            report.skipped.append(SkippedRow(position, result.message))
            continue

        known_emails.add(values["email"].lower())
        report.imported.append(result.value.id)

    logger.info(
        "Imported %d donor(s), skipped %d row(s)",
        len(report.imported),
        len(report.skipped),
    )
    return report
