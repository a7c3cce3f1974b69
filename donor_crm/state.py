"""In-memory snapshot of every CRM collection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import default_settings
from .models import (
    Backup,
    Donation,
    Donor,
    OrganizationSettings,
    OutboxItem,
    Pledge,
    QueuedCommunication,
    RecurringProfile,
    Role,
    Tag,
    User,
)

R = TypeVar("R")

# Collections written to and read from a backup document, in order.
TRACKED_COLLECTIONS = (
    "donors",
    "donations",
    "pledges",
    "recurring_profiles",
    "users",
    "roles",
    "settings",
    "outbox",
    "communication_queue",
    "tags",
)


class StateSnapshot(BaseModel):
    """Schema of a backup document.

    ``donors`` and ``donations`` must be present; every other collection
    falls back to an empty list (or default settings) when absent.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    donors: list[Donor]
    donations: list[Donation]
    pledges: list[Pledge] = Field(default_factory=list)
    recurring_profiles: list[RecurringProfile] = Field(default_factory=list)
    users: list[User] = Field(default_factory=list)
    roles: list[Role] = Field(default_factory=list)
    settings: OrganizationSettings = Field(default_factory=default_settings)
    outbox: list[OutboxItem] = Field(default_factory=list)
    communication_queue: list[QueuedCommunication] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass
class EntityStore:
    """Owned collections read and replaced by the mutation layer."""

    donors: list[Donor] = field(default_factory=list)
    donations: list[Donation] = field(default_factory=list)
    pledges: list[Pledge] = field(default_factory=list)
    recurring_profiles: list[RecurringProfile] = field(default_factory=list)
    users: list[User] = field(default_factory=list)
    roles: list[Role] = field(default_factory=list)
    settings: OrganizationSettings = field(default_factory=default_settings)
    outbox: list[OutboxItem] = field(default_factory=list)
    communication_queue: list[QueuedCommunication] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)
    backups: list[Backup] = field(default_factory=list)

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            **{name: _copy_collection(getattr(self, name)) for name in TRACKED_COLLECTIONS}
        )

    def restore(self, snapshot: StateSnapshot) -> None:
        """Overwrite every tracked collection; backups are left alone."""
        for name in TRACKED_COLLECTIONS:
            setattr(self, name, _copy_collection(getattr(snapshot, name)))

    def donor_ids(self) -> set[str]:
        return {donor.id for donor in self.donors}


def _copy_collection(value):  # type: ignore[no-untyped-def]
    if isinstance(value, list):
        return list(value)
    return value


def find_by_id(records: Iterable[R], record_id: str) -> Optional[R]:
    for record in records:
        if record.id == record_id:  # type: ignore[attr-defined]
            return record
    return None


def replace_by_id(records: Sequence[R], updated: R) -> Optional[list[R]]:
    """Return a new list with ``updated`` swapped in, or None if absent."""
    for index, record in enumerate(records):
        if record.id == updated.id:  # type: ignore[attr-defined]
            return [*records[:index], updated, *records[index + 1 :]]
    return None
