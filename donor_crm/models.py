"""Record types for the donor CRM state."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PaymentMethod(str, Enum):
    ONLINE = "Online"
    CASH = "Cash"


class DonationPurpose(str, Enum):
    SADAQA = "Sadaqa/Hadiya/Atiyat"
    ZAKAT = "Zakat"
    FITRANA = "Fitrana"
    QURBANI = "Qurbani"
    SPONSOR_A_CHILD = "Sponsor a Child"
    CLEAN_WATER = "Clean Water"
    SASTI_ROTI = "Sasti Roti"
    DISASTER_MANAGEMENT = "Disaster Management"
    CUSTOM = "Custom"


class RecurringOption(str, Enum):
    NONE = "None"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    ANNUALLY = "Annually"


class Frequency(str, Enum):
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    ANNUALLY = "Annually"


class PledgeStatus(str, Enum):
    PENDING = "Pending"
    DUE = "Due"
    COMPLETED = "Completed"


class RecurringStatus(str, Enum):
    ACTIVE = "Active"
    PAUSED = "Paused"
    CANCELLED = "Cancelled"


class UserStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class OutboxStatus(str, Enum):
    READY = "Ready to Send"
    SENT = "Sent"
    FAILED = "Failed"


class QueueStatus(str, Enum):
    QUEUED = "Queued"
    SENT = "Sent"
    FAILED = "Failed"


class Channel(str, Enum):
    EMAIL = "Email"
    WHATSAPP = "WhatsApp"


class LogChannel(str, Enum):
    EMAIL = "Email"
    WHATSAPP = "WhatsApp"
    CALL = "Call"
    MEETING = "Meeting"
    PRINT = "Print"
    DOWNLOAD = "Download"


class TemplateType(str, Enum):
    DONATION_THANK_YOU = "DonationThankYou"
    PLEDGE_REMINDER = "PledgeReminder"
    GENERAL_UPDATE = "GeneralUpdate"


class Permission(str, Enum):
    DONORS_VIEW = "donors:view"
    DONORS_CREATE = "donors:create"
    DONORS_EDIT = "donors:edit"
    DONORS_DELETE = "donors:delete"
    RECEIPTS_VIEW = "receipts:view"
    RECEIPTS_CREATE = "receipts:create"
    RECEIPTS_DELETE = "receipts:delete"
    REPORTS_VIEW = "reports:view"
    SETTINGS_MANAGE = "settings:manage"
    USERS_MANAGE = "users:manage"


class Record(BaseModel):
    """Immutable record serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class DonationHistoryEntry(Record):
    date: dt.date
    amount: float
    receipt_id: str


class CommunicationLog(Record):
    id: str
    date: dt.date
    channel: LogChannel
    subject_or_template: str
    notes: str = ""
    user_id: str


class Contact(Record):
    id: str
    name: str
    relationship: str = ""
    email: str = ""
    phone: str = ""
    is_primary: bool = False


class Tag(Record):
    id: str
    name: str
    color: str = ""


class Donor(Record):
    id: str
    name: str
    email: str = ""
    phone: str = ""
    address: str = ""
    join_date: dt.date
    donation_history: list[DonationHistoryEntry] = Field(default_factory=list)
    tag_ids: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    communication_logs: list[CommunicationLog] = Field(default_factory=list)
    contacts: list[Contact] = Field(default_factory=list)

    @property
    def total_donated(self) -> float:
        return sum(entry.amount for entry in self.donation_history)


class Donation(Record):
    id: str
    donor_id: str
    amount: float = Field(gt=0)
    date: dt.date
    method: PaymentMethod
    purpose: DonationPurpose
    custom_purpose: Optional[str] = None
    recurring: RecurringOption = RecurringOption.NONE


class PledgeTask(Record):
    id: str
    description: str
    completed: bool = False


class Pledge(Record):
    id: str
    donor_id: str
    amount: float = Field(gt=0)
    due_date: dt.date
    status: PledgeStatus = PledgeStatus.PENDING
    tasks: list[PledgeTask] = Field(default_factory=list)


class RecurringProfile(Record):
    id: str
    donor_id: str
    amount: float = Field(gt=0)
    frequency: Frequency
    start_date: dt.date
    next_due_date: dt.date
    status: RecurringStatus = RecurringStatus.ACTIVE
    purpose: DonationPurpose
    custom_purpose: Optional[str] = None
    method: PaymentMethod


class Role(Record):
    id: str
    name: str
    permissions: list[Permission] = Field(default_factory=list)
    is_system_role: bool = False


class User(Record):
    id: str
    name: str
    email: str
    role_id: str
    status: UserStatus = UserStatus.ACTIVE
    avatar: Optional[str] = None
    last_login: dt.datetime


class CommunicationTemplate(Record):
    id: str
    name: str
    type: TemplateType
    channel: Channel
    subject: Optional[str] = None
    body: str


class OrganizationSettings(Record):
    name: str
    logo: str = ""
    address: str = ""
    website: str = ""
    phone: str = ""
    email: str = ""
    whatsapp_number: str = ""
    receipt_thank_you_message: str = ""
    communication_templates: list[CommunicationTemplate] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)


class _OutboxEntry(Record):
    id: str
    status: OutboxStatus = OutboxStatus.READY
    added_at: dt.datetime
    sent_at: Optional[dt.datetime] = None
    error: Optional[str] = None


class ReceiptOutboxItem(_OutboxEntry):
    type: Literal["receipt"] = "receipt"
    donation_id: str


class TemplateOutboxItem(_OutboxEntry):
    type: Literal["template"] = "template"
    donor_id: str
    template_id: str


OutboxItem = Annotated[
    Union[ReceiptOutboxItem, TemplateOutboxItem],
    Field(discriminator="type"),
]


class QueuedCommunication(Record):
    id: str
    donor_id: str
    template_id: str
    channel: Channel
    status: QueueStatus = QueueStatus.QUEUED
    queued_at: dt.datetime
    sent_at: Optional[dt.datetime] = None
    error: Optional[str] = None


class Backup(Record):
    id: str
    date: dt.datetime
    size: int
    data: str
