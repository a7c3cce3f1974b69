"""In-memory mutation layer for the donor CRM."""

from __future__ import annotations

import logging
import secrets
import string
from datetime import date, datetime, timezone
from typing import Iterable, Optional

import pandas as pd

from . import reports
from .backup import BackupManager
from .clock import Clock, IdFactory, SystemClock, UUIDIdFactory, add_frequency
from .config import StoreConfig
from .models import (
    Channel,
    CommunicationLog,
    Contact,
    Donation,
    DonationHistoryEntry,
    DonationPurpose,
    Donor,
    Frequency,
    LogChannel,
    OrganizationSettings,
    OutboxItem,
    OutboxStatus,
    PaymentMethod,
    Permission,
    Pledge,
    PledgeStatus,
    PledgeTask,
    QueuedCommunication,
    ReceiptOutboxItem,
    RecurringOption,
    RecurringProfile,
    RecurringStatus,
    Role,
    Tag,
    TemplateOutboxItem,
    User,
    UserStatus,
)
from .results import Err, ErrorKind, Ok, Result, not_found
from .state import EntityStore, find_by_id, replace_by_id

logger = logging.getLogger(__name__)

_PASSWORD_ALPHABET = string.ascii_lowercase + string.digits


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _outbox_references(
    item: OutboxItem,
    donor_ids: set[str],
    donation_ids: set[str],
) -> bool:
    if isinstance(item, ReceiptOutboxItem):
        return item.donation_id in donation_ids
    return item.donor_id in donor_ids


class CRMStore:
    """Operations on donors, gifts, pledges, messaging, and access control.

    Every mutation returns an ``Ok`` or ``Err`` result. Collections are
    replaced wholesale on each write, so previously returned lists and
    records are never mutated.
    """

    def __init__(
        self,
        state: EntityStore | None = None,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
        config: StoreConfig | None = None,
    ) -> None:
        self.state = state if state is not None else EntityStore()
        self.clock = clock or SystemClock()
        self.new_id = id_factory or UUIDIdFactory()
        self.config = config or StoreConfig()
        self.backups = BackupManager(self)

    # Donors

    def get_donor(self, donor_id: str) -> Donor | None:
        return find_by_id(self.state.donors, donor_id)

    def list_donors(self) -> list[Donor]:
        return list(self.state.donors)

    def add_donor(
        self,
        name: str,
        email: str | None = None,
        phone: str | None = None,
        address: str | None = None,
        join_date: date | None = None,
        tag_ids: Iterable[str] = (),
        notes: str | None = None,
        contacts: Iterable[Contact] = (),
    ) -> Result[Donor]:
        clean_name = _clean(name)
        if not clean_name:
            return Err(ErrorKind.INVALID_VALUE, "Donor name is required.")

        donor = Donor(
            id=self.new_id("donor"),
            name=clean_name,
            email=_clean(email) or "",
            phone=_clean(phone) or "",
            address=_clean(address) or "",
            join_date=join_date or self.clock.today(),
            donation_history=[],
            tag_ids=list(tag_ids),
            notes=_clean(notes),
            contacts=list(contacts),
        )
        self.state.donors = [*self.state.donors, donor]
        logger.debug("Added donor %s", donor.id)
        return Ok(donor)

    def update_donor(self, donor: Donor) -> Result[Donor]:
        donors = replace_by_id(self.state.donors, donor)
        if donors is None:
            return not_found("Donor", donor.id)
        self.state.donors = donors
        logger.debug("Updated donor %s", donor.id)
        return Ok(donor)

    def delete_donor(self, donor_id: str) -> Result[Donor]:
        donor = self.get_donor(donor_id)
        if donor is None:
            return not_found("Donor", donor_id)
        self._delete_donors_cascade({donor_id})
        return Ok(donor)

    def delete_donors(self, donor_ids: Iterable[str]) -> Result[int]:
        id_set = set(donor_ids) & self.state.donor_ids()
        if not id_set:
            return Ok(0)
        self._delete_donors_cascade(id_set)
        return Ok(len(id_set))

    def _delete_donors_cascade(self, donor_ids: set[str]) -> None:
        state = self.state
        removed_donations = {
            donation.id for donation in state.donations if donation.donor_id in donor_ids
        }
        pledges = [pledge for pledge in state.pledges if pledge.donor_id not in donor_ids]
        profiles = [
            profile for profile in state.recurring_profiles if profile.donor_id not in donor_ids
        ]

        state.donors = [donor for donor in state.donors if donor.id not in donor_ids]
        state.donations = [
            donation for donation in state.donations if donation.id not in removed_donations
        ]
        removed_pledges = len(state.pledges) - len(pledges)
        state.pledges = pledges
        state.recurring_profiles = profiles
        state.outbox = [
            item
            for item in state.outbox
            if not _outbox_references(item, donor_ids, removed_donations)
        ]
        state.communication_queue = [
            item for item in state.communication_queue if item.donor_id not in donor_ids
        ]
        logger.info(
            "Deleted %d donor(s) (cascade: %d donations, %d pledges)",
            len(donor_ids),
            len(removed_donations),
            removed_pledges,
        )

    def log_communication(
        self,
        donor_id: str,
        channel: LogChannel | str,
        subject_or_template: str,
        user_id: str,
        notes: str = "",
        log_date: date | None = None,
    ) -> Result[CommunicationLog]:
        donor = self.get_donor(donor_id)
        if donor is None:
            return not_found("Donor", donor_id)

        entry = CommunicationLog(
            id=self.new_id("comm"),
            date=log_date or self.clock.today(),
            channel=LogChannel(channel),
            subject_or_template=subject_or_template,
            notes=notes,
            user_id=user_id,
        )
        updated = donor.model_copy(
            update={"communication_logs": [*donor.communication_logs, entry]}
        )
        self.state.donors = replace_by_id(self.state.donors, updated) or self.state.donors
        return Ok(entry)

    def log_communication_bulk(
        self,
        donor_ids: Iterable[str],
        channel: LogChannel | str,
        subject_or_template: str,
        user_id: str,
        notes: str = "",
        log_date: date | None = None,
    ) -> Result[int]:
        id_set = set(donor_ids)
        channel = LogChannel(channel)
        logged_on = log_date or self.clock.today()

        logged = 0
        donors: list[Donor] = []
        for donor in self.state.donors:
            if donor.id in id_set:
                entry = CommunicationLog(
                    id=self.new_id("comm"),
                    date=logged_on,
                    channel=channel,
                    subject_or_template=subject_or_template,
                    notes=notes,
                    user_id=user_id,
                )
                donor = donor.model_copy(
                    update={"communication_logs": [*donor.communication_logs, entry]}
                )
                logged += 1
            donors.append(donor)

        self.state.donors = donors
        logger.debug("Logged %s communication for %d donor(s)", channel.value, logged)
        return Ok(logged)

    def add_contact(
        self,
        donor_id: str,
        name: str,
        relationship: str = "",
        email: str = "",
        phone: str = "",
        is_primary: bool = False,
    ) -> Result[Contact]:
        donor = self.get_donor(donor_id)
        if donor is None:
            return not_found("Donor", donor_id)
        clean_name = _clean(name)
        if not clean_name:
            return Err(ErrorKind.INVALID_VALUE, "Contact name is required.")

        contact = Contact(
            id=self.new_id("contact"),
            name=clean_name,
            relationship=relationship,
            email=email,
            phone=phone,
            is_primary=is_primary,
        )
        self._save_contacts(donor, [*donor.contacts, contact], contact)
        return Ok(contact)

    def update_contact(self, donor_id: str, contact: Contact) -> Result[Contact]:
        donor = self.get_donor(donor_id)
        if donor is None:
            return not_found("Donor", donor_id)
        contacts = replace_by_id(donor.contacts, contact)
        if contacts is None:
            return not_found("Contact", contact.id)
        self._save_contacts(donor, contacts, contact)
        return Ok(contact)

    def remove_contact(self, donor_id: str, contact_id: str) -> Result[None]:
        donor = self.get_donor(donor_id)
        if donor is None:
            return not_found("Donor", donor_id)
        if find_by_id(donor.contacts, contact_id) is None:
            return not_found("Contact", contact_id)
        contacts = [contact for contact in donor.contacts if contact.id != contact_id]
        self._save_contacts(donor, contacts, None)
        return Ok(None)

    def _save_contacts(
        self,
        donor: Donor,
        contacts: list[Contact],
        changed: Contact | None,
    ) -> None:
        # Only one contact per donor may be primary.
        if changed is not None and changed.is_primary:
            contacts = [
                contact
                if contact.id == changed.id or not contact.is_primary
                else contact.model_copy(update={"is_primary": False})
                for contact in contacts
            ]
        updated = donor.model_copy(update={"contacts": contacts})
        self.state.donors = replace_by_id(self.state.donors, updated) or self.state.donors

    # Donations

    def get_donation(self, donation_id: str) -> Donation | None:
        return find_by_id(self.state.donations, donation_id)

    def list_donations(self, donor_id: str | None = None) -> list[Donation]:
        if donor_id is None:
            return list(self.state.donations)
        return [donation for donation in self.state.donations if donation.donor_id == donor_id]

    def add_donation(
        self,
        donor_id: str,
        amount: float,
        donation_date: date,
        method: PaymentMethod | str,
        purpose: DonationPurpose | str,
        recurring: RecurringOption | str = RecurringOption.NONE,
        custom_purpose: str | None = None,
        donation_id: str | None = None,
    ) -> Result[Donation]:
        """Record a gift and fan the write out to the dependent collections.

        The donor's ``donation_history`` gains a summary entry, a receipt is
        queued in the outbox, and a recurring profile is opened when
        ``recurring`` is anything other than ``None``.
        """
        donor = self.get_donor(donor_id)
        if donor is None:
            return not_found("Donor", donor_id)
        if donation_id is not None and self.get_donation(donation_id) is not None:
            return Err(ErrorKind.INVALID_VALUE, f"Donation {donation_id} already exists.")

        donation = Donation(
            id=donation_id or self.new_id("donation"),
            donor_id=donor_id,
            amount=amount,
            date=donation_date,
            method=PaymentMethod(method),
            purpose=DonationPurpose(purpose),
            custom_purpose=_clean(custom_purpose),
            recurring=RecurringOption(recurring),
        )
        self.state.donations = [*self.state.donations, donation]

        history_entry = DonationHistoryEntry(
            date=donation.date,
            amount=donation.amount,
            receipt_id=donation.id,
        )
        updated_donor = donor.model_copy(
            update={"donation_history": [*donor.donation_history, history_entry]}
        )
        self.state.donors = replace_by_id(self.state.donors, updated_donor) or self.state.donors

        self.add_receipt_to_outbox(donation.id)

        if donation.recurring != RecurringOption.NONE:
            self.add_recurring_profile(
                donor_id=donation.donor_id,
                amount=donation.amount,
                frequency=Frequency(donation.recurring.value),
                start_date=donation.date,
                purpose=donation.purpose,
                method=donation.method,
                custom_purpose=donation.custom_purpose,
            )

        logger.debug("Added donation %s for donor %s", donation.id, donor_id)
        return Ok(donation)

    def delete_donations(self, donation_ids: Iterable[str]) -> Result[int]:
        state = self.state
        id_set = {donation.id for donation in state.donations} & set(donation_ids)
        if not id_set:
            return Ok(0)

        state.donations = [donation for donation in state.donations if donation.id not in id_set]
        state.outbox = [
            item
            for item in state.outbox
            if not (isinstance(item, ReceiptOutboxItem) and item.donation_id in id_set)
        ]
        donors: list[Donor] = []
        for donor in state.donors:
            history = [entry for entry in donor.donation_history if entry.receipt_id not in id_set]
            if len(history) != len(donor.donation_history):
                donor = donor.model_copy(update={"donation_history": history})
            donors.append(donor)
        state.donors = donors

        logger.info("Deleted %d donation(s)", len(id_set))
        return Ok(len(id_set))

    # Pledges

    def get_pledge(self, pledge_id: str) -> Pledge | None:
        return find_by_id(self.state.pledges, pledge_id)

    def add_pledge(self, donor_id: str, amount: float, due_date: date) -> Result[Pledge]:
        if self.get_donor(donor_id) is None:
            return not_found("Donor", donor_id)

        pledge = Pledge(
            id=self.new_id("pledge"),
            donor_id=donor_id,
            amount=amount,
            due_date=due_date,
            status=PledgeStatus.PENDING,
            tasks=[],
        )
        self.state.pledges = [*self.state.pledges, pledge]
        logger.debug("Added pledge %s for donor %s", pledge.id, donor_id)
        return Ok(pledge)

    def update_pledge(self, pledge: Pledge) -> Result[Pledge]:
        if self.get_donor(pledge.donor_id) is None:
            return not_found("Donor", pledge.donor_id)
        pledges = replace_by_id(self.state.pledges, pledge)
        if pledges is None:
            return not_found("Pledge", pledge.id)
        self.state.pledges = pledges
        return Ok(pledge)

    def delete_pledges(self, pledge_ids: Iterable[str]) -> Result[int]:
        id_set = set(pledge_ids)
        before = len(self.state.pledges)
        self.state.pledges = [pledge for pledge in self.state.pledges if pledge.id not in id_set]
        removed = before - len(self.state.pledges)
        logger.info("Deleted %d pledge(s)", removed)
        return Ok(removed)

    def update_pledge_status_bulk(
        self,
        pledge_ids: Iterable[str],
        status: PledgeStatus | str,
    ) -> Result[int]:
        id_set = set(pledge_ids)
        status = PledgeStatus(status)
        changed = 0
        pledges: list[Pledge] = []
        for pledge in self.state.pledges:
            if pledge.id in id_set:
                pledge = pledge.model_copy(update={"status": status})
                changed += 1
            pledges.append(pledge)
        self.state.pledges = pledges
        return Ok(changed)

    def add_pledge_task(self, pledge_id: str, description: str) -> Result[PledgeTask]:
        pledge = self.get_pledge(pledge_id)
        if pledge is None:
            return not_found("Pledge", pledge_id)
        clean_description = _clean(description)
        if not clean_description:
            return Err(ErrorKind.INVALID_VALUE, "Task description is required.")

        task = PledgeTask(id=self.new_id("task"), description=clean_description, completed=False)
        updated = pledge.model_copy(update={"tasks": [*pledge.tasks, task]})
        self.state.pledges = replace_by_id(self.state.pledges, updated) or self.state.pledges
        return Ok(task)

    def toggle_pledge_task(self, pledge_id: str, task_id: str) -> Result[PledgeTask]:
        pledge = self.get_pledge(pledge_id)
        if pledge is None:
            return not_found("Pledge", pledge_id)
        task = find_by_id(pledge.tasks, task_id)
        if task is None:
            return not_found("Task", task_id)

        toggled = task.model_copy(update={"completed": not task.completed})
        updated = pledge.model_copy(update={"tasks": replace_by_id(pledge.tasks, toggled)})
        self.state.pledges = replace_by_id(self.state.pledges, updated) or self.state.pledges
        return Ok(toggled)

    # Recurring profiles

    def get_recurring_profile(self, profile_id: str) -> RecurringProfile | None:
        return find_by_id(self.state.recurring_profiles, profile_id)

    def add_recurring_profile(
        self,
        donor_id: str,
        amount: float,
        frequency: Frequency | str,
        start_date: date,
        purpose: DonationPurpose | str,
        method: PaymentMethod | str,
        custom_purpose: str | None = None,
    ) -> Result[RecurringProfile]:
        if self.get_donor(donor_id) is None:
            return not_found("Donor", donor_id)

        frequency = Frequency(frequency)
        profile = RecurringProfile(
            id=self.new_id("rec"),
            donor_id=donor_id,
            amount=amount,
            frequency=frequency,
            start_date=start_date,
            next_due_date=add_frequency(start_date, frequency),
            status=RecurringStatus.ACTIVE,
            purpose=DonationPurpose(purpose),
            custom_purpose=_clean(custom_purpose),
            method=PaymentMethod(method),
        )
        self.state.recurring_profiles = [*self.state.recurring_profiles, profile]
        logger.debug("Added recurring profile %s (next due %s)", profile.id, profile.next_due_date)
        return Ok(profile)

    def update_recurring_status(
        self,
        profile_id: str,
        status: RecurringStatus | str,
    ) -> Result[RecurringProfile]:
        status = RecurringStatus(status)
        profile = self.get_recurring_profile(profile_id)
        if profile is None:
            return not_found("Recurring profile", profile_id)
        if profile.status == RecurringStatus.CANCELLED and status != RecurringStatus.CANCELLED:
            return Err(
                ErrorKind.INVALID_VALUE,
                "Cancelled recurring profiles cannot be reactivated.",
            )

        # next_due_date is fixed at creation and is not recomputed here.
        updated = profile.model_copy(update={"status": status})
        self.state.recurring_profiles = (
            replace_by_id(self.state.recurring_profiles, updated) or self.state.recurring_profiles
        )
        return Ok(updated)

    def update_recurring_status_bulk(
        self,
        profile_ids: Iterable[str],
        status: RecurringStatus | str,
    ) -> Result[int]:
        id_set = set(profile_ids)
        status = RecurringStatus(status)
        changed = 0
        profiles: list[RecurringProfile] = []
        for profile in self.state.recurring_profiles:
            if profile.id in id_set and (
                profile.status != RecurringStatus.CANCELLED or status == RecurringStatus.CANCELLED
            ):
                profile = profile.model_copy(update={"status": status})
                changed += 1
            profiles.append(profile)
        self.state.recurring_profiles = profiles
        return Ok(changed)

    # Users

    def get_user(self, user_id: str) -> User | None:
        return find_by_id(self.state.users, user_id)

    def add_user(
        self,
        name: str,
        email: str,
        role_id: str,
        status: UserStatus | str = UserStatus.ACTIVE,
        avatar: str | None = None,
    ) -> Result[User]:
        if self.get_role(role_id) is None:
            return not_found("Role", role_id)

        user = User(
            id=self.new_id("user"),
            name=name,
            email=email,
            role_id=role_id,
            status=UserStatus(status),
            avatar=avatar,
            last_login=datetime(1970, 1, 1, tzinfo=timezone.utc),
        )
        self.state.users = [*self.state.users, user]
        logger.debug("Added user %s with role %s", user.id, role_id)
        return Ok(user)

    def update_user(self, user: User) -> Result[User]:
        if self.get_role(user.role_id) is None:
            return not_found("Role", user.role_id)
        users = replace_by_id(self.state.users, user)
        if users is None:
            return not_found("User", user.id)
        self.state.users = users
        return Ok(user)

    def update_user_status(self, user_id: str, status: UserStatus | str) -> Result[User]:
        user = self.get_user(user_id)
        if user is None:
            return not_found("User", user_id)
        updated = user.model_copy(update={"status": UserStatus(status)})
        self.state.users = replace_by_id(self.state.users, updated) or self.state.users
        return Ok(updated)

    def reset_user_password(self, user_id: str) -> Result[str]:
        """Issue a temporary password; nothing is stored."""
        if self.get_user(user_id) is None:
            return not_found("User", user_id)
        logger.info("Resetting password for user %s", user_id)
        return Ok("".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(8)))

    # Roles

    def get_role(self, role_id: str) -> Role | None:
        return find_by_id(self.state.roles, role_id)

    def add_role(
        self,
        name: str,
        permissions: Iterable[Permission | str] = (),
        is_system_role: bool = False,
    ) -> Result[Role]:
        clean_name = _clean(name)
        if not clean_name:
            return Err(ErrorKind.INVALID_VALUE, "Role name is required.")

        role = Role(
            id=self.new_id("role"),
            name=clean_name,
            permissions=[Permission(permission) for permission in permissions],
            is_system_role=is_system_role,
        )
        self.state.roles = [*self.state.roles, role]
        return Ok(role)

    def update_role(self, role: Role) -> Result[Role]:
        existing = self.get_role(role.id)
        if existing is None:
            return not_found("Role", role.id)
        if existing.is_system_role and (
            role.name != existing.name or not role.is_system_role
        ):
            return Err(ErrorKind.SYSTEM_ROLE, "System roles cannot be renamed.")

        self.state.roles = replace_by_id(self.state.roles, role) or self.state.roles
        return Ok(role)

    def delete_role(self, role_id: str) -> Result[Role]:
        role = self.get_role(role_id)
        if role is None:
            return not_found("Role", role_id)
        if role.is_system_role:
            logger.warning("Refused to delete system role %s", role_id)
            return Err(ErrorKind.SYSTEM_ROLE, "System roles cannot be deleted.")
        if any(user.role_id == role_id for user in self.state.users):
            logger.warning("Refused to delete role %s assigned to users", role_id)
            return Err(ErrorKind.ROLE_IN_USE, "Cannot delete a role that is assigned to users.")

        self.state.roles = [existing for existing in self.state.roles if existing.id != role_id]
        logger.info("Deleted role %s", role_id)
        return Ok(role)

    # Settings and tags

    def update_settings(self, settings: OrganizationSettings) -> Result[OrganizationSettings]:
        """Replace the settings; their tag list becomes the tag collection."""
        state = self.state
        dropped = {tag.id for tag in state.settings.tags} - {tag.id for tag in settings.tags}
        state.settings = settings
        state.tags = list(settings.tags)
        self._remove_tag_ids(dropped)
        return Ok(settings)

    def get_tag(self, tag_id: str) -> Tag | None:
        return find_by_id(self.state.tags, tag_id)

    def add_tag(self, name: str, color: str = "") -> Result[Tag]:
        clean_name = _clean(name)
        if not clean_name:
            return Err(ErrorKind.INVALID_VALUE, "Tag name is required.")

        tag = Tag(id=self.new_id("tag"), name=clean_name, color=color)
        state = self.state
        state.tags = [*state.tags, tag]
        state.settings = state.settings.model_copy(update={"tags": [*state.settings.tags, tag]})
        return Ok(tag)

    def update_tag(self, tag: Tag) -> Result[Tag]:
        state = self.state
        tags = replace_by_id(state.tags, tag)
        if tags is None:
            return not_found("Tag", tag.id)
        state.tags = tags
        settings_tags = replace_by_id(state.settings.tags, tag) or state.settings.tags
        state.settings = state.settings.model_copy(update={"tags": settings_tags})
        return Ok(tag)

    def delete_tag(self, tag_id: str) -> Result[Tag]:
        state = self.state
        tag = self.get_tag(tag_id)
        if tag is None:
            return not_found("Tag", tag_id)

        state.tags = [existing for existing in state.tags if existing.id != tag_id]
        state.settings = state.settings.model_copy(
            update={"tags": [existing for existing in state.settings.tags if existing.id != tag_id]}
        )
        touched = self._remove_tag_ids({tag_id})
        logger.info("Deleted tag %s (removed from %d donor(s))", tag_id, touched)
        return Ok(tag)

    def _remove_tag_ids(self, removed: set[str]) -> int:
        if not removed:
            return 0
        touched = 0
        donors: list[Donor] = []
        for donor in self.state.donors:
            kept = [tag_id for tag_id in donor.tag_ids if tag_id not in removed]
            if len(kept) != len(donor.tag_ids):
                donor = donor.model_copy(update={"tag_ids": kept})
                touched += 1
            donors.append(donor)
        self.state.donors = donors
        return touched

    # Outbox and queue

    def get_outbox_item(self, outbox_id: str) -> Optional[OutboxItem]:
        return find_by_id(self.state.outbox, outbox_id)

    def add_receipt_to_outbox(self, donation_id: str) -> Result[ReceiptOutboxItem]:
        if self.get_donation(donation_id) is None:
            return not_found("Donation", donation_id)

        item = ReceiptOutboxItem(
            id=self.new_id("outbox"),
            donation_id=donation_id,
            status=OutboxStatus.READY,
            added_at=self.clock.now(),
        )
        self.state.outbox = [item, *self.state.outbox]
        return Ok(item)

    def add_template_to_outbox_bulk(
        self,
        donor_ids: Iterable[str],
        template_id: str,
    ) -> Result[list[TemplateOutboxItem]]:
        known = self.state.donor_ids()
        added_at = self.clock.now()
        items = [
            TemplateOutboxItem(
                id=self.new_id("outbox"),
                donor_id=donor_id,
                template_id=template_id,
                status=OutboxStatus.READY,
                added_at=added_at,
            )
            for donor_id in donor_ids
            if donor_id in known
        ]
        self.state.outbox = [*items, *self.state.outbox]
        return Ok(items)

    def update_outbox_status(
        self,
        outbox_id: str,
        status: OutboxStatus | str,
        error: str | None = None,
    ) -> Result[OutboxItem]:
        item = self.get_outbox_item(outbox_id)
        if item is None:
            return not_found("Outbox item", outbox_id)

        status = OutboxStatus(status)
        # Ready -> Sent | Failed; Failed items go back through retry_outbox_item.
        if item.status != OutboxStatus.READY or status == OutboxStatus.READY:
            return Err(
                ErrorKind.INVALID_VALUE,
                f"Outbox item cannot move from {item.status.value} to {status.value}.",
            )

        if status == OutboxStatus.SENT:
            changes = {"status": status, "error": None, "sent_at": self.clock.now()}
        else:
            changes = {"status": status, "error": error or "Send failed."}
        updated = item.model_copy(update=changes)
        self.state.outbox = replace_by_id(self.state.outbox, updated) or self.state.outbox
        if status == OutboxStatus.FAILED:
            logger.warning("Outbox item %s failed: %s", outbox_id, updated.error)
        return Ok(updated)

    def retry_outbox_item(self, outbox_id: str) -> Result[OutboxItem]:
        item = self.get_outbox_item(outbox_id)
        if item is None:
            return not_found("Outbox item", outbox_id)
        if item.status != OutboxStatus.FAILED:
            return Err(ErrorKind.INVALID_VALUE, "Only failed outbox items can be retried.")

        updated = item.model_copy(update={"status": OutboxStatus.READY, "error": None})
        self.state.outbox = replace_by_id(self.state.outbox, updated) or self.state.outbox
        return Ok(updated)

    def delete_outbox_items(self, outbox_ids: Iterable[str]) -> Result[int]:
        id_set = set(outbox_ids)
        before = len(self.state.outbox)
        self.state.outbox = [item for item in self.state.outbox if item.id not in id_set]
        return Ok(before - len(self.state.outbox))

    def queue_communications(
        self,
        donor_ids: Iterable[str],
        template_id: str,
        channel: Channel | str,
    ) -> Result[list[QueuedCommunication]]:
        known = self.state.donor_ids()
        queued_at = self.clock.now()
        channel = Channel(channel)
        items = [
            QueuedCommunication(
                id=self.new_id("q"),
                donor_id=donor_id,
                template_id=template_id,
                channel=channel,
                queued_at=queued_at,
            )
            for donor_id in donor_ids
            if donor_id in known
        ]
        self.state.communication_queue = [*self.state.communication_queue, *items]
        logger.debug("Queued %d %s communication(s)", len(items), channel.value)
        return Ok(items)

    # Views

    def dashboard_stats(self, today: date | None = None) -> dict[str, int | float]:
        return reports.dashboard_stats(
            self.state,
            today or self.clock.today(),
            upcoming_days=self.config.upcoming_pledge_days,
        )

    def paginate(self, frame: pd.DataFrame, page: int) -> reports.Page:
        return reports.paginate(frame, page, per_page=self.config.items_per_page)
