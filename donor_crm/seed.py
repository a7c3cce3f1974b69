"""Demo data used to populate a fresh store."""

from __future__ import annotations

from datetime import timedelta

from .clock import add_frequency
from .config import ALL_PERMISSIONS, default_settings
from .models import (
    Donation,
    DonationHistoryEntry,
    Donor,
    Frequency,
    Permission,
    Pledge,
    PledgeStatus,
    PledgeTask,
    RecurringProfile,
    Role,
    Tag,
    User,
    UserStatus,
)
from .state import StateSnapshot
from .store import CRMStore


def demo_snapshot(store: CRMStore) -> StateSnapshot:
    now = store.clock.now()
    today = now.date()

    roles = [
        Role(id="role-1", name="Administrator", permissions=ALL_PERMISSIONS, is_system_role=True),
        Role(
            id="role-2",
            name="Staff",
            permissions=[
                Permission.DONORS_VIEW,
                Permission.DONORS_CREATE,
                Permission.DONORS_EDIT,
                Permission.RECEIPTS_VIEW,
                Permission.RECEIPTS_CREATE,
            ],
        ),
        Role(
            id="role-3",
            name="Viewer",
            permissions=[Permission.DONORS_VIEW, Permission.RECEIPTS_VIEW, Permission.REPORTS_VIEW],
        ),
    ]
    users = [
        User(
            id="user-1",
            name="Admin User",
            email="admin@alkahaf.org",
            role_id="role-1",
            last_login=now - timedelta(hours=2),
        ),
        User(
            id="user-2",
            name="John Doe",
            email="john.doe@example.com",
            role_id="role-2",
            last_login=now - timedelta(days=1),
        ),
        User(
            id="user-3",
            name="Jane Smith",
            email="jane.smith@example.com",
            role_id="role-3",
            status=UserStatus.INACTIVE,
            last_login=now - timedelta(days=10),
        ),
    ]
    tags = [
        Tag(id="tag-1", name="Volunteer", color="blue"),
        Tag(id="tag-2", name="Gala 2023", color="purple"),
        Tag(id="tag-3", name="Corporate", color="yellow"),
        Tag(id="tag-4", name="Major Donor", color="red"),
    ]
    donations = [
        Donation(
            id="donation-1",
            donor_id="donor-1",
            amount=100,
            date="2023-03-10",
            method="Online",
            purpose="Sadaqa/Hadiya/Atiyat",
        ),
        Donation(
            id="donation-2",
            donor_id="donor-2",
            amount=50,
            date="2023-04-15",
            method="Cash",
            purpose="Zakat",
        ),
        Donation(
            id="donation-3",
            donor_id="donor-1",
            amount=200,
            date="2023-05-20",
            method="Online",
            purpose="Sponsor a Child",
            recurring="Monthly",
        ),
    ]

    def history(donor_id: str) -> list[DonationHistoryEntry]:
        return [
            DonationHistoryEntry(date=donation.date, amount=donation.amount, receipt_id=donation.id)
            for donation in donations
            if donation.donor_id == donor_id
        ]

    donors = [
        Donor(
            id="donor-1",
            name="Alice Johnson",
            email="alice.j@example.com",
            phone="123-456-7890",
            address="123 Maple St, Springfield",
            join_date="2023-01-15",
            donation_history=history("donor-1"),
            tag_ids=["tag-1", "tag-2"],
            notes="Interested in child sponsorship programs.",
        ),
        Donor(
            id="donor-2",
            name="Bob Williams",
            email="bob.w@example.com",
            phone="234-567-8901",
            address="456 Oak Ave, Metropolis",
            join_date="2023-02-20",
            donation_history=history("donor-2"),
        ),
    ]
    pledges = [
        Pledge(
            id="pledge-1",
            donor_id="donor-1",
            amount=500,
            due_date=today + timedelta(days=5),
            tasks=[PledgeTask(id="task-1", description="Follow up call")],
        ),
        Pledge(
            id="pledge-2",
            donor_id="donor-2",
            amount=1000,
            due_date=today,
            status=PledgeStatus.DUE,
        ),
    ]
    recurring_profiles = [
        RecurringProfile(
            id="rec-1",
            donor_id="donor-1",
            amount=200,
            frequency=Frequency.MONTHLY,
            start_date="2023-05-20",
            next_due_date=add_frequency(today, Frequency.MONTHLY),
            purpose="Sponsor a Child",
            method="Online",
        )
    ]
    settings = default_settings(store.config.organization_name).model_copy(update={"tags": tags})

    return StateSnapshot(
        donors=donors,
        donations=donations,
        pledges=pledges,
        recurring_profiles=recurring_profiles,
        users=users,
        roles=roles,
        settings=settings,
        outbox=[],
        communication_queue=[],
        tags=list(tags),
    )


def load_demo_data(store: CRMStore) -> None:
    """Replace the store contents with the demo set and drop all backups."""
    store.state.restore(demo_snapshot(store))
    store.state.backups = []
