"""Static configuration for the donor CRM."""

from __future__ import annotations

from dataclasses import dataclass

from .models import (
    Channel,
    CommunicationTemplate,
    OrganizationSettings,
    Permission,
    TemplateType,
)

ALL_PERMISSIONS = list(Permission)

ITEMS_PER_PAGE = 10
UPCOMING_PLEDGE_DAYS = 7
DEFAULT_ORGANIZATION_NAME = "Alkahaf Donor System"


@dataclass(frozen=True)
class StoreConfig:
    organization_name: str = DEFAULT_ORGANIZATION_NAME
    items_per_page: int = ITEMS_PER_PAGE
    upcoming_pledge_days: int = UPCOMING_PLEDGE_DAYS
    backup_indent: int | None = 2


def default_templates() -> list[CommunicationTemplate]:
    return [
        CommunicationTemplate(
            id="template-1",
            name="Standard Thank You (Email)",
            type=TemplateType.DONATION_THANK_YOU,
            channel=Channel.EMAIL,
            subject="Thank you for your donation!",
            body="Dear {{donorName}},\n\nThank you for your generous donation to {{orgName}}.",
        ),
        CommunicationTemplate(
            id="template-2",
            name="Standard Thank You (WhatsApp)",
            type=TemplateType.DONATION_THANK_YOU,
            channel=Channel.WHATSAPP,
            body="Dear {{donorName}}, thank you for your generous donation to {{orgName}}!",
        ),
    ]


def default_settings(organization_name: str = DEFAULT_ORGANIZATION_NAME) -> OrganizationSettings:
    return OrganizationSettings(
        name=organization_name,
        address="123 Charity Lane, Kindness City, 12345",
        website="www.alkahaf.org",
        phone="1-800-GIVE-NOW",
        email="info@alkahaf.org",
        whatsapp_number="12223334444",
        receipt_thank_you_message="Thank you for your generous contribution!",
        communication_templates=default_templates(),
        tags=[],
    )
