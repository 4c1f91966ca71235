"""
Client account provisioning on quotation acceptance.

WHAT: Creates a client portal login for a lead's primary contact when one
of the lead's quotations is accepted.

WHY: Accepting a quotation is the point where a prospect becomes a
client. The person accepting is often not the lead's primary contact, and
that contact needs a login of their own from then on. A contact whose email
already belongs to any user is never given a second account.

HOW: Runs inside the confirmation transaction. The user is built from the
lead's contact row (or the lead's inline contact fields) with a random
temporary password stored as a bcrypt hash. The plaintext password is
returned to the caller for the welcome email, which is sent after commit.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from client_portal.core.auth import generate_temporary_password, hash_password
from client_portal.dao.user import UserDAO
from client_portal.models import Lead, Quotation, User, UserRole

logger = logging.getLogger(__name__)


@dataclass
class ProvisionedClient:
    """A freshly created client user and its one-time plaintext password."""

    user: User
    temporary_password: str

    def __repr__(self) -> str:
        return f"ProvisionedClient(user_id={self.user.id}, email={self.user.email})"


def contact_details(lead: Lead) -> Tuple[Optional[str], str, str, Optional[str]]:
    """
    Email, first name, last name and phone for a lead's primary contact.

    Missing names fall back to splitting the lead's contact_name, then to
    "Client" / "User".
    """
    contact = lead.contact
    name_parts = (lead.contact_name or "").split()

    email = (contact.email if contact is not None else None) or lead.contact_email
    first_name = (
        (contact.first_name if contact is not None else None)
        or (name_parts[0] if name_parts else None)
        or "Client"
    )
    last_name = (
        (contact.last_name if contact is not None else None)
        or " ".join(name_parts[1:])
        or "User"
    )
    phone = (contact.phone if contact is not None else None) or lead.contact_phone
    return email, first_name, last_name, phone


class ClientAccountProvisioner:
    """Creates client logins for lead contacts that have none."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_dao = UserDAO(session)

    async def provision_for_quotation(self, quotation: Quotation) -> Optional[ProvisionedClient]:
        """
        Create a client user for the quotation's lead contact if needed.

        Skips when the lead has no contact email or when that email already
        belongs to a user.

        Args:
            quotation: Accepted quotation with lead, organization and
                contact loaded

        Returns:
            ProvisionedClient, or None when nothing was created
        """
        lead = quotation.lead
        if lead is None or lead.organization is None:
            return None

        org_id = lead.organization.id
        email, first_name, last_name, phone = contact_details(lead)

        if not email:
            logger.warning(
                f"No contact email found for lead {lead.id}, cannot create client user",
                extra={"lead_id": lead.id, "quotation_id": quotation.id},
            )
            return None

        existing = await self.user_dao.get_by_email(email)
        if existing is not None:
            logger.info(
                f"Contact email already belongs to user {existing.id}, skipping",
                extra={"lead_id": lead.id, "org_id": org_id, "user_id": existing.id},
            )
            return None

        temporary_password = generate_temporary_password()
        user = await self.user_dao.create(
            email=email,
            hashed_password=hash_password(temporary_password),
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=UserRole.CLIENT,
            org_id=org_id,
            lead_id=lead.id,
            is_active=True,
            is_verified=False,
        )

        logger.info(
            f"Client user created for organization {org_id}",
            extra={"user_id": user.id, "org_id": org_id, "quotation_id": quotation.id},
        )
        return ProvisionedClient(user=user, temporary_password=temporary_password)
