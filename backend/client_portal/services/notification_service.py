"""
Notification dispatch for quotation decision events.

WHAT: Turns a list of recipients into delivered emails, best effort, and
builds the stakeholder list for a requested accept/reject.

WHY: Notifications run after the database transaction has committed. A
failed email must never undo, or even report as failed, an OTP issuance or
a quotation decision that is already persisted.

HOW: NotificationDispatcher.send() walks the recipients, renders each one
through EmailService according to its email type, and counts successes.
Every failure (provider error or exception) is logged and skipped.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from client_portal.models import Quotation, QuotationActionType, User
from client_portal.services.email import EmailResult, EmailService, EmailType, get_email_service

logger = logging.getLogger(__name__)


@dataclass
class NotificationRecipient:
    """
    One outbound notification.

    Attributes:
        email: Destination address
        data: Template fields for the email type
        email_type: Which template to render
    """

    email: str
    data: Dict[str, Any] = field(default_factory=dict)
    email_type: EmailType = EmailType.QUOTATION_ACTION_REQUESTED


def unique_emails(candidates: Iterable[Optional[str]]) -> List[str]:
    """
    Drop empty addresses and case-insensitive duplicates, keeping order.

    Args:
        candidates: Addresses, possibly None or blank

    Returns:
        Deduplicated addresses as first seen
    """
    seen = set()
    emails = []
    for candidate in candidates:
        email = (candidate or "").strip()
        if not email or email.lower() in seen:
            continue
        seen.add(email.lower())
        emails.append(email)
    return emails


def build_action_requested_recipients(
    quotation: Quotation,
    requester: User,
    action_type: QuotationActionType,
    otp_code: str,
) -> List[NotificationRecipient]:
    """
    Recipients for a freshly issued OTP.

    WHAT: The requester gets the code. The lead's primary contact, the
    organization's email and the quotation uploader get a notice without
    the code.

    Args:
        quotation: Quotation with lead, organization, contact and uploader
            loaded
        requester: Client user who asked for the code
        action_type: Requested action
        otp_code: Plaintext code, placed only in the requester's data

    Returns:
        Requester first, then each distinct stakeholder
    """
    lead = quotation.lead
    organization = lead.organization if lead is not None else None
    organization_name = organization.name if organization is not None else ""
    action = action_type.value.lower()

    recipients = [
        NotificationRecipient(
            email=requester.email,
            email_type=EmailType.QUOTATION_OTP,
            data={
                "user_name": requester.full_name,
                "otp_code": otp_code,
                "action": action,
                "quotation_id": quotation.id,
                "quotation_title": quotation.title,
                "organization_name": organization_name,
            },
        )
    ]

    stakeholders = unique_emails(
        [
            requester.email,
            lead.primary_contact_email if lead is not None else None,
            organization.email if organization is not None else None,
            quotation.uploader.email if quotation.uploader is not None else None,
        ]
    )[1:]

    for email in stakeholders:
        recipients.append(
            NotificationRecipient(
                email=email,
                email_type=EmailType.QUOTATION_ACTION_REQUESTED,
                data={
                    "quotation_id": quotation.id,
                    "quotation_title": quotation.title,
                    "action": action,
                    "requested_by": requester.full_name,
                    "organization_name": organization_name,
                },
            )
        )

    return recipients


class NotificationDispatcher:
    """
    Best-effort email dispatcher.

    Attributes:
        email_service: EmailService used for rendering and delivery
    """

    def __init__(self, email_service: Optional[EmailService] = None):
        """
        Initialize NotificationDispatcher.

        Args:
            email_service: EmailService instance (defaults to the singleton)
        """
        self.email_service = email_service or get_email_service()

    async def _deliver(self, recipient: NotificationRecipient) -> EmailResult:
        data = recipient.data
        if recipient.email_type == EmailType.QUOTATION_OTP:
            return await self.email_service.send_quotation_otp_email(
                to_email=recipient.email, **data
            )
        if recipient.email_type == EmailType.CLIENT_WELCOME:
            return await self.email_service.send_client_welcome_email(
                to_email=recipient.email, **data
            )
        return await self.email_service.send_quotation_action_requested_email(
            to_email=recipient.email, **data
        )

    async def send(self, recipients: List[NotificationRecipient]) -> int:
        """
        Deliver every recipient's email, best effort.

        Never raises. Each failure is logged without the template data,
        which may hold a code or a temporary password.

        Args:
            recipients: Notifications to deliver

        Returns:
            Number of emails delivered
        """
        delivered = 0
        for recipient in recipients:
            try:
                result = await self._deliver(recipient)
            except Exception as e:
                logger.error(
                    f"Notification dispatch failed: {e}",
                    extra={
                        "email_type": recipient.email_type.value,
                        "to": recipient.email,
                    },
                )
                continue

            if result.success:
                delivered += 1
            else:
                logger.warning(
                    "Notification not delivered",
                    extra={
                        "email_type": recipient.email_type.value,
                        "to": recipient.email,
                        "error": result.error,
                    },
                )

        logger.info(
            f"Dispatched {delivered}/{len(recipients)} notifications",
            extra={"delivered": delivered, "total": len(recipients)},
        )
        return delivered
