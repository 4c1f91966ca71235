"""
Email service for client portal transactional emails.

WHAT: Unified interface for sending the emails of the quotation decision
workflow through a pluggable provider.

WHY: Three emails leave the client portal:
1. The one-time code, sent only to the client who asked for it
2. An "action requested" notice to the other quotation stakeholders
3. Login credentials for a client account provisioned on acceptance

HOW: Resend over httpx when RESEND_API_KEY is set, otherwise a mock
provider that records messages in memory. Templates are plain f-strings
rendered by EmailTemplates; every send is logged with structured context.
"""

import html
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from client_portal.core.config import settings
from client_portal.core.exceptions import EmailServiceError

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


# ============================================================================
# Email Types and Messages
# ============================================================================


class EmailType(str, Enum):
    """Types of transactional emails sent by the client portal."""

    QUOTATION_OTP = "quotation_otp"
    """One-time code for an accept/reject decision."""

    QUOTATION_ACTION_REQUESTED = "quotation_action_requested"
    """Stakeholder notice that a client asked to accept/reject."""

    CLIENT_WELCOME = "client_welcome"
    """Credentials for a newly provisioned client login."""


@dataclass
class EmailMessage:
    """
    One outbound email.

    WHAT: Addressing, content and type of a single message.
    """

    to_email: str
    """Recipient email address."""

    subject: str
    """Email subject line."""

    html_content: str
    """HTML email body."""

    text_content: Optional[str] = None
    """Plain text fallback."""

    from_email: Optional[str] = None
    """Sender address (defaults to the configured sender)."""

    email_type: EmailType = EmailType.QUOTATION_ACTION_REQUESTED
    """Type of email for logging."""

    metadata: Optional[Dict[str, Any]] = None
    """Additional non-sensitive metadata for logging."""


@dataclass
class EmailResult:
    """Result of an email send operation."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    provider: Optional[str] = None


# ============================================================================
# Email Providers
# ============================================================================


class EmailProvider(ABC):
    """
    Delivery backend used by EmailService.

    WHY: Lets production use Resend while tests and local development use
    MockEmailProvider without touching calling code.
    """

    @abstractmethod
    async def send(self, message: EmailMessage) -> EmailResult:
        """
        Send an email message.

        Args:
            message: The email message to send

        Returns:
            EmailResult with success status and provider details
        """

    @abstractmethod
    def is_configured(self) -> bool:
        """True if credentials are present."""


def default_sender() -> str:
    """
    Configured "Name <address>" sender.

    Falls back to noreply@<frontend host> when EMAIL_FROM_ADDRESS is unset.
    """
    address = settings.EMAIL_FROM_ADDRESS
    if not address:
        host = urlparse(settings.FRONTEND_URL).hostname or "localhost"
        address = f"noreply@{host}"
    return f"{settings.EMAIL_FROM_NAME} <{address}>"


class ResendProvider(EmailProvider):
    """Resend email provider (REST API over httpx)."""

    def __init__(self, api_key: Optional[str] = None, timeout: float = 30.0):
        """
        Initialize Resend provider.

        Args:
            api_key: Resend API key (defaults to settings)
            timeout: Request timeout in seconds
        """
        self._api_key = api_key or settings.RESEND_API_KEY
        self._timeout = timeout

    def is_configured(self) -> bool:
        """True when a Resend API key is set."""
        return bool(self._api_key)

    async def send(self, message: EmailMessage) -> EmailResult:
        """
        Send email via the Resend API.

        Transport errors are reported as a failed EmailResult rather than
        raised, so the caller decides whether a failure matters.

        Args:
            message: Email message to send

        Returns:
            EmailResult with send status
        """
        if not self.is_configured():
            return EmailResult(
                success=False,
                error="Resend API key not configured",
                provider="resend",
            )

        payload = {
            "from": message.from_email or default_sender(),
            "to": [message.to_email],
            "subject": message.subject,
            "html": message.html_content,
        }
        if message.text_content:
            payload["text"] = message.text_content

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"Resend send error: {e}")
            return EmailResult(success=False, error=str(e), provider="resend")

        if response.status_code in (200, 201):
            return EmailResult(
                success=True,
                message_id=response.json().get("id"),
                provider="resend",
            )
        return EmailResult(
            success=False,
            error=f"Resend API error: {response.status_code} - {response.text}",
            provider="resend",
        )


class MockEmailProvider(EmailProvider):
    """
    Provider that records messages in memory instead of sending them.

    Messages are appended to a class-level list instead of being sent.
    """

    sent_emails: List[EmailMessage] = []
    """Class-level list of "sent" messages, for test assertions."""

    def is_configured(self) -> bool:
        return True

    async def send(self, message: EmailMessage) -> EmailResult:
        """Record the message and report success."""
        logger.info(
            f"[MOCK EMAIL] To: {message.to_email}, "
            f"Subject: {message.subject}, "
            f"Type: {message.email_type.value}"
        )
        MockEmailProvider.sent_emails.append(message)
        return EmailResult(
            success=True,
            message_id=f"mock-{len(MockEmailProvider.sent_emails)}",
            provider="mock",
        )

    @classmethod
    def clear_sent_emails(cls):
        """Forget every recorded message."""
        cls.sent_emails = []


# ============================================================================
# Email Templates
# ============================================================================


class EmailTemplates:
    """
    Email templates for the quotation decision workflow.

    Each template returns (subject, html_content, text_content).
    """

    @staticmethod
    def _layout(content: str, title: str = "") -> str:
        """Wrap body content in the shared HTML shell."""
        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <title>{html.escape(title)}</title>
            <style>
                body {{ font-family: Arial, sans-serif; color: #1f2937; background: #f3f4f6; }}
                .wrapper {{ max-width: 600px; margin: 32px auto; background: #fff; border-radius: 8px; }}
                .banner {{ background: #15803d; color: #fff; padding: 20px; text-align: center; }}
                .body {{ padding: 28px; }}
                .quotation {{ border-left: 4px solid #15803d; padding: 12px 16px; margin: 16px 0; }}
                .otp {{ font-size: 30px; font-weight: bold; letter-spacing: 6px; text-align: center; margin: 24px 0; }}
                .note {{ color: #6b7280; font-size: 13px; }}
            </style>
        </head>
        <body>
            <div class="wrapper">
                <div class="banner"><h2>{settings.EMAIL_FROM_NAME}</h2></div>
                <div class="body">{content}</div>
                <div class="body note">&copy; {datetime.utcnow().year} {settings.EMAIL_FROM_NAME}</div>
            </div>
        </body>
        </html>
        """

    @classmethod
    def quotation_otp_email(
        cls,
        user_name: str,
        otp_code: str,
        action: str,
        quotation_title: str,
        organization_name: str,
        expiry_minutes: int,
    ) -> tuple[str, str, str]:
        """
        One-time code email for the requesting client.

        Args:
            user_name: Requester display name
            otp_code: Plaintext code
            action: "accept" or "reject"
            quotation_title: Quotation title
            organization_name: Client organization name
            expiry_minutes: Code lifetime

        Returns:
            Tuple of (subject, html_content, text_content)
        """
        subject = f"OTP for Quotation {action.upper()} - {quotation_title}"
        # Names and titles are client-entered text
        safe_user = html.escape(user_name)
        safe_title = html.escape(quotation_title)
        safe_org = html.escape(organization_name)

        content = f"""
        <p>Dear {safe_user},</p>
        <p>You have requested to <strong>{action.lower()}</strong> the quotation:</p>
        <div class="quotation">
            <strong>{safe_title}</strong><br />
            Organization: {safe_org}
        </div>
        <p>Use this one-time password to confirm your action:</p>
        <div class="otp">{otp_code}</div>
        <p class="note">This code is valid for {expiry_minutes} minutes and can only be
        used once. If you did not request this action, contact our support team
        immediately.</p>
        """

        text_content = f"""
OTP Verification Required

Dear {user_name},

You have requested to {action.lower()} the quotation: {quotation_title}
Organization: {organization_name}

Your OTP: {otp_code}

This code is valid for {expiry_minutes} minutes and can only be used once.
If you did not request this action, please contact our support team.
        """

        return subject, cls._layout(content, title=subject), text_content

    @classmethod
    def quotation_action_requested_email(
        cls,
        quotation_title: str,
        action: str,
        requested_by: str,
        organization_name: str,
    ) -> tuple[str, str, str]:
        """
        Stakeholder notice that a client started an accept/reject.

        Never contains the code.

        Returns:
            Tuple of (subject, html_content, text_content)
        """
        subject = f"Quotation Action Requested: {quotation_title}"
        safe_requester = html.escape(requested_by)
        safe_org = html.escape(organization_name)
        safe_title = html.escape(quotation_title)

        content = f"""
        <p>{safe_requester} ({safe_org}) has requested to
        <strong>{action.lower()}</strong> the quotation:</p>
        <div class="quotation"><strong>{safe_title}</strong></div>
        <p>The decision becomes final once they confirm it with their one-time
        password.</p>
        """

        text_content = f"""
Quotation Action Requested

{requested_by} ({organization_name}) has requested to {action.lower()} the quotation:
{quotation_title}

The decision becomes final once they confirm it with their one-time password.
        """

        return subject, cls._layout(content, title=subject), text_content

    @classmethod
    def client_welcome_email(
        cls,
        first_name: str,
        last_name: str,
        email: str,
        temporary_password: str,
        login_url: str,
    ) -> tuple[str, str, str]:
        """
        Credentials for a client login created on quotation acceptance.

        Returns:
            Tuple of (subject, html_content, text_content)
        """
        subject = f"Welcome to {settings.EMAIL_FROM_NAME} - Your Account Credentials"
        safe_name = html.escape(f"{first_name} {last_name}")

        content = f"""
        <p>Dear {safe_name},</p>
        <p>Thank you for accepting our quotation. A client portal account has
        been created for you.</p>
        <div class="quotation">
            Email: <strong>{html.escape(email)}</strong><br />
            Temporary password: <strong>{html.escape(temporary_password)}</strong>
        </div>
        <p><a href="{login_url}">Log in to the client portal</a> and change your
        password after your first login.</p>
        """

        text_content = f"""
Welcome, {first_name} {last_name}!

A client portal account has been created for you.

Email: {email}
Temporary password: {temporary_password}

Log in at {login_url} and change your password after your first login.
        """

        return subject, cls._layout(content, title=subject), text_content


# ============================================================================
# Email Service
# ============================================================================


class EmailService:
    """
    High-level email service for the client portal.

    WHAT: Renders templates and hands messages to the configured provider.

    HOW: Resend when RESEND_API_KEY is set, otherwise MockEmailProvider.
    """

    def __init__(self, provider: Optional[EmailProvider] = None):
        """
        Initialize email service.

        Args:
            provider: Email provider to use (auto-detected if not provided)
        """
        if provider:
            self._provider = provider
        elif settings.RESEND_API_KEY:
            self._provider = ResendProvider()
        else:
            logger.warning("No email provider configured, using mock provider")
            self._provider = MockEmailProvider()

    @property
    def provider(self) -> EmailProvider:
        return self._provider

    async def send_email(self, message: EmailMessage, raise_on_failure: bool = False) -> EmailResult:
        """
        Send an email message.

        Args:
            message: Email message to send
            raise_on_failure: Raise EmailServiceError instead of returning
                a failed result

        Returns:
            EmailResult with send status

        Raises:
            EmailServiceError: If the send failed and raise_on_failure is set
        """
        logger.info(
            f"Sending {message.email_type.value} email to {message.to_email}",
            extra={
                "email_type": message.email_type.value,
                "to": message.to_email,
                "metadata": message.metadata or {},
            },
        )

        result = await self._provider.send(message)

        if result.success:
            logger.info(
                f"Email sent successfully: {result.message_id}",
                extra={
                    "message_id": result.message_id,
                    "provider": result.provider,
                },
            )
        else:
            logger.error(
                f"Email send failed: {result.error}",
                extra={
                    "email_type": message.email_type.value,
                    "to": message.to_email,
                    "error": result.error,
                },
            )
            if raise_on_failure:
                raise EmailServiceError(
                    message=f"Failed to send {message.email_type.value} email",
                    provider=result.provider,
                )

        return result

    async def send_quotation_otp_email(
        self,
        to_email: str,
        user_name: str,
        otp_code: str,
        action: str,
        quotation_id: int,
        quotation_title: str,
        organization_name: str,
        raise_on_failure: bool = False,
    ) -> EmailResult:
        """
        Send the one-time code to the requesting client.

        The code goes into the message body only; metadata stays free of it
        so log lines never carry the plaintext.
        """
        subject, html_content, text_content = EmailTemplates.quotation_otp_email(
            user_name=user_name,
            otp_code=otp_code,
            action=action,
            quotation_title=quotation_title,
            organization_name=organization_name,
            expiry_minutes=settings.QUOTATION_OTP_TTL_MINUTES,
        )

        message = EmailMessage(
            to_email=to_email,
            subject=subject,
            html_content=html_content,
            text_content=text_content,
            email_type=EmailType.QUOTATION_OTP,
            metadata={"quotation_id": quotation_id, "action": action},
        )

        return await self.send_email(message, raise_on_failure=raise_on_failure)

    async def send_quotation_action_requested_email(
        self,
        to_email: str,
        quotation_id: int,
        quotation_title: str,
        action: str,
        requested_by: str,
        organization_name: str,
        raise_on_failure: bool = False,
    ) -> EmailResult:
        """Send the stakeholder notice for a pending accept/reject."""
        subject, html_content, text_content = EmailTemplates.quotation_action_requested_email(
            quotation_title=quotation_title,
            action=action,
            requested_by=requested_by,
            organization_name=organization_name,
        )

        message = EmailMessage(
            to_email=to_email,
            subject=subject,
            html_content=html_content,
            text_content=text_content,
            email_type=EmailType.QUOTATION_ACTION_REQUESTED,
            metadata={"quotation_id": quotation_id, "action": action},
        )

        return await self.send_email(message, raise_on_failure=raise_on_failure)

    async def send_client_welcome_email(
        self,
        to_email: str,
        first_name: str,
        last_name: str,
        temporary_password: str,
        raise_on_failure: bool = False,
    ) -> EmailResult:
        """
        Send login credentials to a newly provisioned client user.

        Args:
            to_email: New user's email (also the login)
            first_name: New user's first name
            last_name: New user's last name
            temporary_password: Plaintext temporary password
            raise_on_failure: Raise EmailServiceError on failure

        Returns:
            EmailResult with send status
        """
        subject, html_content, text_content = EmailTemplates.client_welcome_email(
            first_name=first_name,
            last_name=last_name,
            email=to_email,
            temporary_password=temporary_password,
            login_url=f"{settings.FRONTEND_URL}/login",
        )

        message = EmailMessage(
            to_email=to_email,
            subject=subject,
            html_content=html_content,
            text_content=text_content,
            email_type=EmailType.CLIENT_WELCOME,
        )

        return await self.send_email(message, raise_on_failure=raise_on_failure)


# Singleton instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """
    Get the email service singleton.

    Returns:
        EmailService instance
    """
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
