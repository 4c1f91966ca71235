"""
Two-step, OTP-gated quotation accept/reject.

WHAT: ActionWorkflowCoordinator exposes the two public operations of the
client decision workflow:
1. request_action: issue a one-time code for "accept" or "reject"
2. confirm_action: consume the code and make the decision final

WHY: Accepting or rejecting a quotation is irrevocable. The second step
proves intent, and the whole confirmation (code consumption, status
change, audit row, client provisioning) must be all-or-nothing even when
several confirmations race.

HOW: Each operation opens one transaction from the session factory and
commits it before any email is sent. Code requests lock the quotation row
so supersede-then-insert never interleaves; confirmations are settled by
predicate UPDATEs in the DAOs. Emails go out through the
NotificationDispatcher after commit; their failures are logged only.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from client_portal.core.auth import is_well_formed_otp
from client_portal.core.exceptions import InvalidOtpError, QuotationNotFoundError, ValidationError
from client_portal.dao.quotation import QuotationDAO
from client_portal.dao.quotation_action import QuotationActionDAO
from client_portal.db.session import AsyncSessionLocal, transaction
from client_portal.models import Quotation, QuotationActionType
from client_portal.schemas.quotation_action import (
    OtpRequestedResponse,
    QuotationActionConfirmedResponse,
    QuotationSummary,
)
from client_portal.services.access_resolver import AccessContext, AccessResolver
from client_portal.services.client_provisioning import ClientAccountProvisioner, ProvisionedClient
from client_portal.services.email import EmailType
from client_portal.services.notification_service import (
    NotificationDispatcher,
    NotificationRecipient,
    build_action_requested_recipients,
)
from client_portal.services.otp_manager import OtpManager
from client_portal.services.quotation_state_machine import QuotationStateMachine

logger = logging.getLogger(__name__)

OTP_SENT_MESSAGE = "OTP sent to your registered email"


class ActionWorkflowCoordinator:
    """
    Orchestrates the accept/reject workflow.

    Attributes:
        session_factory: Factory for one session per operation
        dispatcher: Post-commit notification dispatcher
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            session_factory: async_sessionmaker (defaults to AsyncSessionLocal)
            dispatcher: NotificationDispatcher (defaults to email delivery)
        """
        self.session_factory = session_factory or AsyncSessionLocal
        self.dispatcher = dispatcher or NotificationDispatcher()

    @staticmethod
    def _parse_action(action) -> QuotationActionType:
        try:
            return QuotationActionType.parse(action)
        except ValueError:
            raise ValidationError(
                message="Action must be 'accept' or 'reject'",
                field="action",
            ) from None

    @staticmethod
    async def _load_accessible_quotation(
        session: AsyncSession,
        context: AccessContext,
        quotation_id: int,
        for_update: bool = False,
    ) -> Quotation:
        """
        Fetch a quotation the caller may act on.

        Missing and foreign quotations raise the same error.
        """
        quotation = await QuotationDAO(session).get_with_relations(
            quotation_id, for_update=for_update
        )
        if quotation is None or not AccessResolver.can_access(context, quotation):
            raise QuotationNotFoundError(quotation_id=quotation_id)
        return quotation

    async def _notify(self, recipients: List[NotificationRecipient], quotation_id: int) -> None:
        """Dispatch after commit; nothing raised here reaches the caller."""
        if not recipients:
            return
        try:
            await self.dispatcher.send(recipients)
        except Exception as e:
            logger.error(
                f"Notification dispatch failed for quotation {quotation_id}: {e}",
                extra={"quotation_id": quotation_id, "recipients": len(recipients)},
            )

    async def request_action(
        self,
        user_id: int,
        quotation_id: int,
        action: str,
        ip_address: Optional[str] = None,
    ) -> OtpRequestedResponse:
        """
        Issue a one-time code for accepting or rejecting a quotation.

        WHAT: Resolves the caller, checks the quotation is theirs and SENT,
        supersedes any previous code and stores a new one. After commit the
        requester is emailed the code and the other stakeholders a notice.

        Args:
            user_id: Verified client user ID
            quotation_id: Quotation to decide
            action: "accept" or "reject" (any case)
            ip_address: Requester IP, stored on the code row

        Returns:
            OtpRequestedResponse with the code's expiry

        Raises:
            ValidationError: Unknown action
            ClientNotFoundError: Caller is not an active client
            QuotationNotFoundError: Quotation missing or not the caller's
            QuotationNotSentError: Quotation not awaiting a decision
        """
        action_type = self._parse_action(action)

        async with transaction(self.session_factory) as session:
            resolver = AccessResolver(session)
            requester = await resolver.get_client(user_id)
            context = resolver.context_for(requester)

            # Row lock serialises concurrent requests for this quotation
            quotation = await self._load_accessible_quotation(
                session, context, quotation_id, for_update=True
            )
            QuotationStateMachine.guard_sendable(quotation)

            issued = await OtpManager(session).issue(
                quotation_id=quotation.id,
                user_id=requester.id,
                action_type=action_type,
                ip_address=ip_address,
            )

        recipients = build_action_requested_recipients(
            quotation=quotation,
            requester=requester,
            action_type=action_type,
            otp_code=issued.code,
        )
        await self._notify(recipients, quotation.id)

        logger.info(
            f"Quotation {quotation.id} {action_type.value} requested",
            extra={
                "quotation_id": quotation.id,
                "user_id": requester.id,
                "action": action_type.value,
                "otp_id": issued.otp_id,
            },
        )

        return OtpRequestedResponse(
            message=OTP_SENT_MESSAGE,
            quotation_id=quotation.id,
            action=action_type,
            expires_at=issued.expires_at,
        )

    async def confirm_action(
        self,
        user_id: int,
        quotation_id: int,
        code: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> QuotationActionConfirmedResponse:
        """
        Confirm a pending accept/reject with its one-time code.

        WHAT: In one transaction: consume the code, re-check access and
        status, move the quotation to its terminal status, append the audit
        row and, on acceptance, provision a login for the lead's contact.
        Every failure rolls the whole transaction back, so a failed
        confirmation leaves no trace. The code is checked before the
        status, so a reused code is INVALID_OTP even once the quotation is
        decided.

        Args:
            user_id: Verified client user ID
            quotation_id: Quotation being decided
            code: 6-digit code from the email
            ip_address: Caller IP for the audit row
            user_agent: Caller user agent for the audit row

        Returns:
            QuotationActionConfirmedResponse with the decided quotation

        Raises:
            InvalidOtpError: Any code failure
            ClientNotFoundError: Caller is not an active client
            QuotationNotFoundError: Quotation missing or not the caller's
            QuotationNotSentError: Quotation already decided or never sent
        """
        if not is_well_formed_otp(code):
            raise InvalidOtpError()

        provisioned: Optional[ProvisionedClient] = None

        async with transaction(self.session_factory) as session:
            context = await AccessResolver(session).resolve(user_id)

            action_type = await OtpManager(session).validate(quotation_id, user_id, code)

            quotation = await self._load_accessible_quotation(session, context, quotation_id)
            state_machine = QuotationStateMachine(session)
            state_machine.guard_sendable(quotation)
            await state_machine.apply_transition(quotation, action_type, user_id)

            await QuotationActionDAO(session).record(
                quotation_id=quotation.id,
                user_id=user_id,
                action_type=action_type,
                performed_at=quotation.status_changed_at,
                ip_address=ip_address,
                user_agent=user_agent,
            )

            if action_type == QuotationActionType.ACCEPT:
                provisioned = await ClientAccountProvisioner(session).provision_for_quotation(
                    quotation
                )

        if provisioned is not None:
            await self._notify(
                [
                    NotificationRecipient(
                        email=provisioned.user.email,
                        email_type=EmailType.CLIENT_WELCOME,
                        data={
                            "first_name": provisioned.user.first_name,
                            "last_name": provisioned.user.last_name,
                            "temporary_password": provisioned.temporary_password,
                        },
                    )
                ],
                quotation.id,
            )

        summary = QuotationSummary.model_validate(quotation)
        summary.action = action_type

        return QuotationActionConfirmedResponse(
            message=f"Quotation {action_type.past_tense} successfully",
            quotation=summary,
        )
