"""
Quotation status transitions for client decisions.

WHAT: The action-to-status mapping and the guarded update that applies a
client's accept/reject.

WHY: ACCEPTED and REJECTED are irrevocable business outcomes. Only a SENT
quotation can reach them, and two concurrent confirmations must not both
succeed.

HOW: guard_sendable() is the early, readable check. apply_transition()
repeats it in the database as `WHERE status = 'SENT'`, which is the check
that actually decides a race.
"""

import logging
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from client_portal.core.exceptions import QuotationNotSentError
from client_portal.dao.quotation import QuotationDAO
from client_portal.models import Quotation, QuotationActionType, QuotationStatus, utcnow

logger = logging.getLogger(__name__)


ACTION_TARGETS: Dict[QuotationActionType, QuotationStatus] = {
    QuotationActionType.ACCEPT: QuotationStatus.ACCEPTED,
    QuotationActionType.REJECT: QuotationStatus.REJECTED,
}


REFRESHED_COLUMNS = [
    "status",
    "status_changed_at",
    "status_changed_by",
    "client_notes",
    "updated_at",
]


def target_status(action_type: QuotationActionType) -> QuotationStatus:
    """ACCEPT -> ACCEPTED, REJECT -> REJECTED."""
    return ACTION_TARGETS[action_type]


class QuotationStateMachine:
    """Applies client decisions to quotations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.quotation_dao = QuotationDAO(session)

    @staticmethod
    def guard_sendable(quotation: Quotation) -> None:
        """
        Require the quotation to be awaiting a client decision.

        Raises:
            QuotationNotSentError: Status is not SENT
        """
        if quotation.status != QuotationStatus.SENT:
            raise QuotationNotSentError(
                quotation_id=quotation.id,
                status=quotation.status.value,
            )

    async def apply_transition(
        self,
        quotation: Quotation,
        action_type: QuotationActionType,
        actor_user_id: int,
        client_notes: Optional[str] = None,
    ) -> Quotation:
        """
        Move a SENT quotation to ACCEPTED or REJECTED.

        WHAT: Conditional UPDATE on `status = 'SENT'`, then a refresh of
        the passed instance.

        Args:
            quotation: Quotation being decided
            action_type: ACCEPT or REJECT
            actor_user_id: Client user making the decision
            client_notes: Note stored with the decision (defaults to a
                description of the action)

        Returns:
            The refreshed quotation

        Raises:
            QuotationNotSentError: The row was no longer SENT
        """
        new_status = target_status(action_type)
        if client_notes is None:
            client_notes = f"Action: {action_type.value} via OTP verification"

        updated = await self.quotation_dao.transition_from_sent(
            quotation_id=quotation.id,
            new_status=new_status,
            changed_by=actor_user_id,
            changed_at=utcnow(),
            client_notes=client_notes,
        )
        if not updated:
            logger.info(
                f"Quotation {quotation.id} was no longer SENT at transition",
                extra={"quotation_id": quotation.id, "user_id": actor_user_id},
            )
            raise QuotationNotSentError(quotation_id=quotation.id)

        # Column refresh only; loaded relationships stay usable without lazy IO
        await self.session.refresh(quotation, attribute_names=REFRESHED_COLUMNS)

        logger.info(
            f"Quotation {quotation.id} {action_type.past_tense}",
            extra={
                "quotation_id": quotation.id,
                "user_id": actor_user_id,
                "status": new_status.value,
            },
        )
        return quotation
