"""
Quotation action DAO.

WHY: Quotation actions are the append-only audit trail of client
decisions, so this DAO exposes inserts and reads only.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from client_portal.dao.base import BaseDAO
from client_portal.models import QuotationAction, QuotationActionType


class QuotationActionDAO(BaseDAO[QuotationAction]):
    """Data Access Object for the quotation decision audit trail."""

    def __init__(self, session: AsyncSession):
        super().__init__(QuotationAction, session)

    async def record(
        self,
        quotation_id: int,
        user_id: int,
        action_type: QuotationActionType,
        performed_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> QuotationAction:
        """
        Append one decision row.

        Args:
            quotation_id: Quotation ID
            user_id: Deciding client user
            action_type: ACCEPT or REJECT
            performed_at: Decision timestamp
            ip_address: Caller IP, when the host layer provides it
            user_agent: Caller user agent, truncated to the column size

        Returns:
            Created QuotationAction
        """
        return await self.create(
            quotation_id=quotation_id,
            user_id=user_id,
            action_type=action_type,
            performed_at=performed_at,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )

    async def get_by_quotation(self, quotation_id: int) -> List[QuotationAction]:
        """
        Decision history for a quotation, oldest first.

        Args:
            quotation_id: Quotation ID

        Returns:
            List of QuotationAction rows
        """
        result = await self.session.execute(
            select(QuotationAction)
            .where(QuotationAction.quotation_id == quotation_id)
            .order_by(QuotationAction.performed_at.asc(), QuotationAction.id.asc())
        )
        return list(result.scalars().all())
