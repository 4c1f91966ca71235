"""
Quotation OTP DAO.

WHAT: Provides data access operations for quotation one-time codes:
supersession, creation, live lookup and guarded consumption.

WHY: Every OTP state change is a predicate UPDATE so that two concurrent
requests can never both succeed against the same row:
- supersede_live only touches rows that are still live
- consume only succeeds while the row is still live

HOW: Extends BaseDAO with (quotation_id, user_id)-scoped queries. Rows are
never deleted; supersession and consumption are timestamps.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, update, and_
from sqlalchemy.ext.asyncio import AsyncSession

from client_portal.dao.base import BaseDAO
from client_portal.models import QuotationOtp


class QuotationOtpDAO(BaseDAO[QuotationOtp]):
    """Data Access Object for quotation OTPs."""

    def __init__(self, session: AsyncSession):
        """
        Initialize QuotationOtp DAO.

        Args:
            session: AsyncSession for database operations
        """
        super().__init__(QuotationOtp, session)

    @staticmethod
    def _live_conditions(quotation_id: int, user_id: int, now: datetime) -> list:
        """Predicate for live rows of a (quotation, user) pair."""
        return [
            QuotationOtp.quotation_id == quotation_id,
            QuotationOtp.user_id == user_id,
            QuotationOtp.consumed_at.is_(None),
            QuotationOtp.superseded_at.is_(None),
            QuotationOtp.expires_at > now,
        ]

    async def supersede_live(self, quotation_id: int, user_id: int, now: datetime) -> int:
        """
        Mark every live OTP of the pair as superseded.

        WHAT: Sets superseded_at on unconsumed, unsuperseded, unexpired rows.

        WHY: Only the newest request may hold a live code. Expired rows are
        left untouched so their history reads as "expired", not "replaced".

        Args:
            quotation_id: Quotation ID
            user_id: Requesting user ID
            now: Supersession timestamp

        Returns:
            Number of rows superseded
        """
        result = await self.session.execute(
            update(QuotationOtp)
            .where(and_(*self._live_conditions(quotation_id, user_id, now)))
            .values(superseded_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def get_live(self, quotation_id: int, user_id: int, now: datetime) -> Optional[QuotationOtp]:
        """
        Get the live OTP for a pair, if any.

        Issuers hold the quotation row lock while superseding and inserting
        (see QuotationDAO.get_with_relations), so at most one row is live.
        The ordering still picks the newest row deterministically.

        Args:
            quotation_id: Quotation ID
            user_id: User ID
            now: Reference time for expiry

        Returns:
            Live QuotationOtp or None
        """
        result = await self.session.execute(
            select(QuotationOtp)
            .where(and_(*self._live_conditions(quotation_id, user_id, now)))
            .order_by(QuotationOtp.created_at.desc(), QuotationOtp.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def consume(self, otp_id: int, now: datetime) -> bool:
        """
        Mark an OTP consumed if it is still live.

        WHAT: UPDATE ... SET consumed_at = now WHERE id = :id AND the row is
        still live.

        WHY: A concurrent confirmation that already consumed (or a request
        that superseded) the row makes this update match zero rows.

        Args:
            otp_id: OTP row ID
            now: Consumption timestamp

        Returns:
            True if this call consumed the row
        """
        result = await self.session.execute(
            update(QuotationOtp)
            .where(
                QuotationOtp.id == otp_id,
                QuotationOtp.consumed_at.is_(None),
                QuotationOtp.superseded_at.is_(None),
                QuotationOtp.expires_at > now,
            )
            .values(consumed_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_history(self, quotation_id: int, user_id: int) -> List[QuotationOtp]:
        """
        All OTP rows ever issued for a pair, oldest first.

        Args:
            quotation_id: Quotation ID
            user_id: User ID

        Returns:
            List of QuotationOtp rows
        """
        result = await self.session.execute(
            select(QuotationOtp)
            .where(
                QuotationOtp.quotation_id == quotation_id,
                QuotationOtp.user_id == user_id,
            )
            .order_by(QuotationOtp.id.asc())
        )
        return list(result.scalars().all())
