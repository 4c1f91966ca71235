"""
Quotation Data Access Object (DAO).

WHAT: Database operations for the Quotation model.

WHY: The decision workflow needs three things from quotation storage:
1. A point read of the quotation together with everything needed to
   authorize the caller and notify stakeholders (lead, organization,
   contact, uploader)
2. A guarded status update that only applies while the row is still SENT
3. A row lock that serialises code issuance for one quotation

HOW: Extends BaseDAO with eager-loaded reads and a predicate UPDATE whose
affected row count tells the caller whether it won the transition.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from client_portal.dao.base import BaseDAO
from client_portal.models import Lead, Quotation, QuotationStatus


class QuotationDAO(BaseDAO[Quotation]):
    """
    Data Access Object for Quotation model.

    WHAT: Provides reads and guarded status transitions for quotations.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize QuotationDAO.

        Args:
            session: Async database session
        """
        super().__init__(Quotation, session)

    @staticmethod
    def with_relations_query(quotation_id: int, for_update: bool = False) -> Select:
        """SELECT for one quotation with its stakeholder relations eager-loaded."""
        query = (
            select(Quotation)
            .where(Quotation.id == quotation_id)
            .options(
                selectinload(Quotation.lead).selectinload(Lead.organization),
                selectinload(Quotation.lead).selectinload(Lead.contact),
                selectinload(Quotation.uploader),
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            # Locks the quotation row only; the selectin loads run unlocked
            query = query.with_for_update()
        return query

    async def get_with_relations(
        self, quotation_id: int, for_update: bool = False
    ) -> Optional[Quotation]:
        """
        Get a quotation with lead, organization, contact and uploader loaded.

        WHAT: Single point read used at request time and again at confirm
        time.

        WHY: Async sessions cannot lazy-load, and authorization needs the
        lead's organization while notification needs every stakeholder
        email. populate_existing makes a re-read inside the same session
        reflect the current row rather than the identity map.

        With for_update the quotation row stays locked (SELECT ... FOR
        UPDATE) until the transaction ends. Concurrent code requests for
        the same quotation then run their supersede-then-insert one after
        the other, so at most one code per (quotation, user) is live even
        under READ COMMITTED. SQLite ignores the clause; it serialises
        writers anyway.

        Args:
            quotation_id: Quotation ID
            for_update: Lock the quotation row for this transaction

        Returns:
            Quotation or None
        """
        result = await self.session.execute(
            self.with_relations_query(quotation_id, for_update=for_update)
        )
        return result.scalar_one_or_none()

    async def transition_from_sent(
        self,
        quotation_id: int,
        new_status: QuotationStatus,
        changed_by: int,
        changed_at: datetime,
        client_notes: Optional[str] = None,
    ) -> bool:
        """
        Move a quotation out of SENT if, and only if, it is still SENT.

        WHAT: UPDATE quotations SET ... WHERE id = :id AND status = 'SENT'.

        WHY: The status predicate is the final arbiter between concurrent
        confirmations. Whichever UPDATE runs second matches zero rows.

        Args:
            quotation_id: Quotation ID
            new_status: Terminal status to apply
            changed_by: Acting client user
            changed_at: Decision timestamp
            client_notes: Optional note stored with the decision

        Returns:
            True if the row was updated, False if it was no longer SENT
        """
        values = {
            "status": new_status,
            "status_changed_at": changed_at,
            "status_changed_by": changed_by,
            "updated_at": changed_at,
        }
        if client_notes is not None:
            values["client_notes"] = client_notes

        result = await self.session.execute(
            update(Quotation)
            .where(
                Quotation.id == quotation_id,
                Quotation.status == QuotationStatus.SENT,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
