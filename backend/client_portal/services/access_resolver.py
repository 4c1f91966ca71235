"""
Client access resolution.

WHAT: Maps a verified user id to the organization (and optionally the
lead) whose quotations the user may act on.

WHY: Authentication only says who the caller is. Every quotation decision
also needs to know that the caller is an active client of the organization
that owns the quotation, and nothing here should trust ids supplied by the
caller beyond the user id.

HOW: resolve() loads the user through UserDAO and raises
ClientNotFoundError unless it is an active CLIENT. can_access() is a pure
check against a quotation whose lead is already loaded.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from client_portal.core.exceptions import ClientNotFoundError
from client_portal.dao.user import UserDAO
from client_portal.models import Quotation, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessContext:
    """
    What a client user is allowed to see.

    Attributes:
        user_id: Client user ID
        organization_id: Owning organization, or None for an unlinked user
        lead_id: Set when the user is scoped to a single lead
    """

    user_id: int
    organization_id: Optional[int]
    lead_id: Optional[int] = None


class AccessResolver:
    """Resolves client users to their access scope."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_dao = UserDAO(session)

    async def get_client(self, user_id: int) -> User:
        """
        Load an active client user.

        Raises:
            ClientNotFoundError: Missing, internal or inactive user
        """
        user = await self.user_dao.get_active_client(user_id)
        if user is None:
            logger.info(
                "Client resolution failed",
                extra={"user_id": user_id},
            )
            raise ClientNotFoundError(user_id=user_id)
        return user

    async def resolve(self, user_id: int) -> AccessContext:
        """
        Resolve a user id into an AccessContext.

        Args:
            user_id: Verified user ID from the identity layer

        Returns:
            AccessContext for the user

        Raises:
            ClientNotFoundError: Missing, internal or inactive user
        """
        user = await self.get_client(user_id)
        return self.context_for(user)

    @staticmethod
    def context_for(user: User) -> AccessContext:
        """Build the AccessContext of an already loaded client user."""
        return AccessContext(
            user_id=user.id,
            organization_id=user.org_id,
            lead_id=user.lead_id,
        )

    @staticmethod
    def can_access(context: AccessContext, quotation: Quotation) -> bool:
        """
        Check whether a context may act on a quotation.

        The quotation's lead must belong to the context's organization and,
        for a lead-scoped context, must be that lead. A context without an
        organization can access nothing.

        Args:
            context: Caller's access context
            quotation: Quotation with its lead loaded

        Returns:
            True if access is allowed
        """
        if context.organization_id is None:
            return False
        if quotation.organization_id != context.organization_id:
            return False
        if context.lead_id is not None and quotation.lead_id != context.lead_id:
            return False
        return True
