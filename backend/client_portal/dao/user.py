"""
User Data Access Object.

WHY: UserDAO provides database operations for the User model: active
client lookups for access resolution and email lookups for client
account provisioning.
"""

from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from client_portal.dao.base import BaseDAO
from client_portal.models import User, UserRole


class UserDAO(BaseDAO[User]):
    """Data Access Object for User model."""

    def __init__(self, session: AsyncSession):
        """Initialize UserDAO with session."""
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Retrieve user by email address.

        Case-insensitive, so user@example.com and USER@EXAMPLE.COM are the
        same account.

        Args:
            email: User's email address

        Returns:
            User instance if found, None otherwise
        """
        result = await self.session.execute(
            select(User)
            .where(func.lower(User.email) == email.lower())
            .order_by(User.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_active_client(self, user_id: int) -> Optional[User]:
        """
        Retrieve a user only if it is an active CLIENT.

        Args:
            user_id: User ID

        Returns:
            User instance, or None for missing, internal or inactive users
        """
        result = await self.session.execute(
            select(User).where(
                User.id == user_id,
                User.role == UserRole.CLIENT,
                User.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()
