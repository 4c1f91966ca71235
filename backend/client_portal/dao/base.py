"""
Shared DAO plumbing.

WHY: Every table in the decision workflow is written inside a transaction
owned by a service (see db.session.transaction). DAOs therefore never
commit: they add, flush and read, and the enclosing transaction decides.
"""

from typing import Any, Generic, Optional, Type, TypeVar
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from client_portal.models.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseDAO(Generic[ModelT]):
    """
    Create, fetch and count rows of one mapped class.

    Subclasses pass their model to __init__ and add the queries their
    service needs.
    """

    def __init__(self, model: Type[ModelT], session: AsyncSession):
        self.model = model
        self.session = session

    async def create(self, **values: Any) -> ModelT:
        """
        Insert a row and flush it.

        Server defaults and the primary key are loaded back before
        returning, so callers can use `row.id` straight away.

        Args:
            **values: Column values

        Returns:
            The persisted (uncommitted) instance

        Raises:
            IntegrityError: On a unique or foreign key violation
        """
        row = self.model(**values)
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return row

    async def get_by_id(self, row_id: int) -> Optional[ModelT]:
        """Row with the given primary key, or None."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == row_id)
        )
        return result.scalar_one_or_none()

    async def count(self, **filters: Any) -> int:
        """
        Number of rows whose columns equal the given values.

        Unknown column names raise AttributeError rather than being ignored.
        """
        query = select(func.count()).select_from(self.model)
        for column, value in filters.items():
            query = query.where(getattr(self.model, column) == value)

        result = await self.session.execute(query)
        return result.scalar_one()
