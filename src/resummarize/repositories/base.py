"""
Base Repository

Owner-scoped async SQLAlchemy access for models carrying ``id`` and
``user_id`` columns. Every read is filtered by owner, so a query can
never return another user's rows. Sessions are managed by the caller.
"""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from resummarize.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class OwnedRepository(Generic[ModelType]):
    """
    Reads and writes rows belonging to one user.

    Usage:
        class NoteRepository(OwnedRepository[Note]):
            def __init__(self):
                super().__init__(Note, order_by=(Note.updated_at.desc(),))

    Args:
        model: Mapped class with ``id`` and ``user_id`` columns.
        order_by: Ordering applied to every listing.
    """

    def __init__(self, model: type[ModelType], order_by: Sequence[Any] = ()):
        self.model = model
        self.order_by = tuple(order_by)

    def owned_by(self, user_id: str) -> Select[tuple[ModelType]]:
        return select(self.model).where(self.model.user_id == user_id)  # type: ignore[attr-defined]

    async def list_owned(
        self,
        session: AsyncSession,
        user_id: str,
        *criteria: Any,
    ) -> Sequence[ModelType]:
        """Owner's rows matching ``criteria``, in the repository's order."""
        stmt = self.owned_by(user_id).where(*criteria).order_by(*self.order_by)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_owned(self, session: AsyncSession, user_id: str, id: Any) -> ModelType | None:
        """Row ``id`` if it belongs to ``user_id``, else None."""
        stmt = self.owned_by(user_id).where(self.model.id == id)  # type: ignore[attr-defined]
        result = await session.execute(stmt)
        return result.scalars().first()

    async def create(self, session: AsyncSession, values: dict[str, Any]) -> ModelType:
        db_obj = self.model(**values)
        session.add(db_obj)
        await session.commit()
        await session.refresh(db_obj)  # server defaults (id, timestamps)
        return db_obj

    async def update(
        self,
        session: AsyncSession,
        db_obj: ModelType,
        values: dict[str, Any],
    ) -> ModelType:
        for field, value in values.items():
            setattr(db_obj, field, value)
        await session.commit()
        await session.refresh(db_obj)
        return db_obj

    async def delete(self, session: AsyncSession, db_obj: ModelType) -> None:
        """Hard delete: notes have no soft-delete state."""
        await session.delete(db_obj)
        await session.commit()
