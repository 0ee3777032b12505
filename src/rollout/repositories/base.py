"""Base repository with common CRUD operations."""

from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rollout.db.base import Base
from rollout.errors.exceptions import ConstraintViolationError

T = TypeVar("T", bound=Base)


class BaseRepository:
    """Generic async repository for SQLAlchemy models."""

    def __init__(self, session: AsyncSession, model_class: type[T]):
        self.session = session
        self.model_class = model_class

    async def flush(self) -> None:
        """Flush pending writes, surfacing store constraint failures as ConstraintViolationError."""
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConstraintViolationError(
                f"{self.model_class.__tablename__} constraint violated",
                details=str(exc.orig),
            ) from exc

    async def get_by_id(self, pk_field: str, pk_value: str) -> T | None:
        """Get a single record by primary key."""
        stmt = select(self.model_class).where(
            getattr(self.model_class, pk_field) == pk_value
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> T:
        """Create and persist a new record."""
        row = self.model_class(**kwargs)
        self.session.add(row)
        await self.flush()
        return row

    async def create_many(self, rows: list[dict[str, Any]]) -> list[T]:
        """Insert several records in one flush."""
        objs = [self.model_class(**values) for values in rows]
        if objs:
            self.session.add_all(objs)
            await self.flush()
        return objs

    async def update(self, row: T, **kwargs: Any) -> T:
        """Update an existing record."""
        for key, value in kwargs.items():
            setattr(row, key, value)
        await self.flush()
        return row

    async def delete_row(self, row: T) -> None:
        await self.session.delete(row)
        await self.flush()
