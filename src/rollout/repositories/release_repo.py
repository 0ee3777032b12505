"""Release repository."""

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rollout.db.base import utcnow
from rollout.db.models.release import ReleaseRow
from rollout.repositories.base import BaseRepository


class ReleaseRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ReleaseRow)

    async def get(self, release_id: str) -> ReleaseRow | None:
        return await self.get_by_id("release_id", release_id)

    async def list_all(self, status: str | None = None) -> list[ReleaseRow]:
        stmt = select(ReleaseRow)
        if status:
            stmt = stmt.where(ReleaseRow.status == status)
        result = await self.session.execute(stmt.order_by(ReleaseRow.created_at.desc()))
        return list(result.scalars().all())

    async def count_by_status(self) -> dict[str, int]:
        stmt = select(ReleaseRow.status, func.count(ReleaseRow.release_id)).group_by(ReleaseRow.status)
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def transition_status(self, release_id: str, from_status: str, to_status: str) -> bool:
        """Compare-and-set the release status.

        Returns False when the row was not in ``from_status``; the check and
        the write are one statement, so two concurrent callers cannot both win.
        """
        stmt = (
            update(ReleaseRow)
            .where(
                ReleaseRow.release_id == release_id,
                ReleaseRow.status == from_status,
            )
            .values(status=to_status, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def delete(self, release_id: str) -> None:
        await self.session.execute(delete(ReleaseRow).where(ReleaseRow.release_id == release_id))
