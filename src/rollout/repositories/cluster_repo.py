"""Cluster repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rollout.db.models.cluster import ClusterRow
from rollout.repositories.base import BaseRepository


class ClusterRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ClusterRow)

    async def get(self, cluster_id: str) -> ClusterRow | None:
        return await self.get_by_id("cluster_id", cluster_id)

    async def list_active(self) -> list[ClusterRow]:
        stmt = (
            select(ClusterRow)
            .where(ClusterRow.is_active.is_(True))
            .order_by(ClusterRow.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
