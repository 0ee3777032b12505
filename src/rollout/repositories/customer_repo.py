"""Customer repository."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rollout.db.models.cluster import ClusterRow
from rollout.db.models.customer import CustomerRow
from rollout.repositories.base import BaseRepository


class CustomerRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, CustomerRow)

    async def get(self, customer_id: str) -> CustomerRow | None:
        return await self.get_by_id("customer_id", customer_id)

    async def get_with_cluster(self, customer_id: str) -> tuple[CustomerRow, ClusterRow] | None:
        stmt = (
            select(CustomerRow, ClusterRow)
            .join(ClusterRow, CustomerRow.cluster_id == ClusterRow.cluster_id)
            .where(CustomerRow.customer_id == customer_id)
        )
        result = await self.session.execute(stmt)
        row = result.first()
        return (row[0], row[1]) if row else None

    async def list_active(self, customer_ids: list[str] | None = None) -> list[CustomerRow]:
        """Active customers, optionally restricted to the given ids."""
        stmt = select(CustomerRow).where(CustomerRow.is_active.is_(True))
        if customer_ids is not None:
            stmt = stmt.where(CustomerRow.customer_id.in_(customer_ids))
        result = await self.session.execute(stmt.order_by(CustomerRow.name))
        return list(result.scalars().all())

    async def list_active_with_cluster(self) -> list[tuple[CustomerRow, ClusterRow]]:
        stmt = (
            select(CustomerRow, ClusterRow)
            .join(ClusterRow, CustomerRow.cluster_id == ClusterRow.cluster_id)
            .where(CustomerRow.is_active.is_(True))
            .order_by(CustomerRow.name)
        )
        result = await self.session.execute(stmt)
        return [(c, cl) for c, cl in result.all()]

    async def list_active_by_cluster(self, cluster_id: str) -> list[CustomerRow]:
        stmt = (
            select(CustomerRow)
            .where(
                CustomerRow.cluster_id == cluster_id,
                CustomerRow.is_active.is_(True),
            )
            .order_by(CustomerRow.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_active_by_cluster(self, cluster_id: str) -> int:
        stmt = select(func.count(CustomerRow.customer_id)).where(
            CustomerRow.cluster_id == cluster_id,
            CustomerRow.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0
