"""Customer step repository."""

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rollout.db.models.cluster import ClusterRow
from rollout.db.models.customer import CustomerRow
from rollout.db.models.customer_step import CustomerStepRow
from rollout.db.models.step_template import StepTemplateRow
from rollout.repositories.base import BaseRepository


class CustomerStepRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, CustomerStepRow)

    async def get(self, step_id: str) -> CustomerStepRow | None:
        return await self.get_by_id("step_id", step_id)

    async def list_by_release(
        self, release_id: str, customer_id: str | None = None
    ) -> list[CustomerStepRow]:
        stmt = select(CustomerStepRow).where(CustomerStepRow.release_id == release_id)
        if customer_id:
            stmt = stmt.where(CustomerStepRow.customer_id == customer_id)
        stmt = stmt.order_by(CustomerStepRow.category, CustomerStepRow.order_index)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_with_customer_cluster(
        self, release_id: str
    ) -> list[tuple[CustomerStepRow, CustomerRow, ClusterRow]]:
        """Release steps joined to their customer and that customer's cluster."""
        stmt = (
            select(CustomerStepRow, CustomerRow, ClusterRow)
            .join(CustomerRow, CustomerStepRow.customer_id == CustomerRow.customer_id)
            .join(ClusterRow, CustomerRow.cluster_id == ClusterRow.cluster_id)
            .where(CustomerStepRow.release_id == release_id)
            .order_by(CustomerStepRow.category, CustomerStepRow.order_index)
        )
        result = await self.session.execute(stmt)
        return [(s, c, cl) for s, c, cl in result.all()]

    async def get_detail(
        self, step_id: str
    ) -> tuple[CustomerStepRow, CustomerRow, ClusterRow, StepTemplateRow | None] | None:
        stmt = (
            select(CustomerStepRow, CustomerRow, ClusterRow, StepTemplateRow)
            .join(CustomerRow, CustomerStepRow.customer_id == CustomerRow.customer_id)
            .join(ClusterRow, CustomerRow.cluster_id == ClusterRow.cluster_id)
            .outerjoin(StepTemplateRow, CustomerStepRow.template_id == StepTemplateRow.template_id)
            .where(CustomerStepRow.step_id == step_id)
        )
        result = await self.session.execute(stmt)
        row = result.first()
        return tuple(row) if row else None

    async def customer_ids_for_release(self, release_id: str) -> set[str]:
        stmt = select(CustomerStepRow.customer_id).where(
            CustomerStepRow.release_id == release_id
        ).distinct()
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def status_counts(self, release_id: str | None = None) -> dict[str, int]:
        stmt = select(CustomerStepRow.status, func.count(CustomerStepRow.step_id))
        if release_id:
            stmt = stmt.where(CustomerStepRow.release_id == release_id)
        result = await self.session.execute(stmt.group_by(CustomerStepRow.status))
        return {status: count for status, count in result.all()}

    async def set_order_index_for_template(
        self, template_id: str, category: str, order_index: float
    ) -> int:
        stmt = (
            update(CustomerStepRow)
            .where(
                CustomerStepRow.template_id == template_id,
                CustomerStepRow.category == category,
            )
            .values(order_index=order_index)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def propagate_template_fields(self, template_id: str, **values) -> int:
        """Copy template edits onto steps that are still pending and not overridden."""
        stmt = (
            update(CustomerStepRow)
            .where(
                CustomerStepRow.template_id == template_id,
                CustomerStepRow.status == "pending",
                CustomerStepRow.is_overridden.is_(False),
            )
            .values(**values)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def delete_pending_for_template(self, template_id: str) -> int:
        stmt = delete(CustomerStepRow).where(
            CustomerStepRow.template_id == template_id,
            CustomerStepRow.status == "pending",
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def detach_template(self, template_id: str) -> int:
        stmt = (
            update(CustomerStepRow)
            .where(CustomerStepRow.template_id == template_id)
            .values(template_id=None)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def delete_by_release(self, release_id: str) -> int:
        result = await self.session.execute(
            delete(CustomerStepRow).where(CustomerStepRow.release_id == release_id)
        )
        return result.rowcount
