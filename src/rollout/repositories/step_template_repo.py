"""Step template repository."""

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rollout.db.models.step_template import StepTemplateRow
from rollout.repositories.base import BaseRepository


class StepTemplateRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, StepTemplateRow)

    async def get(self, template_id: str) -> StepTemplateRow | None:
        return await self.get_by_id("template_id", template_id)

    async def list_by_release(
        self, release_id: str, category: str | None = None
    ) -> list[StepTemplateRow]:
        stmt = select(StepTemplateRow).where(StepTemplateRow.release_id == release_id)
        if category:
            stmt = stmt.where(StepTemplateRow.category == category)
        stmt = stmt.order_by(StepTemplateRow.category, StepTemplateRow.order_index)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def max_order_index(self, release_id: str, category: str) -> int | None:
        stmt = select(func.max(StepTemplateRow.order_index)).where(
            StepTemplateRow.release_id == release_id,
            StepTemplateRow.category == category,
        )
        result = await self.session.execute(stmt)
        return result.scalar()

    async def set_order_index(self, template_id: str, order_index: int) -> None:
        stmt = (
            update(StepTemplateRow)
            .where(StepTemplateRow.template_id == template_id)
            .values(order_index=order_index)
        )
        await self.session.execute(stmt)

    async def delete(self, template_id: str) -> None:
        await self.session.execute(
            delete(StepTemplateRow).where(StepTemplateRow.template_id == template_id)
        )

    async def delete_by_release(self, release_id: str) -> int:
        result = await self.session.execute(
            delete(StepTemplateRow).where(StepTemplateRow.release_id == release_id)
        )
        return result.rowcount
