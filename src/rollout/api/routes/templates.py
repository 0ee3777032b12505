"""Step template API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rollout.dependencies import get_db
from rollout.models.enums import StepCategory
from rollout.models.release import ReorderRequest, StepTemplate, TemplateCreate, TemplateUpdate
from rollout.services import template_manager

router = APIRouter(tags=["Templates"])


def _template_dict(template) -> dict:
    return StepTemplate.model_validate(template).model_dump(mode="json")


@router.get("/releases/{release_id}/templates")
async def list_templates(
    release_id: str,
    category: StepCategory | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    templates = await template_manager.list_templates(
        db, release_id, category.value if category else None
    )
    return [_template_dict(t) for t in templates]


@router.post("/releases/{release_id}/templates", status_code=201)
async def add_template(
    release_id: str,
    body: TemplateCreate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    template = await template_manager.add_template(
        db,
        release_id,
        category=body.category.value,
        name=body.name,
        type=body.type.value,
        content=body.content,
        description=body.description,
    )
    await db.commit()
    return _template_dict(template)


@router.post("/templates/reorder")
async def reorder_templates(body: ReorderRequest, db: AsyncSession = Depends(get_db)) -> list[dict]:
    templates = await template_manager.reorder_templates(
        db, body.release_id, body.category.value, body.ordered_ids
    )
    await db.commit()
    return [_template_dict(t) for t in templates]


@router.patch("/templates/{template_id}")
async def update_template(
    template_id: str,
    body: TemplateUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    template = await template_manager.update_template(
        db, template_id, **body.model_dump(exclude_none=True, mode="json")
    )
    await db.commit()
    return _template_dict(template)


@router.delete("/templates/{template_id}", status_code=204)
async def delete_template(template_id: str, db: AsyncSession = Depends(get_db)) -> None:
    await template_manager.delete_template(db, template_id)
    await db.commit()
