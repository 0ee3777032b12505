"""Customer step API routes: status transitions, overrides and custom steps."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rollout.dependencies import get_db
from rollout.models.step import (
    BulkDoneRequest,
    CustomerStep,
    CustomStepCreate,
    CustomStepInput,
    CustomStepUpdate,
    MarkDoneRequest,
    OverrideRequest,
    RevertRequest,
    SkipRequest,
)
from rollout.services import step_lifecycle

router = APIRouter(tags=["Steps"])


def _step_dict(step) -> dict:
    return CustomerStep.model_validate(step).model_dump(mode="json")


@router.get("/steps/{step_id}")
async def get_step(step_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    """Step with its customer, cluster and (if any) template."""
    detail = await step_lifecycle.get_step_detail(db, step_id)
    return detail.model_dump(mode="json")


@router.post("/steps/bulk-done")
async def bulk_mark_done(body: BulkDoneRequest, db: AsyncSession = Depends(get_db)) -> dict:
    result = await step_lifecycle.bulk_mark_done(
        db, body.step_ids, notes=body.notes, executed_by=body.executed_by
    )
    await db.commit()
    return result.model_dump()


@router.post("/steps/{step_id}/done")
async def mark_done(
    step_id: str,
    body: MarkDoneRequest | None = None,
    db: AsyncSession = Depends(get_db),
) -> dict:
    body = body or MarkDoneRequest()
    step = await step_lifecycle.mark_done(db, step_id, notes=body.notes, executed_by=body.executed_by)
    await db.commit()
    return _step_dict(step)


@router.post("/steps/{step_id}/skip")
async def skip_step(step_id: str, body: SkipRequest, db: AsyncSession = Depends(get_db)) -> dict:
    step = await step_lifecycle.skip_step(db, step_id, body.reason, executed_by=body.executed_by)
    await db.commit()
    return _step_dict(step)


@router.post("/steps/{step_id}/revert")
async def revert_step(
    step_id: str,
    body: RevertRequest | None = None,
    db: AsyncSession = Depends(get_db),
) -> dict:
    step = await step_lifecycle.revert_step(db, step_id, body.reason if body else None)
    await db.commit()
    return _step_dict(step)


@router.put("/steps/{step_id}/content")
async def override_content(
    step_id: str,
    body: OverrideRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    step = await step_lifecycle.override_content(db, step_id, body.content, name=body.name)
    await db.commit()
    return _step_dict(step)


@router.post("/steps/{step_id}/reset")
async def reset_to_template(step_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    step = await step_lifecycle.reset_to_template(db, step_id)
    await db.commit()
    return _step_dict(step)


@router.post("/releases/{release_id}/custom-steps", status_code=201)
async def add_custom_step(
    release_id: str,
    body: CustomStepCreate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    data = CustomStepInput(**body.model_dump(exclude={"customer_id"}))
    step = await step_lifecycle.add_custom_step(db, release_id, body.customer_id, data)
    await db.commit()
    return _step_dict(step)


@router.patch("/custom-steps/{step_id}")
async def edit_custom_step(
    step_id: str,
    body: CustomStepUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    step = await step_lifecycle.edit_custom_step(
        db, step_id, **body.model_dump(exclude_none=True, mode="json")
    )
    await db.commit()
    return _step_dict(step)


@router.delete("/custom-steps/{step_id}", status_code=204)
async def delete_custom_step(step_id: str, db: AsyncSession = Depends(get_db)) -> None:
    await step_lifecycle.delete_custom_step(db, step_id)
    await db.commit()
