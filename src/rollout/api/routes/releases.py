"""Release API routes: catalogue, activation and read-side views."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rollout.dependencies import get_db
from rollout.models.enums import ReleaseStatus
from rollout.models.release import (
    ActivateRequest,
    AddCustomersRequest,
    CloneRequest,
    Release,
    ReleaseCreate,
    ReleaseUpdate,
)
from rollout.models.step import CustomerStep
from rollout.services import activation, matrix, release_service, step_lifecycle

router = APIRouter(tags=["Releases"])


def _release_dict(release) -> dict:
    return Release.model_validate(release).model_dump(mode="json")


@router.get("/releases")
async def list_releases(
    status: ReleaseStatus | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    releases = await release_service.list_releases(db, status.value if status else None)
    return [_release_dict(r) for r in releases]


@router.post("/releases", status_code=201)
async def create_release(body: ReleaseCreate, db: AsyncSession = Depends(get_db)) -> dict:
    release = await release_service.create_release(db, body)
    await db.commit()
    return _release_dict(release)


@router.get("/releases/{release_id}")
async def get_release(release_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    release = await release_service.get_release(db, release_id)
    return release.model_dump(mode="json")


@router.patch("/releases/{release_id}")
async def update_release(
    release_id: str,
    body: ReleaseUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    release = await release_service.update_release(db, release_id, body)
    await db.commit()
    return _release_dict(release)


@router.delete("/releases/{release_id}", status_code=204)
async def delete_release(release_id: str, db: AsyncSession = Depends(get_db)) -> None:
    await release_service.delete_release(db, release_id)
    await db.commit()


@router.post("/releases/{release_id}/activate")
async def activate_release(
    release_id: str,
    body: ActivateRequest | None = None,
    db: AsyncSession = Depends(get_db),
) -> dict:
    result = await activation.activate_release(
        db, release_id, body.customer_ids if body else None
    )
    await db.commit()
    return result.model_dump(mode="json")


@router.get("/releases/{release_id}/customers")
async def list_release_customers(release_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    customer_ids = await activation.release_customer_ids(db, release_id)
    return {"release_id": release_id, "customer_ids": customer_ids}


@router.post("/releases/{release_id}/customers", status_code=201)
async def add_customers(
    release_id: str,
    body: AddCustomersRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    result = await activation.add_customers_to_release(db, release_id, body.customer_ids)
    await db.commit()
    return result.model_dump(mode="json")


@router.post("/releases/{release_id}/archive")
async def archive_release(release_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    release = await release_service.archive_release(db, release_id)
    await db.commit()
    return _release_dict(release)


@router.post("/releases/{release_id}/clone", status_code=201)
async def clone_release(
    release_id: str,
    body: CloneRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    clone = await release_service.clone_release(db, release_id, body.name)
    await db.commit()
    return _release_dict(clone)


@router.get("/releases/{release_id}/stats")
async def release_stats(release_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    stats = await step_lifecycle.get_step_stats(db, release_id)
    return stats.model_dump()


@router.get("/releases/{release_id}/matrix")
async def release_matrix(
    release_id: str,
    view: str = Query("cluster", pattern="^(cluster|customer)$"),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    """Release steps grouped by cluster (with the matrix row axis) or flat by customer."""
    if view == "customer":
        groups = await matrix.get_release_steps_by_customer(db, release_id)
    else:
        groups = await matrix.get_release_steps_grouped_by_cluster(db, release_id)
    return [g.model_dump(mode="json") for g in groups]


@router.get("/releases/{release_id}/customers/{customer_id}/steps")
async def list_customer_steps(
    release_id: str,
    customer_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    steps = await step_lifecycle.list_customer_steps(db, release_id, customer_id)
    return [CustomerStep.model_validate(s).model_dump(mode="json") for s in steps]


@router.get("/dashboard/stats")
async def dashboard_stats(db: AsyncSession = Depends(get_db)) -> dict:
    stats = await release_service.get_dashboard_stats(db)
    return stats.model_dump()
