"""Cluster API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rollout.dependencies import get_db
from rollout.models.inventory import Cluster, ClusterCreate, ClusterUpdate
from rollout.services import inventory

router = APIRouter(tags=["Clusters"])


@router.get("/clusters")
async def list_clusters(db: AsyncSession = Depends(get_db)) -> list[dict]:
    clusters = await inventory.list_clusters(db)
    return [Cluster.model_validate(c).model_dump(mode="json") for c in clusters]


@router.post("/clusters", status_code=201)
async def create_cluster(body: ClusterCreate, db: AsyncSession = Depends(get_db)) -> dict:
    cluster = await inventory.create_cluster(db, body)
    await db.commit()
    return Cluster.model_validate(cluster).model_dump(mode="json")


@router.get("/clusters/{cluster_id}")
async def get_cluster(cluster_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    """Cluster with its active customers."""
    cluster = await inventory.get_cluster_with_customers(db, cluster_id)
    return cluster.model_dump(mode="json")


@router.patch("/clusters/{cluster_id}")
async def update_cluster(
    cluster_id: str,
    body: ClusterUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    cluster = await inventory.update_cluster(db, cluster_id, body)
    await db.commit()
    return Cluster.model_validate(cluster).model_dump(mode="json")


@router.delete("/clusters/{cluster_id}", status_code=204)
async def delete_cluster(cluster_id: str, db: AsyncSession = Depends(get_db)) -> None:
    await inventory.delete_cluster(db, cluster_id)
    await db.commit()
