"""Customer API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rollout.dependencies import get_db
from rollout.models.inventory import Customer, CustomerCreate, CustomerUpdate
from rollout.services import inventory

router = APIRouter(tags=["Customers"])


@router.get("/customers")
async def list_customers(
    cluster_id: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    customers = await inventory.list_customers(db, cluster_id)
    return [c.model_dump(mode="json") for c in customers]


@router.get("/customers/by-cluster")
async def customers_by_cluster(db: AsyncSession = Depends(get_db)) -> list[dict]:
    groups = await inventory.get_customers_grouped_by_cluster(db)
    return [g.model_dump(mode="json") for g in groups]


@router.post("/customers", status_code=201)
async def create_customer(body: CustomerCreate, db: AsyncSession = Depends(get_db)) -> dict:
    customer = await inventory.create_customer(db, body)
    await db.commit()
    return Customer.model_validate(customer).model_dump(mode="json")


@router.get("/customers/{customer_id}")
async def get_customer(customer_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    customer = await inventory.get_customer(db, customer_id)
    return customer.model_dump(mode="json")


@router.patch("/customers/{customer_id}")
async def update_customer(
    customer_id: str,
    body: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    customer = await inventory.update_customer(db, customer_id, body)
    await db.commit()
    return Customer.model_validate(customer).model_dump(mode="json")


@router.delete("/customers/{customer_id}", status_code=204)
async def delete_customer(customer_id: str, db: AsyncSession = Depends(get_db)) -> None:
    await inventory.delete_customer(db, customer_id)
    await db.commit()
