"""Clusters and the customer namespaces they host."""

from sqlalchemy.ext.asyncio import AsyncSession

from rollout.db.models.cluster import ClusterRow
from rollout.db.models.customer import CustomerRow
from rollout.errors.exceptions import NotFoundError, ValidationError
from rollout.models.inventory import (
    Cluster,
    ClusterCreate,
    ClusterCustomers,
    ClusterUpdate,
    ClusterWithCustomers,
    Customer,
    CustomerCreate,
    CustomerUpdate,
    CustomerWithCluster,
)
from rollout.repositories.cluster_repo import ClusterRepository
from rollout.repositories.customer_repo import CustomerRepository
from rollout.services.id_generator import CLUSTER_PREFIX, CUSTOMER_PREFIX, generate_id


def _columns(data: dict) -> dict:
    if "metadata" in data:
        data["metadata_"] = data.pop("metadata")
    return data


async def get_cluster(session: AsyncSession, cluster_id: str) -> ClusterRow:
    cluster = await ClusterRepository(session).get(cluster_id)
    if not cluster:
        raise NotFoundError("Cluster", cluster_id)
    return cluster


async def create_cluster(session: AsyncSession, data: ClusterCreate) -> ClusterRow:
    return await ClusterRepository(session).create(
        cluster_id=generate_id(CLUSTER_PREFIX),
        is_active=True,
        **_columns(data.model_dump()),
    )


async def update_cluster(session: AsyncSession, cluster_id: str, data: ClusterUpdate) -> ClusterRow:
    cluster = await get_cluster(session, cluster_id)
    return await ClusterRepository(session).update(
        cluster, **_columns(data.model_dump(exclude_unset=True))
    )


async def delete_cluster(session: AsyncSession, cluster_id: str) -> None:
    """Deactivate a cluster; refused while it still hosts active customers."""
    cluster = await get_cluster(session, cluster_id)
    active = await CustomerRepository(session).count_active_by_cluster(cluster_id)
    if active > 0:
        raise ValidationError(
            f"Cannot delete cluster: {active} active customer(s) exist",
            details={"active_customers": active},
        )
    await ClusterRepository(session).update(cluster, is_active=False)


async def list_clusters(session: AsyncSession) -> list[ClusterRow]:
    return await ClusterRepository(session).list_active()


async def get_cluster_with_customers(session: AsyncSession, cluster_id: str) -> ClusterWithCustomers:
    cluster = await get_cluster(session, cluster_id)
    customers = await CustomerRepository(session).list_active_by_cluster(cluster_id)
    out = ClusterWithCustomers.model_validate(cluster)
    out.customers = [Customer.model_validate(c) for c in customers]
    return out


async def get_customer(session: AsyncSession, customer_id: str) -> CustomerWithCluster:
    row = await CustomerRepository(session).get_with_cluster(customer_id)
    if not row:
        raise NotFoundError("Customer", customer_id)
    customer, cluster = row
    return CustomerWithCluster(
        **Customer.model_validate(customer).model_dump(),
        cluster=Cluster.model_validate(cluster),
    )


async def _require_active_cluster(session: AsyncSession, cluster_id: str) -> None:
    cluster = await get_cluster(session, cluster_id)
    if not cluster.is_active:
        raise ValidationError(f"Cluster '{cluster_id}' is inactive")


async def create_customer(session: AsyncSession, data: CustomerCreate) -> CustomerRow:
    await _require_active_cluster(session, data.cluster_id)
    return await CustomerRepository(session).create(
        customer_id=generate_id(CUSTOMER_PREFIX),
        is_active=True,
        **_columns(data.model_dump()),
    )


async def update_customer(session: AsyncSession, customer_id: str, data: CustomerUpdate) -> CustomerRow:
    repo = CustomerRepository(session)
    customer = await repo.get(customer_id)
    if not customer:
        raise NotFoundError("Customer", customer_id)
    changes = _columns(data.model_dump(exclude_unset=True))
    if changes.get("cluster_id"):
        await _require_active_cluster(session, changes["cluster_id"])
    return await repo.update(customer, **changes)


async def delete_customer(session: AsyncSession, customer_id: str) -> None:
    """Deactivate a customer; its steps in existing releases remain."""
    repo = CustomerRepository(session)
    customer = await repo.get(customer_id)
    if not customer:
        raise NotFoundError("Customer", customer_id)
    await repo.update(customer, is_active=False)


async def list_customers(session: AsyncSession, cluster_id: str | None = None) -> list[CustomerWithCluster]:
    pairs = await CustomerRepository(session).list_active_with_cluster()
    return [
        CustomerWithCluster(
            **Customer.model_validate(c).model_dump(),
            cluster=Cluster.model_validate(cl),
        )
        for c, cl in pairs
        if cluster_id is None or c.cluster_id == cluster_id
    ]


async def get_customers_grouped_by_cluster(session: AsyncSession) -> list[ClusterCustomers]:
    groups: dict[str, ClusterCustomers] = {}
    for customer, cluster in await CustomerRepository(session).list_active_with_cluster():
        group = groups.get(cluster.cluster_id)
        if group is None:
            group = groups[cluster.cluster_id] = ClusterCustomers(
                cluster=Cluster.model_validate(cluster), customers=[]
            )
        group.customers.append(Customer.model_validate(customer))
    return sorted(groups.values(), key=lambda g: g.cluster.name)
