"""Row builders shared by the service-level tests."""

from sqlalchemy.ext.asyncio import AsyncSession

from rollout.models.enums import ReleaseType, StepCategory, StepType
from rollout.models.inventory import ClusterCreate, CustomerCreate
from rollout.models.release import ReleaseCreate
from rollout.services import inventory, release_service, template_manager


async def seed_cluster(session: AsyncSession, name: str = "prod-eu") -> str:
    cluster = await inventory.create_cluster(session, ClusterCreate(name=name))
    return cluster.cluster_id


async def seed_customer(session: AsyncSession, cluster_id: str, namespace: str, name: str | None = None) -> str:
    customer = await inventory.create_customer(
        session,
        CustomerCreate(cluster_id=cluster_id, namespace=namespace, name=name or namespace.title()),
    )
    return customer.customer_id


async def seed_release(session: AsyncSession, name: str = "R1", type: ReleaseType = ReleaseType.RELEASE) -> str:
    release = await release_service.create_release(session, ReleaseCreate(name=name, type=type))
    return release.release_id


async def seed_template(
    session: AsyncSession,
    release_id: str,
    name: str,
    category: StepCategory = StepCategory.DEPLOY,
    content: str | None = None,
) -> str:
    template = await template_manager.add_template(
        session,
        release_id,
        category=category.value,
        name=name,
        type=StepType.BASH.value,
        content=content or f"echo {name}",
    )
    return template.template_id
