"""Matrix projection: release steps grouped cluster -> customer -> step."""

from sqlalchemy.ext.asyncio import AsyncSession

from rollout.db.models.customer_step import CustomerStepRow
from rollout.errors.exceptions import NotFoundError
from rollout.models.enums import StepCategory
from rollout.models.inventory import Cluster, Customer
from rollout.models.step import ClusterSteps, CustomerStep, CustomerSteps, MatrixRow
from rollout.repositories.customer_step_repo import CustomerStepRepository
from rollout.repositories.release_repo import ReleaseRepository


def step_key(step: CustomerStepRow | CustomerStep) -> str:
    """Identity of a step across customers: its template, or itself when custom."""
    if step.template_id:
        return f"template:{step.template_id}"
    return f"custom:{step.step_id}"


def _sort_steps(steps: list[CustomerStep]) -> list[CustomerStep]:
    return sorted(steps, key=lambda s: (s.category, s.order_index))


def build_rows(customers: list[CustomerSteps]) -> dict[StepCategory, list[MatrixRow]]:
    """Distinct step identities per category, ordered by order_index, with one cell per customer."""
    rows: dict[StepCategory, list[MatrixRow]] = {}
    for category in StepCategory:
        first_seen: dict[str, CustomerStep] = {}
        for group in customers:
            for step in group.steps:
                if step.category == category:
                    first_seen.setdefault(step_key(step), step)

        axis = sorted(first_seen.items(), key=lambda item: item[1].order_index)
        category_rows = []
        for key, step in axis:
            cells = {}
            for group in customers:
                match = next((s for s in group.steps if step_key(s) == key), None)
                cells[group.customer.customer_id] = match.step_id if match else None
            category_rows.append(
                MatrixRow(
                    key=key,
                    template_id=step.template_id,
                    name=step.name,
                    category=category,
                    order_index=step.order_index,
                    is_custom=step.template_id is None,
                    cells=cells,
                )
            )
        rows[category] = category_rows
    return rows


async def get_release_steps_grouped_by_cluster(
    session: AsyncSession, release_id: str
) -> list[ClusterSteps]:
    if not await ReleaseRepository(session).get(release_id):
        raise NotFoundError("Release", release_id)

    joined = await CustomerStepRepository(session).list_with_customer_cluster(release_id)

    clusters: dict[str, tuple[Cluster, dict[str, CustomerSteps]]] = {}
    for step, customer, cluster in joined:
        _, by_customer = clusters.setdefault(
            cluster.cluster_id, (Cluster.model_validate(cluster), {})
        )
        group = by_customer.get(customer.customer_id)
        if group is None:
            group = by_customer[customer.customer_id] = CustomerSteps(
                customer=Customer.model_validate(customer), steps=[]
            )
        group.steps.append(CustomerStep.model_validate(step))

    result = []
    for cluster, by_customer in sorted(clusters.values(), key=lambda item: item[0].name):
        customers = sorted(by_customer.values(), key=lambda g: g.customer.name)
        for group in customers:
            group.steps = _sort_steps(group.steps)
        result.append(ClusterSteps(cluster=cluster, customers=customers, rows=build_rows(customers)))
    return result


async def get_release_steps_by_customer(session: AsyncSession, release_id: str) -> list[CustomerSteps]:
    """Flat customer -> steps view of a release."""
    groups = await get_release_steps_grouped_by_cluster(session, release_id)
    customers = [c for group in groups for c in group.customers]
    return sorted(customers, key=lambda g: g.customer.name)
