"""Activation engine: expands a release's templates into per-customer steps."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from rollout.db.models.customer import CustomerRow
from rollout.db.models.step_template import StepTemplateRow
from rollout.errors.exceptions import InvalidStateError, NotFoundError, ValidationError
from rollout.models.enums import ReleaseStatus, StepStatus
from rollout.models.release import ActivationResult
from rollout.repositories.customer_repo import CustomerRepository
from rollout.repositories.customer_step_repo import CustomerStepRepository
from rollout.repositories.release_repo import ReleaseRepository
from rollout.repositories.step_template_repo import StepTemplateRepository
from rollout.services.id_generator import STEP_PREFIX, generate_id

logger = logging.getLogger(__name__)


def build_customer_steps(
    release_id: str,
    customers: list[CustomerRow],
    templates: list[StepTemplateRow],
) -> list[dict]:
    """One pending step per (customer, template), copying the template's shape."""
    return [
        {
            "step_id": generate_id(STEP_PREFIX),
            "release_id": release_id,
            "customer_id": customer.customer_id,
            "template_id": template.template_id,
            "name": template.name,
            "category": template.category,
            "type": template.type,
            "content": template.content,
            "order_index": template.order_index,
            "status": StepStatus.PENDING.value,
            "is_custom": False,
            "is_overridden": False,
        }
        for customer in customers
        for template in templates
    ]


async def activate_release(
    session: AsyncSession,
    release_id: str,
    customer_ids: list[str] | None = None,
) -> ActivationResult:
    """Move a draft release to active and materialize its steps.

    ``customer_ids`` is intersected with the active customers; omitted, every
    active customer is targeted. The status flip is a compare-and-set on
    ``draft`` and shares the caller's transaction with the step inserts, so
    either both land on commit or neither does.
    """
    release_repo = ReleaseRepository(session)
    release = await release_repo.get(release_id)
    if not release:
        raise NotFoundError("Release", release_id)
    if release.status != ReleaseStatus.DRAFT:
        raise InvalidStateError(
            f"Release '{release_id}' is not in draft status",
            details={"status": release.status},
        )

    if not await release_repo.transition_status(
        release_id, ReleaseStatus.DRAFT.value, ReleaseStatus.ACTIVE.value
    ):
        raise InvalidStateError(f"Release '{release_id}' was activated concurrently")

    customers = await CustomerRepository(session).list_active(customer_ids)
    templates = await StepTemplateRepository(session).list_by_release(release_id)
    rows = build_customer_steps(release_id, customers, templates)
    await CustomerStepRepository(session).create_many(rows)

    logger.info(
        "Activated release %s: %d customers x %d templates = %d steps",
        release_id, len(customers), len(templates), len(rows),
    )
    return ActivationResult(
        release_id=release_id,
        customer_ids=[c.customer_id for c in customers],
        steps_created=len(rows),
    )


async def add_customers_to_release(
    session: AsyncSession,
    release_id: str,
    customer_ids: list[str],
) -> ActivationResult:
    """Materialize the release's current templates for customers not yet in it.

    Later customers get the template set as it is now, which may differ from
    what earlier customers received.
    """
    release = await ReleaseRepository(session).get(release_id)
    if not release:
        raise NotFoundError("Release", release_id)
    if release.status != ReleaseStatus.ACTIVE:
        raise InvalidStateError(
            f"Release '{release_id}' is not active",
            details={"status": release.status},
        )

    step_repo = CustomerStepRepository(session)
    present = await step_repo.customer_ids_for_release(release_id)
    requested = [cid for cid in dict.fromkeys(customer_ids) if cid not in present]
    customers = await CustomerRepository(session).list_active(requested) if requested else []
    if not customers:
        raise ValidationError(
            "All selected customers are already part of this release",
            details={"customer_ids": customer_ids},
        )

    templates = await StepTemplateRepository(session).list_by_release(release_id)
    rows = build_customer_steps(release_id, customers, templates)
    await step_repo.create_many(rows)

    logger.info("Added %d customers to release %s (%d steps)", len(customers), release_id, len(rows))
    return ActivationResult(
        release_id=release_id,
        customer_ids=[c.customer_id for c in customers],
        steps_created=len(rows),
    )


async def release_customer_ids(session: AsyncSession, release_id: str) -> list[str]:
    """Customers that already hold steps in the release."""
    if not await ReleaseRepository(session).get(release_id):
        raise NotFoundError("Release", release_id)
    return sorted(await CustomerStepRepository(session).customer_ids_for_release(release_id))
