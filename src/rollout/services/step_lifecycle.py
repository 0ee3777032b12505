"""Step lifecycle manager: status transitions and content edits on customer steps.

State machine::

    pending  --mark_done-->  done
    pending  --skip------->  skipped
    done | skipped | reverted  --revert-->  reverted
    reverted --mark_done / skip--> done / skipped

Content edits (override, reset, custom-step edits) are independent of status.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from rollout.db.models.customer_step import CustomerStepRow
from rollout.errors.exceptions import InvalidStateError, NotFoundError, RolloutError, ValidationError
from rollout.models.enums import ReleaseStatus, StepStatus
from rollout.models.inventory import Cluster, Customer
from rollout.models.release import StepTemplate
from rollout.models.step import BulkResult, CustomerStep, CustomStepInput, StepDetail, StepStats
from rollout.repositories.customer_repo import CustomerRepository
from rollout.repositories.customer_step_repo import CustomerStepRepository
from rollout.repositories.release_repo import ReleaseRepository
from rollout.repositories.step_template_repo import StepTemplateRepository
from rollout.services.id_generator import STEP_PREFIX, generate_id
from rollout.services.template_manager import add_template

logger = logging.getLogger(__name__)

_ACTIONABLE = {StepStatus.PENDING, StepStatus.REVERTED}
_REVERTIBLE = {StepStatus.DONE, StepStatus.SKIPPED, StepStatus.REVERTED}


async def _get_step(session: AsyncSession, step_id: str) -> CustomerStepRow:
    step = await CustomerStepRepository(session).get(step_id)
    if not step:
        raise NotFoundError("CustomerStep", step_id)
    return step


def _require_status(step: CustomerStepRow, allowed: set[StepStatus], action: str) -> None:
    if step.status not in allowed:
        raise InvalidStateError(
            f"Cannot {action} step '{step.step_id}' in status '{step.status}'",
            details={"status": step.status, "allowed": sorted(allowed)},
        )


async def mark_done(
    session: AsyncSession,
    step_id: str,
    notes: str | None = None,
    executed_by: str | None = None,
) -> CustomerStepRow:
    step = await _get_step(session, step_id)
    _require_status(step, _ACTIONABLE, "mark done")
    return await CustomerStepRepository(session).update(
        step,
        status=StepStatus.DONE.value,
        executed_at=datetime.now(timezone.utc),
        executed_by=executed_by,
        notes=notes,
    )


async def skip_step(
    session: AsyncSession,
    step_id: str,
    reason: str,
    executed_by: str | None = None,
) -> CustomerStepRow:
    step = await _get_step(session, step_id)
    _require_status(step, _ACTIONABLE, "skip")
    return await CustomerStepRepository(session).update(
        step,
        status=StepStatus.SKIPPED.value,
        skip_reason=reason,
        executed_by=executed_by,
    )


async def revert_step(session: AsyncSession, step_id: str, reason: str | None = None) -> CustomerStepRow:
    """Mark an executed or skipped step as reverted.

    ``executed_at`` and ``executed_by`` are left as they were so the step
    still shows when it last ran.
    """
    step = await _get_step(session, step_id)
    _require_status(step, _REVERTIBLE, "revert")
    return await CustomerStepRepository(session).update(
        step,
        status=StepStatus.REVERTED.value,
        notes=reason,
    )


async def bulk_mark_done(
    session: AsyncSession,
    step_ids: list[str],
    notes: str | None = None,
    executed_by: str | None = None,
) -> BulkResult:
    """Apply mark_done to each id independently; failures do not undo the others."""
    result = BulkResult()
    for step_id in dict.fromkeys(step_ids):
        try:
            await mark_done(session, step_id, notes=notes, executed_by=executed_by)
        except RolloutError as exc:
            result.failed[step_id] = exc.code
        else:
            result.succeeded.append(step_id)
    if result.failed:
        logger.warning("Bulk mark-done: %d ok, %d failed", len(result.succeeded), len(result.failed))
    return result


async def override_content(
    session: AsyncSession,
    step_id: str,
    content: str,
    name: str | None = None,
) -> CustomerStepRow:
    """Replace a template-derived step's content for this customer only."""
    step = await _get_step(session, step_id)
    if step.is_custom:
        raise ValidationError(
            f"Step '{step_id}' is a custom step; edit it instead of overriding",
        )
    fields = {"content": content, "is_overridden": True}
    if name is not None:
        fields["name"] = name
    return await CustomerStepRepository(session).update(step, **fields)


async def reset_to_template(session: AsyncSession, step_id: str) -> CustomerStepRow:
    """Copy name and content back from the live template and drop the override flag."""
    step = await _get_step(session, step_id)
    template = None
    if step.template_id:
        template = await StepTemplateRepository(session).get(step.template_id)
    if not template:
        raise NotFoundError("StepTemplate", step.template_id or f"(none for step {step_id})")
    return await CustomerStepRepository(session).update(
        step,
        name=template.name,
        content=template.content,
        is_overridden=False,
    )


async def add_custom_step(
    session: AsyncSession,
    release_id: str,
    customer_id: str,
    data: CustomStepInput,
) -> CustomerStepRow:
    """Insert an ad-hoc step for one customer at ``data.order_index``.

    Siblings are never renumbered. With ``add_to_template`` the step is also
    appended to the release's templates so customers added later receive it;
    customers already in the release do not.

    The customer must be active and already part of the release; otherwise a
    lone custom step would count them as present and keep
    ``add_customers_to_release`` from ever giving them the template steps.
    """
    release = await ReleaseRepository(session).get(release_id)
    if not release:
        raise NotFoundError("Release", release_id)
    if release.status != ReleaseStatus.ACTIVE:
        raise InvalidStateError(
            f"Custom steps can only be added to an active release (status '{release.status}')",
            details={"status": release.status},
        )
    customer = await CustomerRepository(session).get(customer_id)
    if not customer:
        raise NotFoundError("Customer", customer_id)
    if not customer.is_active:
        raise ValidationError(f"Customer '{customer_id}' is inactive")
    step_repo = CustomerStepRepository(session)
    if customer_id not in await step_repo.customer_ids_for_release(release_id):
        raise ValidationError(
            f"Customer '{customer_id}' is not part of release '{release_id}'; add the customer first",
            details={"customer_id": customer_id},
        )

    if data.add_to_template:
        await add_template(
            session,
            release_id,
            category=data.category.value,
            name=data.name,
            type=data.type.value,
            content=data.content,
            description=data.description,
        )

    return await step_repo.create(
        step_id=generate_id(STEP_PREFIX),
        release_id=release_id,
        customer_id=customer_id,
        template_id=None,
        name=data.name,
        category=data.category.value,
        type=data.type.value,
        content=data.content,
        order_index=data.order_index,
        status=StepStatus.PENDING.value,
        is_custom=True,
        is_overridden=False,
    )


async def _get_custom_step(session: AsyncSession, step_id: str) -> CustomerStepRow:
    step = await _get_step(session, step_id)
    if not step.is_custom:
        raise ValidationError(
            f"Step '{step_id}' comes from a template; use override or reset instead",
        )
    return step


async def edit_custom_step(
    session: AsyncSession,
    step_id: str,
    *,
    name: str | None = None,
    category: str | None = None,
    type: str | None = None,
    content: str | None = None,
    order_index: float | None = None,
    notes: str | None = None,
) -> CustomerStepRow:
    """Edit a custom step's own fields; the template link and flags are not editable."""
    step = await _get_custom_step(session, step_id)
    changes = {
        k: v
        for k, v in {
            "name": name,
            "category": category,
            "type": type,
            "content": content,
            "order_index": order_index,
            "notes": notes,
        }.items()
        if v is not None
    }
    return await CustomerStepRepository(session).update(step, **changes)


async def delete_custom_step(session: AsyncSession, step_id: str) -> None:
    step = await _get_custom_step(session, step_id)
    await CustomerStepRepository(session).delete_row(step)


async def list_customer_steps(session: AsyncSession, release_id: str, customer_id: str) -> list[CustomerStepRow]:
    return await CustomerStepRepository(session).list_by_release(release_id, customer_id)


async def get_step_detail(session: AsyncSession, step_id: str) -> StepDetail:
    row = await CustomerStepRepository(session).get_detail(step_id)
    if not row:
        raise NotFoundError("CustomerStep", step_id)
    step, customer, cluster, template = row
    return StepDetail(
        step=CustomerStep.model_validate(step),
        customer=Customer.model_validate(customer),
        cluster=Cluster.model_validate(cluster),
        template=StepTemplate.model_validate(template) if template else None,
    )


def progress_percentage(done: int, skipped: int, total: int) -> int:
    """Share of steps that moved forward (done or skipped), rounded half up."""
    if total <= 0:
        return 0
    return (200 * (done + skipped) + total) // (2 * total)


async def get_step_stats(session: AsyncSession, release_id: str) -> StepStats:
    counts = await CustomerStepRepository(session).status_counts(release_id)
    done = counts.get(StepStatus.DONE, 0)
    skipped = counts.get(StepStatus.SKIPPED, 0)
    pending = counts.get(StepStatus.PENDING, 0)
    reverted = counts.get(StepStatus.REVERTED, 0)
    total = sum(counts.values())
    return StepStats(
        total=total,
        done=done,
        skipped=skipped,
        pending=pending,
        reverted=reverted,
        percentage=progress_percentage(done, skipped, total),
    )
