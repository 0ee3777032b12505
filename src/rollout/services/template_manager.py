"""Template manager: ordered, collision-free step templates per (release, category)."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from rollout.db.models.release import ReleaseRow
from rollout.db.models.step_template import StepTemplateRow
from rollout.errors.exceptions import InvalidStateError, NotFoundError, ValidationError
from rollout.models.enums import ReleaseStatus
from rollout.repositories.customer_step_repo import CustomerStepRepository
from rollout.repositories.release_repo import ReleaseRepository
from rollout.repositories.step_template_repo import StepTemplateRepository
from rollout.services.id_generator import TEMPLATE_PREFIX, generate_id

logger = logging.getLogger(__name__)

# Lower bound of the staging range used by reorder; raised above any live index when needed.
STAGING_OFFSET = 10000


async def _get_mutable_release(session: AsyncSession, release_id: str) -> ReleaseRow:
    release = await ReleaseRepository(session).get(release_id)
    if not release:
        raise NotFoundError("Release", release_id)
    if release.status == ReleaseStatus.ARCHIVED:
        raise InvalidStateError(
            f"Release '{release_id}' is archived; its templates are read-only",
            details={"status": release.status},
        )
    return release


async def next_order_index(session: AsyncSession, release_id: str, category: str) -> int:
    """Position after the last template of the category, 0 for an empty category."""
    current = await StepTemplateRepository(session).max_order_index(release_id, category)
    return 0 if current is None else current + 1


async def list_templates(
    session: AsyncSession, release_id: str, category: str | None = None
) -> list[StepTemplateRow]:
    if not await ReleaseRepository(session).get(release_id):
        raise NotFoundError("Release", release_id)
    return await StepTemplateRepository(session).list_by_release(release_id, category)


async def add_template(
    session: AsyncSession,
    release_id: str,
    category: str,
    name: str,
    type: str,
    content: str,
    description: str | None = None,
) -> StepTemplateRow:
    """Append a template at the end of its category."""
    await _get_mutable_release(session, release_id)
    order_index = await next_order_index(session, release_id, category)
    template = await StepTemplateRepository(session).create(
        template_id=generate_id(TEMPLATE_PREFIX),
        release_id=release_id,
        name=name,
        category=category,
        type=type,
        content=content,
        order_index=order_index,
        description=description,
    )
    logger.debug("Added template %s at %s/%d", template.template_id, category, order_index)
    return template


async def update_template(
    session: AsyncSession,
    template_id: str,
    name: str | None = None,
    type: str | None = None,
    content: str | None = None,
    description: str | None = None,
) -> StepTemplateRow:
    """Edit a template and push name/content changes to steps that still follow it.

    Only steps that are pending and not overridden are touched; executed and
    customized steps keep what they had.
    """
    repo = StepTemplateRepository(session)
    template = await repo.get(template_id)
    if not template:
        raise NotFoundError("StepTemplate", template_id)
    await _get_mutable_release(session, template.release_id)

    fields = {
        k: v
        for k, v in {"name": name, "type": type, "content": content, "description": description}.items()
        if v is not None
    }
    await repo.update(template, **fields)

    propagated = {k: fields[k] for k in ("name", "content") if k in fields}
    if propagated:
        await CustomerStepRepository(session).propagate_template_fields(template_id, **propagated)
    return template


async def delete_template(session: AsyncSession, template_id: str) -> None:
    """Delete a template and the pending steps materialized from it.

    Steps already done, skipped or reverted stay as history with their
    template link cleared.
    """
    repo = StepTemplateRepository(session)
    template = await repo.get(template_id)
    if not template:
        raise NotFoundError("StepTemplate", template_id)
    await _get_mutable_release(session, template.release_id)

    step_repo = CustomerStepRepository(session)
    removed = await step_repo.delete_pending_for_template(template_id)
    kept = await step_repo.detach_template(template_id)
    await repo.delete(template_id)
    logger.info(
        "Deleted template %s (pending steps removed=%d, history kept=%d)",
        template_id, removed, kept,
    )


async def reorder_templates(
    session: AsyncSession,
    release_id: str,
    category: str,
    ordered_ids: list[str],
) -> list[StepTemplateRow]:
    """Assign ``order_index = position`` to every template in ``ordered_ids``.

    Materialized customer steps on those templates follow the same positions.
    The ids must be exactly the templates of (release, category); otherwise
    the whole batch is rejected before anything is written.

    The reassignment runs in two passes: every row first moves into a staging
    range above all live indices, then to its final position, so no single
    write ever duplicates an index under the unique constraint. Both passes
    run in the caller's transaction.
    """
    await _get_mutable_release(session, release_id)
    repo = StepTemplateRepository(session)
    current = await repo.list_by_release(release_id, category)
    current_ids = {t.template_id for t in current}

    if len(set(ordered_ids)) != len(ordered_ids):
        raise ValidationError("Duplicate template ids in reorder request")
    foreign = [tid for tid in ordered_ids if tid not in current_ids]
    missing = sorted(current_ids - set(ordered_ids))
    if foreign or missing:
        raise ValidationError(
            f"Reorder must list exactly the {category} templates of release '{release_id}'",
            details={"foreign_ids": foreign, "missing_ids": missing},
        )

    step_repo = CustomerStepRepository(session)
    highest = max((t.order_index for t in current), default=-1)
    staging = max(STAGING_OFFSET, highest + 1)

    for position, template_id in enumerate(ordered_ids):
        await repo.set_order_index(template_id, staging + position)
        await step_repo.set_order_index_for_template(template_id, category, staging + position)

    for position, template_id in enumerate(ordered_ids):
        await repo.set_order_index(template_id, position)
        await step_repo.set_order_index_for_template(template_id, category, position)

    logger.info("Reordered %d %s templates of release %s", len(ordered_ids), category, release_id)
    return await repo.list_by_release(release_id, category)
