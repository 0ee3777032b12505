"""Release catalogue: create, edit, archive, clone and delete releases."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from rollout.db.models.release import ReleaseRow
from rollout.errors.exceptions import InvalidStateError, NotFoundError
from rollout.models.enums import ReleaseStatus, StepStatus
from rollout.models.release import DashboardStats, ReleaseCreate, ReleaseUpdate, ReleaseWithTemplates, StepTemplate
from rollout.repositories.customer_step_repo import CustomerStepRepository
from rollout.repositories.release_repo import ReleaseRepository
from rollout.repositories.step_template_repo import StepTemplateRepository
from rollout.services.id_generator import RELEASE_PREFIX, TEMPLATE_PREFIX, generate_id

logger = logging.getLogger(__name__)


async def _get(session: AsyncSession, release_id: str) -> ReleaseRow:
    release = await ReleaseRepository(session).get(release_id)
    if not release:
        raise NotFoundError("Release", release_id)
    return release


async def create_release(session: AsyncSession, data: ReleaseCreate) -> ReleaseRow:
    return await ReleaseRepository(session).create(
        release_id=generate_id(RELEASE_PREFIX),
        name=data.name,
        type=data.type.value,
        status=ReleaseStatus.DRAFT.value,
        version_number=data.version_number,
        release_date=data.release_date,
        description=data.description,
        metadata_=data.metadata,
    )


async def update_release(session: AsyncSession, release_id: str, data: ReleaseUpdate) -> ReleaseRow:
    release = await _get(session, release_id)
    changes = data.model_dump(exclude_unset=True, mode="json")
    if "release_date" in changes:
        changes["release_date"] = data.release_date
    if "metadata" in changes:
        changes["metadata_"] = changes.pop("metadata")
    return await ReleaseRepository(session).update(release, **changes)


async def get_release(session: AsyncSession, release_id: str) -> ReleaseWithTemplates:
    release = await _get(session, release_id)
    templates = await StepTemplateRepository(session).list_by_release(release_id)
    out = ReleaseWithTemplates.model_validate(release)
    out.templates = [StepTemplate.model_validate(t) for t in templates]
    return out


async def list_releases(session: AsyncSession, status: str | None = None) -> list[ReleaseRow]:
    return await ReleaseRepository(session).list_all(status)


async def archive_release(session: AsyncSession, release_id: str) -> ReleaseRow:
    """Close an active release. Its steps are left as they are."""
    release = await _get(session, release_id)
    repo = ReleaseRepository(session)
    if release.status != ReleaseStatus.ACTIVE or not await repo.transition_status(
        release_id, ReleaseStatus.ACTIVE.value, ReleaseStatus.ARCHIVED.value
    ):
        raise InvalidStateError(
            f"Only active releases can be archived (status '{release.status}')",
            details={"status": release.status},
        )
    logger.info("Archived release %s", release_id)
    return release


async def delete_release(session: AsyncSession, release_id: str) -> None:
    """Remove a release together with its templates and customer steps."""
    await _get(session, release_id)
    steps = await CustomerStepRepository(session).delete_by_release(release_id)
    templates = await StepTemplateRepository(session).delete_by_release(release_id)
    await ReleaseRepository(session).delete(release_id)
    logger.info("Deleted release %s (%d templates, %d steps)", release_id, templates, steps)


async def clone_release(session: AsyncSession, release_id: str, new_name: str) -> ReleaseRow:
    """Copy a release's templates into a new draft release."""
    original = await _get(session, release_id)
    repo = ReleaseRepository(session)
    clone = await repo.create(
        release_id=generate_id(RELEASE_PREFIX),
        name=new_name,
        type=original.type,
        status=ReleaseStatus.DRAFT.value,
        version_number=original.version_number,
        metadata_=original.metadata_,
        description=f"Cloned from: {original.name}\n\n{original.description or ''}",
    )

    template_repo = StepTemplateRepository(session)
    templates = await template_repo.list_by_release(release_id)
    await template_repo.create_many([
        {
            "template_id": generate_id(TEMPLATE_PREFIX),
            "release_id": clone.release_id,
            "name": t.name,
            "category": t.category,
            "type": t.type,
            "content": t.content,
            "order_index": t.order_index,
            "description": t.description,
        }
        for t in templates
    ])
    logger.info("Cloned release %s into %s (%d templates)", release_id, clone.release_id, len(templates))
    return clone


async def get_dashboard_stats(session: AsyncSession) -> DashboardStats:
    releases = await ReleaseRepository(session).count_by_status()
    steps = await CustomerStepRepository(session).status_counts()
    return DashboardStats(
        total_releases=sum(releases.values()),
        active_releases=releases.get(ReleaseStatus.ACTIVE, 0),
        pending_steps=steps.get(StepStatus.PENDING, 0),
        done_steps=steps.get(StepStatus.DONE, 0),
        skipped_steps=steps.get(StepStatus.SKIPPED, 0),
    )
