"""Tests for the customer step state machine, content edits and custom steps."""

import pytest

from rollout.errors.exceptions import InvalidStateError, NotFoundError, ValidationError
from rollout.models.enums import StepCategory, StepType
from rollout.models.step import CustomStepInput
from rollout.repositories.step_template_repo import StepTemplateRepository
from rollout.services import activation, inventory, step_lifecycle, template_manager

from seed import seed_cluster, seed_customer, seed_release, seed_template


async def _active_release(session, customers: int = 1, templates: int = 2):
    cid = await seed_cluster(session)
    customer_ids = [await seed_customer(session, cid, f"ns-{i}") for i in range(customers)]
    rid = await seed_release(session)
    for i in range(templates):
        await seed_template(session, rid, f"T{i}")
    await activation.activate_release(session, rid)
    return rid, customer_ids


async def _steps(session, rid, customer_id):
    return await step_lifecycle.list_customer_steps(session, rid, customer_id)


def _custom(name="hotpatch", order_index=1.5, **kwargs) -> CustomStepInput:
    return CustomStepInput(
        name=name,
        category=StepCategory.DEPLOY,
        type=StepType.SQL,
        content="UPDATE flags SET on = true",
        order_index=order_index,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_done_and_skip_complete_release(db_session):
    rid, (x,) = await _active_release(db_session)
    s1, s2 = await _steps(db_session, rid, x)

    done = await step_lifecycle.mark_done(db_session, s1.step_id, notes="ran fine")
    skipped = await step_lifecycle.skip_step(db_session, s2.step_id, "not applicable")

    assert done.status == "done"
    assert done.notes == "ran fine"
    assert done.executed_at is not None
    assert skipped.status == "skipped"
    assert skipped.skip_reason == "not applicable"

    stats = await step_lifecycle.get_step_stats(db_session, rid)
    assert (stats.total, stats.done, stats.skipped, stats.pending) == (2, 1, 1, 0)
    assert stats.percentage == 100


@pytest.mark.asyncio
async def test_revert_keeps_execution_history(db_session):
    rid, (x,) = await _active_release(db_session)
    s1, _ = await _steps(db_session, rid, x)
    await step_lifecycle.mark_done(db_session, s1.step_id, executed_by="ops")

    reverted = await step_lifecycle.revert_step(db_session, s1.step_id, reason="broke login")

    assert reverted.status == "reverted"
    assert reverted.notes == "broke login"
    assert reverted.executed_at is not None
    assert reverted.executed_by == "ops"


@pytest.mark.asyncio
async def test_revert_pending_rejected(db_session):
    rid, (x,) = await _active_release(db_session)
    s1, _ = await _steps(db_session, rid, x)

    with pytest.raises(InvalidStateError):
        await step_lifecycle.revert_step(db_session, s1.step_id)


@pytest.mark.asyncio
async def test_done_twice_rejected(db_session):
    rid, (x,) = await _active_release(db_session)
    s1, _ = await _steps(db_session, rid, x)
    await step_lifecycle.mark_done(db_session, s1.step_id)

    with pytest.raises(InvalidStateError):
        await step_lifecycle.mark_done(db_session, s1.step_id)
    with pytest.raises(InvalidStateError):
        await step_lifecycle.skip_step(db_session, s1.step_id, "too late")


@pytest.mark.asyncio
async def test_reverted_step_can_run_again(db_session):
    rid, (x,) = await _active_release(db_session)
    s1, s2 = await _steps(db_session, rid, x)
    await step_lifecycle.skip_step(db_session, s1.step_id, "later")
    await step_lifecycle.revert_step(db_session, s1.step_id)
    await step_lifecycle.mark_done(db_session, s2.step_id)
    await step_lifecycle.revert_step(db_session, s2.step_id)

    again = await step_lifecycle.mark_done(db_session, s1.step_id, notes="second attempt")
    skipped = await step_lifecycle.skip_step(db_session, s2.step_id, "handled manually")

    assert again.status == "done"
    assert skipped.status == "skipped"


@pytest.mark.asyncio
async def test_unknown_step(db_session):
    with pytest.raises(NotFoundError):
        await step_lifecycle.mark_done(db_session, "cst_missing")


@pytest.mark.asyncio
async def test_override_then_reset(db_session):
    rid, (x,) = await _active_release(db_session)
    s1, _ = await _steps(db_session, rid, x)
    template = await StepTemplateRepository(db_session).get(s1.template_id)

    overridden = await step_lifecycle.override_content(
        db_session, s1.step_id, "echo custom for acme", name="acme variant"
    )
    assert overridden.is_overridden is True
    assert overridden.content == "echo custom for acme"
    assert overridden.name == "acme variant"

    reset = await step_lifecycle.reset_to_template(db_session, s1.step_id)
    assert reset.is_overridden is False
    assert reset.content == template.content
    assert reset.name == template.name


@pytest.mark.asyncio
async def test_override_allowed_after_done(db_session):
    rid, (x,) = await _active_release(db_session)
    s1, _ = await _steps(db_session, rid, x)
    await step_lifecycle.mark_done(db_session, s1.step_id)

    step = await step_lifecycle.override_content(db_session, s1.step_id, "echo actually ran this")

    assert step.status == "done"
    assert step.is_overridden is True


@pytest.mark.asyncio
async def test_reset_reads_live_template(db_session):
    rid, (x,) = await _active_release(db_session)
    s1, _ = await _steps(db_session, rid, x)
    await step_lifecycle.override_content(db_session, s1.step_id, "echo mine")
    await template_manager.update_template(db_session, s1.template_id, content="echo v2")

    reset = await step_lifecycle.reset_to_template(db_session, s1.step_id)

    assert reset.content == "echo v2"


@pytest.mark.asyncio
async def test_reset_without_template(db_session):
    rid, (x,) = await _active_release(db_session)
    custom = await step_lifecycle.add_custom_step(db_session, rid, x, _custom())

    with pytest.raises(NotFoundError):
        await step_lifecycle.reset_to_template(db_session, custom.step_id)


@pytest.mark.asyncio
async def test_override_custom_step_rejected(db_session):
    rid, (x,) = await _active_release(db_session)
    custom = await step_lifecycle.add_custom_step(db_session, rid, x, _custom())

    with pytest.raises(ValidationError):
        await step_lifecycle.override_content(db_session, custom.step_id, "nope")


@pytest.mark.asyncio
async def test_custom_step_between_template_steps(db_session):
    rid, (x,) = await _active_release(db_session, templates=3)
    before = await _steps(db_session, rid, x)

    custom = await step_lifecycle.add_custom_step(db_session, rid, x, _custom(order_index=1.5))

    assert custom.is_custom is True
    assert custom.template_id is None
    assert custom.status == "pending"
    after = await _steps(db_session, rid, x)
    assert [s.step_id for s in after] == [
        before[0].step_id, before[1].step_id, custom.step_id, before[2].step_id,
    ]
    assert [s.order_index for s in after] == [0, 1, 1.5, 2]


@pytest.mark.asyncio
async def test_custom_step_only_for_one_customer(db_session):
    rid, (x, y) = await _active_release(db_session, customers=2)

    await step_lifecycle.add_custom_step(db_session, rid, x, _custom())

    assert len(await _steps(db_session, rid, x)) == 3
    assert len(await _steps(db_session, rid, y)) == 2


@pytest.mark.asyncio
async def test_custom_step_added_to_template(db_session):
    rid, (x, y) = await _active_release(db_session, customers=2)

    await step_lifecycle.add_custom_step(db_session, rid, x, _custom(add_to_template=True))

    templates = await template_manager.list_templates(db_session, rid, "deploy")
    assert [t.name for t in templates] == ["T0", "T1", "hotpatch"]
    assert templates[-1].order_index == 2
    # Existing customers other than the requester are untouched
    assert len(await _steps(db_session, rid, y)) == 2


@pytest.mark.asyncio
async def test_custom_step_requires_active_release(db_session):
    cid = await seed_cluster(db_session)
    x = await seed_customer(db_session, cid, "acme")
    rid = await seed_release(db_session)

    with pytest.raises(InvalidStateError):
        await step_lifecycle.add_custom_step(db_session, rid, x, _custom())


@pytest.mark.asyncio
async def test_custom_step_unknown_customer(db_session):
    rid, _ = await _active_release(db_session)

    with pytest.raises(NotFoundError):
        await step_lifecycle.add_custom_step(db_session, rid, "cus_missing", _custom())


@pytest.mark.asyncio
async def test_edit_and_delete_custom_step(db_session):
    rid, (x,) = await _active_release(db_session)
    custom = await step_lifecycle.add_custom_step(db_session, rid, x, _custom())

    edited = await step_lifecycle.edit_custom_step(
        db_session, custom.step_id, name="renamed", order_index=0.5, content=None
    )
    assert edited.name == "renamed"
    assert edited.order_index == 0.5
    assert edited.content == "UPDATE flags SET on = true"

    await step_lifecycle.delete_custom_step(db_session, custom.step_id)
    assert len(await _steps(db_session, rid, x)) == 2


@pytest.mark.asyncio
async def test_edit_or_delete_template_step_rejected(db_session):
    rid, (x,) = await _active_release(db_session)
    s1, _ = await _steps(db_session, rid, x)

    with pytest.raises(ValidationError):
        await step_lifecycle.edit_custom_step(db_session, s1.step_id, name="x")
    with pytest.raises(ValidationError):
        await step_lifecycle.delete_custom_step(db_session, s1.step_id)


@pytest.mark.asyncio
async def test_bulk_done_reports_per_step(db_session):
    rid, (x,) = await _active_release(db_session, templates=3)
    s1, s2, s3 = await _steps(db_session, rid, x)
    await step_lifecycle.mark_done(db_session, s2.step_id)

    result = await step_lifecycle.bulk_mark_done(
        db_session, [s1.step_id, s2.step_id, s3.step_id, "cst_missing"], executed_by="ops"
    )

    assert result.succeeded == [s1.step_id, s3.step_id]
    assert result.failed == {s2.step_id: "INVALID_STATE", "cst_missing": "NOT_FOUND"}
    stats = await step_lifecycle.get_step_stats(db_session, rid)
    assert stats.done == 3


@pytest.mark.asyncio
async def test_step_detail(db_session):
    rid, (x,) = await _active_release(db_session)
    s1, _ = await _steps(db_session, rid, x)
    custom = await step_lifecycle.add_custom_step(db_session, rid, x, _custom())

    detail = await step_lifecycle.get_step_detail(db_session, s1.step_id)
    assert detail.customer.customer_id == x
    assert detail.cluster.name == "prod-eu"
    assert detail.template.template_id == s1.template_id

    detail = await step_lifecycle.get_step_detail(db_session, custom.step_id)
    assert detail.template is None


@pytest.mark.asyncio
async def test_stats_for_release_without_steps(db_session):
    rid = await seed_release(db_session)

    stats = await step_lifecycle.get_step_stats(db_session, rid)

    assert stats.total == 0
    assert stats.percentage == 0


@pytest.mark.parametrize(
    "done,skipped,total,expected",
    [
        (0, 0, 0, 0),
        (1, 0, 3, 33),
        (2, 0, 3, 67),
        (1, 0, 8, 13),
        (1, 1, 2, 100),
        (0, 1, 200, 1),
        (1, 0, 200, 1),
        (0, 0, 5, 0),
    ],
)
def test_progress_percentage(done, skipped, total, expected):
    assert step_lifecycle.progress_percentage(done, skipped, total) == expected


@pytest.mark.asyncio
async def test_custom_step_for_customer_outside_release_rejected(db_session):
    cid = await seed_cluster(db_session)
    acme = await seed_customer(db_session, cid, "acme")
    zeta = await seed_customer(db_session, cid, "zeta")
    rid = await seed_release(db_session)
    await seed_template(db_session, rid, "migrate")
    await activation.activate_release(db_session, rid, [acme])

    with pytest.raises(ValidationError):
        await step_lifecycle.add_custom_step(db_session, rid, zeta, _custom())
    assert await _steps(db_session, rid, zeta) == []

    # The customer can still join and receive the template steps
    result = await activation.add_customers_to_release(db_session, rid, [zeta])
    assert result.steps_created == 1
    (step,) = await _steps(db_session, rid, zeta)
    assert step.template_id is not None


@pytest.mark.asyncio
async def test_custom_step_for_inactive_customer_rejected(db_session):
    rid, (x,) = await _active_release(db_session)
    await inventory.delete_customer(db_session, x)

    with pytest.raises(ValidationError):
        await step_lifecycle.add_custom_step(db_session, rid, x, _custom())


@pytest.mark.asyncio
async def test_edit_custom_step_cannot_touch_template_link(db_session):
    rid, (x,) = await _active_release(db_session)
    custom = await step_lifecycle.add_custom_step(db_session, rid, x, _custom())

    with pytest.raises(TypeError):
        await step_lifecycle.edit_custom_step(db_session, custom.step_id, template_id="tpl_other")
    with pytest.raises(TypeError):
        await step_lifecycle.edit_custom_step(db_session, custom.step_id, is_custom=False)

    step = await step_lifecycle.get_step_detail(db_session, custom.step_id)
    assert step.step.is_custom is True
    assert step.step.template_id is None
