"""Tests for the template manager.

Covers:
- add_template appends at max+1 per (release, category), starting at 0
- add_template on a missing / archived release
- reorder_templates rewrites template and materialized step positions
- reorder_templates rejects foreign, missing and duplicated ids without writing
- delete_template removes pending steps and detaches executed ones
- update_template propagates name/content to pending, non-overridden steps only
"""

import asyncio

import pytest
from sqlalchemy import select

from rollout.db.engine import create_session_factory
from rollout.db.models.customer_step import CustomerStepRow
from rollout.db.models.step_template import StepTemplateRow
from rollout.errors.exceptions import InvalidStateError, NotFoundError, ValidationError
from rollout.models.enums import StepCategory
from rollout.services import activation, release_service, step_lifecycle, template_manager

from seed import seed_cluster, seed_customer, seed_release, seed_template


async def _orders(session, release_id, category="deploy") -> dict[str, int]:
    templates = await template_manager.list_templates(session, release_id, category)
    return {t.template_id: t.order_index for t in templates}


async def _step_orders(session, release_id) -> dict[str, float]:
    result = await session.execute(
        select(CustomerStepRow).where(CustomerStepRow.release_id == release_id)
    )
    return {s.template_id: s.order_index for s in result.scalars().all() if s.template_id}


@pytest.mark.asyncio
async def test_add_template_appends_per_category(db_session):
    rid = await seed_release(db_session)
    t1 = await seed_template(db_session, rid, "migrate")
    t2 = await seed_template(db_session, rid, "deploy app")
    v1 = await seed_template(db_session, rid, "smoke test", category=StepCategory.VERIFY)

    assert await _orders(db_session, rid) == {t1: 0, t2: 1}
    assert await _orders(db_session, rid, "verify") == {v1: 0}
    assert await template_manager.next_order_index(db_session, rid, "deploy") == 2


@pytest.mark.asyncio
async def test_add_template_after_gap_uses_max_plus_one(db_session):
    rid = await seed_release(db_session)
    t1 = await seed_template(db_session, rid, "a")
    t2 = await seed_template(db_session, rid, "b")
    await template_manager.delete_template(db_session, t1)

    t3 = await seed_template(db_session, rid, "c")
    assert await _orders(db_session, rid) == {t2: 1, t3: 2}


@pytest.mark.asyncio
async def test_add_template_missing_release(db_session):
    with pytest.raises(NotFoundError):
        await seed_template(db_session, "rel_missing", "x")


@pytest.mark.asyncio
async def test_add_template_archived_release(db_session):
    rid = await seed_release(db_session)
    await activation.activate_release(db_session, rid)
    await release_service.archive_release(db_session, rid)

    with pytest.raises(InvalidStateError):
        await seed_template(db_session, rid, "late")


@pytest.mark.asyncio
async def test_reorder_swaps_templates_and_customer_steps(db_session):
    cid = await seed_cluster(db_session)
    xid = await seed_customer(db_session, cid, "acme")
    rid = await seed_release(db_session)
    t1 = await seed_template(db_session, rid, "T1")
    t2 = await seed_template(db_session, rid, "T2")
    await activation.activate_release(db_session, rid, [xid])

    templates = await template_manager.reorder_templates(db_session, rid, "deploy", [t2, t1])

    assert [t.template_id for t in templates] == [t2, t1]
    assert await _orders(db_session, rid) == {t2: 0, t1: 1}
    assert await _step_orders(db_session, rid) == {t2: 0, t1: 1}


@pytest.mark.asyncio
async def test_reorder_leaves_other_category_alone(db_session):
    rid = await seed_release(db_session)
    d1 = await seed_template(db_session, rid, "d1")
    d2 = await seed_template(db_session, rid, "d2")
    v1 = await seed_template(db_session, rid, "v1", category=StepCategory.VERIFY)
    v2 = await seed_template(db_session, rid, "v2", category=StepCategory.VERIFY)

    await template_manager.reorder_templates(db_session, rid, "verify", [v2, v1])

    assert await _orders(db_session, rid, "deploy") == {d1: 0, d2: 1}
    assert await _orders(db_session, rid, "verify") == {v2: 0, v1: 1}


@pytest.mark.asyncio
async def test_reorder_positions_are_distinct(db_session):
    rid = await seed_release(db_session)
    ids = [await seed_template(db_session, rid, f"s{i}") for i in range(5)]

    new_order = [ids[3], ids[0], ids[4], ids[1], ids[2]]
    await template_manager.reorder_templates(db_session, rid, "deploy", new_order)

    orders = await _orders(db_session, rid)
    assert sorted(orders.values()) == [0, 1, 2, 3, 4]
    assert [tid for tid, _ in sorted(orders.items(), key=lambda kv: kv[1])] == new_order


@pytest.mark.asyncio
async def test_reorder_rejects_foreign_id(db_session):
    rid = await seed_release(db_session)
    other = await seed_release(db_session, name="R2")
    t1 = await seed_template(db_session, rid, "T1")
    t2 = await seed_template(db_session, rid, "T2")
    foreign = await seed_template(db_session, other, "F")

    with pytest.raises(ValidationError) as exc_info:
        await template_manager.reorder_templates(db_session, rid, "deploy", [t2, t1, foreign])

    assert exc_info.value.details["foreign_ids"] == [foreign]
    assert await _orders(db_session, rid) == {t1: 0, t2: 1}
    assert await _orders(db_session, other) == {foreign: 0}


@pytest.mark.asyncio
async def test_reorder_rejects_template_from_other_category(db_session):
    rid = await seed_release(db_session)
    t1 = await seed_template(db_session, rid, "T1")
    v1 = await seed_template(db_session, rid, "V1", category=StepCategory.VERIFY)

    with pytest.raises(ValidationError):
        await template_manager.reorder_templates(db_session, rid, "deploy", [v1, t1])


@pytest.mark.asyncio
async def test_reorder_rejects_partial_list(db_session):
    rid = await seed_release(db_session)
    t1 = await seed_template(db_session, rid, "T1")
    t2 = await seed_template(db_session, rid, "T2")
    t3 = await seed_template(db_session, rid, "T3")

    with pytest.raises(ValidationError) as exc_info:
        await template_manager.reorder_templates(db_session, rid, "deploy", [t3, t1])

    assert exc_info.value.details["missing_ids"] == [t2]
    assert await _orders(db_session, rid) == {t1: 0, t2: 1, t3: 2}


@pytest.mark.asyncio
async def test_reorder_rejects_duplicates(db_session):
    rid = await seed_release(db_session)
    t1 = await seed_template(db_session, rid, "T1")
    await seed_template(db_session, rid, "T2")

    with pytest.raises(ValidationError):
        await template_manager.reorder_templates(db_session, rid, "deploy", [t1, t1])


@pytest.mark.asyncio
async def test_reorder_stages_above_high_indices(db_session):
    """Staging must clear live indices even when they sit above the default offset."""
    rid = await seed_release(db_session)
    t1 = await seed_template(db_session, rid, "T1")
    t2 = await seed_template(db_session, rid, "T2")
    row = await db_session.get(StepTemplateRow, t2)
    row.order_index = template_manager.STAGING_OFFSET
    await db_session.flush()

    await template_manager.reorder_templates(db_session, rid, "deploy", [t2, t1])
    assert await _orders(db_session, rid) == {t2: 0, t1: 1}


@pytest.mark.asyncio
async def test_delete_template_keeps_executed_history(db_session):
    cid = await seed_cluster(db_session)
    x = await seed_customer(db_session, cid, "acme")
    y = await seed_customer(db_session, cid, "globex")
    rid = await seed_release(db_session)
    t1 = await seed_template(db_session, rid, "T1")
    await activation.activate_release(db_session, rid, [x, y])

    steps = await step_lifecycle.list_customer_steps(db_session, rid, x)
    done = await step_lifecycle.mark_done(db_session, steps[0].step_id, notes="ran")

    await template_manager.delete_template(db_session, t1)

    result = await db_session.execute(
        select(CustomerStepRow).where(CustomerStepRow.release_id == rid)
    )
    remaining = result.scalars().all()
    assert [s.step_id for s in remaining] == [done.step_id]
    assert remaining[0].template_id is None
    assert remaining[0].status == "done"
    assert await db_session.get(StepTemplateRow, t1) is None


@pytest.mark.asyncio
async def test_delete_template_not_found(db_session):
    with pytest.raises(NotFoundError):
        await template_manager.delete_template(db_session, "tpl_missing")


@pytest.mark.asyncio
async def test_update_template_propagates_to_following_steps(db_session):
    cid = await seed_cluster(db_session)
    x = await seed_customer(db_session, cid, "acme")
    y = await seed_customer(db_session, cid, "globex")
    z = await seed_customer(db_session, cid, "initech")
    rid = await seed_release(db_session)
    t1 = await seed_template(db_session, rid, "T1", content="v1")
    await activation.activate_release(db_session, rid, [x, y, z])

    sx = (await step_lifecycle.list_customer_steps(db_session, rid, x))[0]
    sy = (await step_lifecycle.list_customer_steps(db_session, rid, y))[0]
    sz = (await step_lifecycle.list_customer_steps(db_session, rid, z))[0]
    await step_lifecycle.override_content(db_session, sy.step_id, "custom for globex")
    await step_lifecycle.mark_done(db_session, sz.step_id)

    template = await template_manager.update_template(db_session, t1, name="T1 v2", content="v2")
    assert template.content == "v2"

    for step in (sx, sy, sz):
        await db_session.refresh(step)
    assert (sx.name, sx.content) == ("T1 v2", "v2")
    assert sy.content == "custom for globex"
    assert (sz.name, sz.content) == ("T1", "v1")


async def _reorder_in_own_session(factory, release_id, category, ordered_ids) -> str:
    async with factory() as session:
        await template_manager.reorder_templates(session, release_id, category, ordered_ids)
        await session.commit()
        return "ok"


@pytest.mark.asyncio
async def test_concurrent_reorders_on_disjoint_categories(file_engine):
    factory = create_session_factory(file_engine)
    async with factory() as session:
        cid = await seed_cluster(session)
        x = await seed_customer(session, cid, "acme")
        y = await seed_customer(session, cid, "globex")
        rid = await seed_release(session)
        deploy = [await seed_template(session, rid, f"d{i}") for i in range(3)]
        verify = [
            await seed_template(session, rid, f"v{i}", category=StepCategory.VERIFY) for i in range(3)
        ]
        await activation.activate_release(session, rid)
        await session.commit()

    results = await asyncio.gather(
        _reorder_in_own_session(factory, rid, "deploy", deploy[::-1]),
        _reorder_in_own_session(factory, rid, "verify", [verify[1], verify[2], verify[0]]),
    )

    assert results == ["ok", "ok"]
    async with factory() as session:
        assert await _orders(session, rid) == {deploy[2]: 0, deploy[1]: 1, deploy[0]: 2}
        assert await _orders(session, rid, "verify") == {verify[1]: 0, verify[2]: 1, verify[0]: 2}
        for customer_id in (x, y):
            steps = await step_lifecycle.list_customer_steps(session, rid, customer_id)
            by_category = {}
            for s in steps:
                by_category.setdefault(s.category, []).append(s.order_index)
            assert by_category == {"deploy": [0, 1, 2], "verify": [0, 1, 2]}
            assert [s.name for s in steps] == ["d2", "d1", "d0", "v1", "v2", "v0"]
