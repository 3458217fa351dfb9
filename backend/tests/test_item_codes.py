from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func, select

from app.core.enums import CatalogItemStatus
from app.models.catalog_item import CatalogItem
from app.models.item_code import ItemCode
from app.services.item_codes import allocate_item_code, find_item_code_problems, release_item_code


@pytest.mark.asyncio
async def test_allocate_mints_distinct_dense_codes(db_session) -> None:
    async with db_session.begin():
        codes = [await allocate_item_code(db_session) for _ in range(6)]

    assert codes == [1, 2, 3, 4, 5, 6]
    assert len(set(codes)) == len(codes)


@pytest.mark.asyncio
async def test_released_code_is_reused_before_minting(db_session) -> None:
    async with db_session.begin():
        first = await allocate_item_code(db_session)
        second = await allocate_item_code(db_session)
        await release_item_code(db_session, first)
        reused = await allocate_item_code(db_session)
        minted = await allocate_item_code(db_session)

    assert reused == first
    assert minted == second + 1


@pytest.mark.asyncio
async def test_smallest_free_code_wins(db_session) -> None:
    async with db_session.begin():
        for _ in range(5):
            await allocate_item_code(db_session)
        await release_item_code(db_session, 4)
        await release_item_code(db_session, 2)

        assert await allocate_item_code(db_session) == 2
        assert await allocate_item_code(db_session) == 4
        assert await allocate_item_code(db_session) == 6


@pytest.mark.asyncio
async def test_release_is_idempotent(db_session) -> None:
    owner = uuid.uuid4()
    async with db_session.begin():
        code = await allocate_item_code(db_session, item_id=owner)
        await release_item_code(db_session, code)
        await release_item_code(db_session, code)

    rows = (await db_session.execute(select(ItemCode).where(ItemCode.code == code))).scalars().all()
    assert len(rows) == 1
    assert rows[0].assigned is False
    assert rows[0].item_id is None


@pytest.mark.asyncio
async def test_release_of_unknown_code_creates_free_record(db_session) -> None:
    async with db_session.begin():
        await release_item_code(db_session, 42)
        code = await allocate_item_code(db_session)
        total = await db_session.scalar(select(func.count()).select_from(ItemCode))

    assert code == 42
    assert total == 1


@pytest.mark.asyncio
async def test_allocate_records_owner(db_session) -> None:
    owner = uuid.uuid4()
    async with db_session.begin():
        code = await allocate_item_code(db_session, item_id=owner)

    row = await db_session.get(ItemCode, code)
    assert row is not None
    assert row.assigned is True
    assert row.item_id == owner
    assert row.updated_at is not None


@pytest.mark.asyncio
async def test_find_item_code_problems_reports_inconsistencies(db_session) -> None:
    async with db_session.begin():
        ok_item = CatalogItem(title="Ok", code=None)
        db_session.add(ok_item)
        await db_session.flush()
        ok_item.code = await allocate_item_code(db_session, item_id=ok_item.id)

        dangling = await allocate_item_code(db_session)

        shared_a = CatalogItem(title="Shared A", code=7)
        shared_b = CatalogItem(title="Shared B", code=7)
        uncoded = CatalogItem(title="No code", code=None)
        archived = CatalogItem(title="Gone", code=None, status=CatalogItemStatus.ARCHIVED)
        db_session.add_all([shared_a, shared_b, uncoded, archived])

    problems = await find_item_code_problems(db_session)

    assert f"catalog item {uncoded.id} has no code" in problems
    assert any(p.startswith("code 7 is shared by 2 live items") for p in problems)
    assert any(p.startswith("code 7 is used by catalog item") and "never minted" in p for p in problems)
    assert f"code {dangling} is assigned but no live item uses it" in problems
    assert not any(str(ok_item.id) in p for p in problems)
    assert not any(str(archived.id) in p for p in problems)


@pytest.mark.asyncio
async def test_find_item_code_problems_is_empty_when_consistent(db_session) -> None:
    async with db_session.begin():
        for title in ("A", "B"):
            item = CatalogItem(title=title)
            db_session.add(item)
            await db_session.flush()
            item.code = await allocate_item_code(db_session, item_id=item.id)

    assert await find_item_code_problems(db_session) == []
