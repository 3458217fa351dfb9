from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import UTC, datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import CatalogItemStatus
from app.models.catalog_item import CatalogItem
from app.models.item_code import ItemCode


logger = logging.getLogger(__name__)

# Free codes claimed by a concurrent writer between our SELECT and UPDATE are skipped;
# after this many lost races we stop reusing and mint a fresh code instead.
_MAX_CLAIM_ATTEMPTS = 5


def utcnow() -> datetime:
    return datetime.now(UTC)


async def allocate_item_code(session: AsyncSession, *, item_id: uuid.UUID | None = None) -> int:
    """
    Hand out the smallest free code, or mint `max(code) + 1` when none is free.

    The free row is selected `FOR UPDATE SKIP LOCKED` and claimed with a conditional
    update, so two concurrent allocations never return the same reused code. Two
    concurrent mints of the same value collide on the primary key and the losing
    transaction fails with `IntegrityError`.
    """
    now = utcnow()
    for _ in range(_MAX_CLAIM_ATTEMPTS):
        free_code = await session.scalar(
            select(ItemCode.code)
            .where(ItemCode.assigned.is_(False))
            .order_by(ItemCode.code.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        if free_code is None:
            break

        claimed = await session.execute(
            update(ItemCode)
            .where(ItemCode.code == free_code, ItemCode.assigned.is_(False))
            .values(assigned=True, item_id=item_id, updated_at=now)
        )
        if claimed.rowcount == 1:
            logger.info("Reused item code %s", free_code, extra={"item_code": free_code, "item_id": str(item_id)})
            return int(free_code)

    max_code = await session.scalar(select(func.max(ItemCode.code)))
    next_code = max(0, int(max_code or 0)) + 1
    session.add(ItemCode(code=next_code, assigned=True, item_id=item_id, updated_at=now))
    await session.flush()
    logger.info("Minted item code %s", next_code, extra={"item_code": next_code, "item_id": str(item_id)})
    return next_code


async def release_item_code(session: AsyncSession, code: int) -> None:
    """Return `code` to the free list. Idempotent; unknown codes are inserted as free."""
    now = utcnow()
    row = await session.get(ItemCode, code, with_for_update=True)
    if row is None:
        session.add(ItemCode(code=code, assigned=False, item_id=None, updated_at=now))
    else:
        row.assigned = False
        row.item_id = None
        row.updated_at = now
    await session.flush()
    logger.info("Released item code %s", code, extra={"item_code": code})


async def find_item_code_problems(session: AsyncSession) -> list[str]:
    """
    Check that assigned codes and live (non-archived) catalog items are in bijection.

    Returns human-readable problem descriptions; an empty list means consistent.
    """
    code_rows = (await session.execute(select(ItemCode))).scalars().all()
    codes = {row.code: row for row in code_rows}

    live_rows = (
        await session.execute(
            select(CatalogItem.id, CatalogItem.code)
            .where(CatalogItem.status != CatalogItemStatus.ARCHIVED)
            .order_by(CatalogItem.created_at.asc())
        )
    ).all()

    problems: list[str] = []
    items_by_code: dict[int, list[uuid.UUID]] = defaultdict(list)
    for item_id, code in live_rows:
        if code is None:
            problems.append(f"catalog item {item_id} has no code")
            continue
        items_by_code[int(code)].append(item_id)

    for code, item_ids in sorted(items_by_code.items()):
        if len(item_ids) > 1:
            owners = ", ".join(str(i) for i in item_ids)
            problems.append(f"code {code} is shared by {len(item_ids)} live items: {owners}")
        row = codes.get(code)
        if row is None:
            problems.append(f"code {code} is used by catalog item {item_ids[0]} but was never minted")
            continue
        if not row.assigned:
            problems.append(f"code {code} is used by catalog item {item_ids[0]} but marked free")
        elif row.item_id is not None and row.item_id not in item_ids:
            problems.append(f"code {code} is recorded for item {row.item_id} but used by item {item_ids[0]}")

    for code, row in sorted(codes.items()):
        if row.assigned and code not in items_by_code:
            problems.append(f"code {code} is assigned but no live item uses it")

    return problems
