from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.enums import CatalogItemStatus
from app.models.catalog_item import LIST_ASSET_FIELDS, SINGLE_ASSET_FIELDS, CatalogItem
from app.schemas.catalog_item import CatalogItemCreate, CatalogItemUpdate
from app.services.asset_migration import relocate_asset, relocate_assets
from app.services.asset_reconcile import asset_keep_set, sweep_orphans
from app.services.asset_storage import item_dir, purge_item_dir
from app.services.audit import audit_log, snapshot
from app.services.item_codes import allocate_item_code, release_item_code, utcnow


logger = logging.getLogger(__name__)

ENTITY_TYPE = "catalog_item"

ASSET_FIELDS = frozenset(SINGLE_ASSET_FIELDS) | frozenset(LIST_ASSET_FIELDS)
_SNAPSHOT_FIELDS = (
    "code",
    "title",
    "description",
    "price_cents",
    "status",
    "published_at",
    "cover",
    "preview_video",
    "demo_video",
    "gallery",
    "attachments",
)
_REQUIRED_SCALARS = frozenset({"title", "description", "price_cents", "status"})


class CatalogItemNotFoundError(ValueError):
    pass


async def _get_item(session: AsyncSession, item_id: uuid.UUID) -> CatalogItem:
    item = await session.get(CatalogItem, item_id)
    if item is None:
        raise CatalogItemNotFoundError("Catalog item not found")
    return item


async def _ensure_item_dir(code: int, settings: Settings) -> None:
    # A missing directory only means later relocations degrade to "unchanged reference".
    try:
        await asyncio.to_thread(item_dir, code, settings=settings)
    except OSError:
        logger.warning("Failed to create item directory for code %s", code, exc_info=True, extra={"item_code": code})


async def _relocate_fields(code: int, values: dict[str, Any], settings: Settings) -> dict[str, Any]:
    """Relocate the asset fields present in `values` into the code's directory."""
    out: dict[str, Any] = {}
    for field, category in SINGLE_ASSET_FIELDS.items():
        if field in values:
            ref = values[field]
            moved = await asyncio.to_thread(relocate_asset, ref, code, category, settings=settings)
            out[field] = moved or ref or ""
    for field, category in LIST_ASSET_FIELDS.items():
        if field in values:
            out[field] = await asyncio.to_thread(relocate_assets, values[field], code, category, settings=settings)
    return out


def _unrelocated_fields(values: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for field in SINGLE_ASSET_FIELDS:
        if field in values:
            out[field] = values[field] or ""
    for field in LIST_ASSET_FIELDS:
        if field in values:
            out[field] = list(values[field] or [])
    return out


async def create_catalog_item(
    session: AsyncSession,
    *,
    actor: str,
    data: CatalogItemCreate,
    settings: Settings | None = None,
) -> CatalogItem:
    settings = settings or get_settings()
    item_id = uuid.uuid4()
    code = await allocate_item_code(session, item_id=item_id)
    await _ensure_item_dir(code, settings)

    payload = data.model_dump()
    media = await _relocate_fields(code, {k: v for k, v in payload.items() if k in ASSET_FIELDS}, settings)

    item = CatalogItem(
        id=item_id,
        code=code,
        title=data.title,
        description=data.description,
        price_cents=data.price_cents,
        status=data.status,
        published_at=utcnow() if data.status == CatalogItemStatus.PUBLISHED else None,
        **media,
    )
    session.add(item)
    await session.flush()

    await audit_log(
        session,
        actor=actor,
        entity_type=ENTITY_TYPE,
        entity_id=item.id,
        action="create",
        after=snapshot(item, _SNAPSHOT_FIELDS),
    )
    return item


async def update_catalog_item(
    session: AsyncSession,
    *,
    actor: str,
    item_id: uuid.UUID,
    data: CatalogItemUpdate,
    settings: Settings | None = None,
) -> CatalogItem:
    settings = settings or get_settings()
    item = await _get_item(session, item_id)
    before = snapshot(item, _SNAPSHOT_FIELDS)

    values = data.model_dump(exclude_unset=True)
    if before["status"] == CatalogItemStatus.ARCHIVED and values.get("status") is not None:
        # The code was released on archive; a live item without one breaks the code/item bijection.
        raise ValueError("Archived catalog items cannot be restored")
    for key, value in values.items():
        if key in ASSET_FIELDS or (value is None and key in _REQUIRED_SCALARS):
            continue
        setattr(item, key, value)
    if item.status == CatalogItemStatus.PUBLISHED and before["status"] != CatalogItemStatus.PUBLISHED:
        item.published_at = utcnow()

    media_values = {k: v for k, v in values.items() if k in ASSET_FIELDS}
    if media_values:
        if item.code is not None:
            media = await _relocate_fields(item.code, media_values, settings)
        else:
            media = _unrelocated_fields(media_values)
        for key, value in media.items():
            setattr(item, key, value)

    await session.flush()

    await audit_log(
        session,
        actor=actor,
        entity_type=ENTITY_TYPE,
        entity_id=item.id,
        action="update",
        before=before,
        after=snapshot(item, _SNAPSHOT_FIELDS),
    )
    return item


async def duplicate_catalog_item(
    session: AsyncSession,
    *,
    actor: str,
    item_id: uuid.UUID,
    settings: Settings | None = None,
) -> CatalogItem:
    """Copy an item under a new id and code; its assets are copied into the new code directory."""
    settings = settings or get_settings()
    source = await _get_item(session, item_id)
    if source.status == CatalogItemStatus.ARCHIVED:
        raise ValueError("Archived catalog items cannot be duplicated")

    new_id = uuid.uuid4()
    new_code = await allocate_item_code(session, item_id=new_id)
    await _ensure_item_dir(new_code, settings)

    media = await _relocate_fields(
        new_code,
        {field: getattr(source, field) for field in ASSET_FIELDS},
        settings,
    )
    now = utcnow()
    item = CatalogItem(
        id=new_id,
        code=new_code,
        title=f"{source.title} (copy)"[:200],
        description=source.description,
        price_cents=source.price_cents,
        status=CatalogItemStatus.PUBLISHED,
        published_at=now,
        **media,
    )
    session.add(item)
    await session.flush()

    await audit_log(
        session,
        actor=actor,
        entity_type=ENTITY_TYPE,
        entity_id=item.id,
        action="duplicate",
        before={"source_id": source.id, "source_code": source.code},
        after=snapshot(item, _SNAPSHOT_FIELDS),
    )
    logger.info(
        "Duplicated catalog item %s as %s (code %s)",
        source.id,
        item.id,
        new_code,
        extra={"item_code": new_code},
    )
    return item


async def archive_catalog_item(
    session: AsyncSession,
    *,
    actor: str,
    item_id: uuid.UUID,
) -> int | None:
    """
    Soft-delete: mark the item archived and release its code.

    Returns the released code so the caller can purge its directory after commit.
    """
    item = await _get_item(session, item_id)
    if item.status == CatalogItemStatus.ARCHIVED and item.code is None:
        return None

    before = snapshot(item, _SNAPSHOT_FIELDS)
    code = item.code
    item.status = CatalogItemStatus.ARCHIVED
    if code is not None:
        await release_item_code(session, code)
        item.code = None
    await session.flush()

    await audit_log(
        session,
        actor=actor,
        entity_type=ENTITY_TYPE,
        entity_id=item.id,
        action="archive",
        before=before,
        after={"status": item.status, "code": None},
    )
    return code


async def reconcile_item_assets(item: CatalogItem, *, settings: Settings | None = None) -> list[str]:
    """
    Delete files in the item's code directory that its persisted record no longer references.

    Must run after the item's new references are committed.
    """
    if item.code is None:
        return []
    settings = settings or get_settings()
    keep = asset_keep_set(item.code, item.asset_references(), settings=settings)
    return await asyncio.to_thread(sweep_orphans, item.code, keep, settings=settings)


async def purge_released_code(code: int, *, settings: Settings | None = None) -> bool:
    return await asyncio.to_thread(purge_item_dir, code, settings=settings or get_settings())


async def backfill_item_codes(
    session: AsyncSession,
    *,
    actor: str,
    settings: Settings | None = None,
) -> list[tuple[uuid.UUID, int]]:
    """Give every live item without a code a fresh one (plus its directory)."""
    settings = settings or get_settings()
    items = (
        await session.execute(
            select(CatalogItem)
            .where(CatalogItem.code.is_(None), CatalogItem.status != CatalogItemStatus.ARCHIVED)
            .order_by(CatalogItem.created_at.asc(), CatalogItem.id.asc())
        )
    ).scalars().all()

    assigned: list[tuple[uuid.UUID, int]] = []
    for item in items:
        code = await allocate_item_code(session, item_id=item.id)
        item.code = code
        await _ensure_item_dir(code, settings)
        await audit_log(
            session,
            actor=actor,
            entity_type=ENTITY_TYPE,
            entity_id=item.id,
            action="assign_code",
            after={"code": code},
        )
        assigned.append((item.id, code))
    await session.flush()
    return assigned


async def migrate_item_media(
    session: AsyncSession,
    *,
    actor: str,
    settings: Settings | None = None,
) -> int:
    """Relocate the media of every live item into its code directory. Returns the number of items changed."""
    settings = settings or get_settings()
    items = (
        await session.execute(
            select(CatalogItem)
            .where(CatalogItem.code.is_not(None), CatalogItem.status != CatalogItemStatus.ARCHIVED)
            .order_by(CatalogItem.code.asc())
        )
    ).scalars().all()

    changed = 0
    for item in items:
        before = snapshot(item, _SNAPSHOT_FIELDS)
        await _ensure_item_dir(item.code, settings)
        media = await _relocate_fields(item.code, {field: getattr(item, field) for field in ASSET_FIELDS}, settings)
        if all(before[field] == value for field, value in media.items()):
            continue
        for field, value in media.items():
            setattr(item, field, value)
        await audit_log(
            session,
            actor=actor,
            entity_type=ENTITY_TYPE,
            entity_id=item.id,
            action="migrate_media",
            before={field: before[field] for field in media},
            after=media,
        )
        changed += 1
    await session.flush()
    return changed
