from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_session
from app.core.enums import CatalogItemStatus
from app.core.security import require_basic_auth
from app.models.catalog_item import CatalogItem
from app.schemas.catalog_item import CatalogItemCreate, CatalogItemOut, CatalogItemUpdate
from app.services.catalog_items import (
    CatalogItemNotFoundError,
    archive_catalog_item,
    create_catalog_item,
    duplicate_catalog_item,
    purge_released_code,
    reconcile_item_assets,
    update_catalog_item,
)


router = APIRouter()


@router.post("", response_model=CatalogItemOut, status_code=201)
async def create_catalog_item_endpoint(
    data: CatalogItemCreate,
    session: AsyncSession = Depends(get_session),
    actor: str = Depends(require_basic_auth),
) -> CatalogItemOut:
    try:
        async with session.begin():
            item = await create_catalog_item(session, actor=actor, data=data)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    await reconcile_item_assets(item)
    await session.refresh(item)
    return CatalogItemOut.model_validate(item)


@router.get("", response_model=list[CatalogItemOut])
async def list_catalog_items(
    include_archived: bool = False,
    session: AsyncSession = Depends(get_session),
) -> list[CatalogItemOut]:
    stmt = select(CatalogItem).order_by(CatalogItem.created_at.desc())
    if not include_archived:
        stmt = stmt.where(CatalogItem.status != CatalogItemStatus.ARCHIVED)
    rows = (await session.execute(stmt)).scalars().all()
    return [CatalogItemOut.model_validate(r) for r in rows]


@router.get("/{item_id}", response_model=CatalogItemOut)
async def get_catalog_item(item_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> CatalogItemOut:
    item = await session.get(CatalogItem, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Not found")
    return CatalogItemOut.model_validate(item)


@router.patch("/{item_id}", response_model=CatalogItemOut)
async def update_catalog_item_endpoint(
    item_id: uuid.UUID,
    data: CatalogItemUpdate,
    session: AsyncSession = Depends(get_session),
    actor: str = Depends(require_basic_auth),
) -> CatalogItemOut:
    try:
        async with session.begin():
            item = await update_catalog_item(session, actor=actor, item_id=item_id, data=data)
    except CatalogItemNotFoundError as e:
        raise HTTPException(status_code=404, detail="Not found") from e
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    # Sweep only once the new references are committed.
    await reconcile_item_assets(item)
    await session.refresh(item)
    return CatalogItemOut.model_validate(item)


@router.post("/{item_id}/duplicate", response_model=CatalogItemOut, status_code=201)
async def duplicate_catalog_item_endpoint(
    item_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: str = Depends(require_basic_auth),
) -> CatalogItemOut:
    try:
        async with session.begin():
            item = await duplicate_catalog_item(session, actor=actor, item_id=item_id)
    except CatalogItemNotFoundError as e:
        raise HTTPException(status_code=404, detail="Not found") from e
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    await reconcile_item_assets(item)
    await session.refresh(item)
    return CatalogItemOut.model_validate(item)


@router.delete("/{item_id}", status_code=204)
async def archive_catalog_item_endpoint(
    item_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    actor: str = Depends(require_basic_auth),
) -> Response:
    try:
        async with session.begin():
            released_code = await archive_catalog_item(session, actor=actor, item_id=item_id)
    except CatalogItemNotFoundError as e:
        raise HTTPException(status_code=404, detail="Not found") from e

    if released_code is not None:
        await purge_released_code(released_code)
    return Response(status_code=204)
