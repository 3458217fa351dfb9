from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.v1.endpoints import catalog_items
from app.core.security import require_basic_auth


api_router = APIRouter(dependencies=[Depends(require_basic_auth)])

api_router.include_router(catalog_items.router, prefix="/catalog-items", tags=["catalog-items"])
