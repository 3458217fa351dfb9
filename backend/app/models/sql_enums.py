from __future__ import annotations

from sqlalchemy import Enum

from app.core.enums import CatalogItemStatus

catalog_item_status_enum = Enum(CatalogItemStatus, name="catalog_item_status")
