from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.enums import AssetCategory, CatalogItemStatus
from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.sql_enums import catalog_item_status_enum


# Asset field -> category (subdirectory) the field's files live in.
SINGLE_ASSET_FIELDS: dict[str, AssetCategory] = {
    "cover": AssetCategory.IMAGES,
    "preview_video": AssetCategory.VIDEOS,
    "demo_video": AssetCategory.VIDEOS,
}
LIST_ASSET_FIELDS: dict[str, AssetCategory] = {
    "gallery": AssetCategory.IMAGES,
    "attachments": AssetCategory.FILES,
}


class CatalogItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "catalog_items"

    # Directory key for the item's assets; cleared when the item is archived.
    code: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[CatalogItemStatus] = mapped_column(
        catalog_item_status_enum,
        nullable=False,
        default=CatalogItemStatus.DRAFT,
        index=True,
    )
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    cover: Mapped[str] = mapped_column(Text, nullable=False, default="")
    preview_video: Mapped[str] = mapped_column(Text, nullable=False, default="")
    demo_video: Mapped[str] = mapped_column(Text, nullable=False, default="")
    gallery: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    attachments: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)

    def asset_references(self) -> list[str]:
        refs = [self.cover, self.preview_video, self.demo_video]
        refs.extend(self.gallery or [])
        refs.extend(self.attachments or [])
        return [r for r in refs if r]
