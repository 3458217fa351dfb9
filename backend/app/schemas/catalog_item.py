from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.enums import CatalogItemStatus


def _reject_archived(v: CatalogItemStatus | None) -> CatalogItemStatus | None:
    if v == CatalogItemStatus.ARCHIVED:
        raise ValueError("use DELETE to archive a catalog item")
    return v


class CatalogItemCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="")
    price_cents: int = Field(default=0, ge=0)
    status: CatalogItemStatus = Field(default=CatalogItemStatus.DRAFT)

    # Asset references: an upload path (/uploads/...), an external URL, or for
    # `cover`/`gallery` an inline `data:image/...;base64,` payload.
    cover: str | None = Field(default=None)
    preview_video: str | None = Field(default=None)
    demo_video: str | None = Field(default=None)
    gallery: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)

    @field_validator("status")
    @classmethod
    def _status_not_archived(cls, v: CatalogItemStatus) -> CatalogItemStatus:
        return _reject_archived(v)


class CatalogItemUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None)
    price_cents: int | None = Field(default=None, ge=0)
    status: CatalogItemStatus | None = Field(default=None)

    cover: str | None = Field(default=None)
    preview_video: str | None = Field(default=None)
    demo_video: str | None = Field(default=None)
    gallery: list[str] | None = Field(default=None)
    attachments: list[str] | None = Field(default=None)

    @field_validator("status")
    @classmethod
    def _status_not_archived(cls, v: CatalogItemStatus | None) -> CatalogItemStatus | None:
        return _reject_archived(v)


class CatalogItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: int | None
    title: str
    description: str
    price_cents: int
    status: CatalogItemStatus
    published_at: datetime | None

    cover: str
    preview_video: str
    demo_video: str
    gallery: list[str]
    attachments: list[str]

    created_at: datetime
    updated_at: datetime
