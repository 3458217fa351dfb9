from __future__ import annotations

from enum import StrEnum


class AssetCategory(StrEnum):
    # Values double as the subdirectory names under uploads/items/{code}/.
    IMAGES = "images"
    VIDEOS = "videos"
    FILES = "files"


class CatalogItemStatus(StrEnum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"
