from __future__ import annotations

import logging
import shutil
from pathlib import Path

from app.core.config import Settings, get_settings
from app.core.enums import AssetCategory
from app.services.asset_refs import normalize_reference, relative_upload_parts


logger = logging.getLogger(__name__)


def _validate_code(code: int) -> int:
    if isinstance(code, bool) or not isinstance(code, int) or code < 1:
        raise ValueError(f"item code must be a positive integer, got {code!r}")
    return code


def items_root(settings: Settings | None = None) -> Path:
    settings = settings or get_settings()
    return settings.items_dir


def item_dir(code: int, *, settings: Settings | None = None) -> Path:
    """
    Return `uploads/items/{code}/`, creating it and its typed subdirectories if missing.

    Every other part of the asset code goes through here, so an item that has a code
    always has its full directory layout, even with zero assets.
    """
    root = items_root(settings) / str(_validate_code(code))
    root.mkdir(parents=True, exist_ok=True)
    for category in AssetCategory:
        (root / category.value).mkdir(exist_ok=True)
    return root


def item_subdir(code: int, category: AssetCategory | str, *, settings: Settings | None = None) -> Path:
    return item_dir(code, settings=settings) / AssetCategory(category).value


def purge_item_dir(code: int, *, settings: Settings | None = None) -> bool:
    """Remove the whole code directory. Failures are logged, never raised."""
    root = items_root(settings) / str(_validate_code(code))
    try:
        shutil.rmtree(root)
    except FileNotFoundError:
        return False
    except OSError:
        logger.warning("Failed to purge item directory %s", root, exc_info=True, extra={"item_code": code})
        return False
    logger.info("Purged item directory %s", root, extra={"item_code": code})
    return True


def resolve_reference(ref: str, *, settings: Settings | None = None) -> Path | None:
    """
    Map an upload reference (`/uploads/tmp/a.png`) to its absolute path on disk.

    Returns None for anything that is not under the upload prefix or that would
    escape the upload root.
    """
    settings = settings or get_settings()
    parts = relative_upload_parts(normalize_reference(ref, settings.upload_url_prefix), settings.upload_url_prefix)
    if parts is None:
        return None

    base_dir = settings.upload_dir.resolve()
    abs_path = base_dir.joinpath(*parts).resolve()
    try:
        abs_path.relative_to(base_dir)
    except ValueError:
        return None
    if abs_path == base_dir:
        return None
    return abs_path


def public_reference(abs_path: Path, *, settings: Settings | None = None) -> str:
    """Inverse of `resolve_reference` for paths inside the upload root."""
    settings = settings or get_settings()
    rel = abs_path.resolve().relative_to(settings.upload_dir.resolve())
    return f"{settings.upload_url_prefix}/{rel.as_posix()}"
