from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from app.core.config import Settings, get_settings
from app.core.enums import AssetCategory
from app.services.asset_refs import parse_item_reference
from app.services.asset_storage import item_subdir


logger = logging.getLogger(__name__)


def asset_keep_set(
    code: int,
    refs: Iterable[str | None],
    *,
    settings: Settings | None = None,
) -> dict[AssetCategory, set[str]]:
    """
    Filenames per category that `refs` point at inside this code's directory.

    References elsewhere (external URLs, staging uploads, other codes) contribute
    nothing. A reference protects the file it actually points at, so the category
    comes from the reference itself rather than from the field that holds it.
    """
    settings = settings or get_settings()
    keep: dict[AssetCategory, set[str]] = {category: set() for category in AssetCategory}
    for ref in refs:
        parsed = parse_item_reference(ref, settings.upload_url_prefix)
        if parsed is not None and parsed.code == code:
            keep[parsed.category].add(parsed.filename)
    return keep


def sweep_orphans(
    code: int,
    keep: Mapping[str, Iterable[str]],
    *,
    settings: Settings | None = None,
) -> list[str]:
    """
    Delete every file in the code's typed subdirectories whose name is not in `keep`.

    Only this code's own subdirectories are listed, so nothing outside them can be
    touched. Per-file failures are logged and skipped. Returns `category/name` of
    each deleted file.
    """
    settings = settings or get_settings()
    deleted: list[str] = []
    for category in AssetCategory:
        keep_names = set(keep.get(category.value, ()) or ())
        try:
            directory = item_subdir(code, category, settings=settings)
            entries = sorted(directory.iterdir())
        except OSError:
            logger.warning("Failed to list %s for item code %s", category.value, code, exc_info=True)
            continue

        for entry in entries:
            if entry.name in keep_names or not (entry.is_file() or entry.is_symlink()):
                continue
            try:
                entry.unlink()
            except FileNotFoundError:
                continue
            except OSError:
                logger.warning("Failed to delete orphaned asset %s", entry, exc_info=True, extra={"item_code": code})
                continue
            deleted.append(f"{category.value}/{entry.name}")

    if deleted:
        logger.info("Removed %s orphaned asset(s) for item code %s", len(deleted), code, extra={"item_code": code})
    return deleted
