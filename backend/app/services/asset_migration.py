from __future__ import annotations

import binascii
import logging
import secrets
import shutil
import time
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from app.core.config import Settings, get_settings
from app.core.enums import AssetCategory
from app.services.asset_refs import (
    code_from_parts,
    decode_inline_image,
    is_inline_image,
    is_upload_reference,
    normalize_reference,
)
from app.services.asset_storage import item_subdir, public_reference, resolve_reference


logger = logging.getLogger(__name__)


def _inline_image_filename(extension: str) -> str:
    return f"cover-{int(time.time() * 1000)}-{secrets.token_hex(3)}.{extension}"


def _store_inline_image(ref: str, code: int, settings: Settings) -> str | None:
    try:
        image = decode_inline_image(ref)
    except (binascii.Error, ValueError):
        logger.warning("Inline image payload is not valid base64", extra={"item_code": code})
        return None
    if image is None:
        logger.warning("Unsupported inline image type: %s", ref[:32], extra={"item_code": code})
        return None

    try:
        target = item_subdir(code, AssetCategory.IMAGES, settings=settings) / _inline_image_filename(image.extension)
        target.write_bytes(image.data)
    except OSError:
        logger.warning("Failed to write inline image for item code %s", code, exc_info=True, extra={"item_code": code})
        return None

    result = public_reference(target, settings=settings)
    logger.info("Stored inline image as %s", result, extra={"item_code": code, "bytes": len(image.data)})
    return result


def _is_code_owned(path: Path, settings: Settings) -> bool:
    # Structural check on `items/{code}/...` rather than substring matching on the path.
    try:
        rel = path.relative_to(settings.upload_dir.resolve())
    except ValueError:
        return False
    return code_from_parts(rel.parts) is not None


def relocate_asset(
    ref: str | None,
    code: int,
    category: AssetCategory | str,
    *,
    settings: Settings | None = None,
) -> str | None:
    """
    Bring an asset reference into `uploads/items/{code}/{category}/` and return the new reference.

    - inline `data:image/...;base64,` payloads (images only) are decoded into a new file;
    - references outside the upload prefix (external URLs) are returned unchanged;
    - files already owned by some code directory are copied, staged uploads are moved;
    - an existing file with the same name at the destination is replaced.

    Filesystem problems never raise: the original reference is returned and a warning
    logged, so the caller can persist it and retry later.
    """
    if not ref:
        return ref
    settings = settings or get_settings()
    category = AssetCategory(category)

    if category == AssetCategory.IMAGES and is_inline_image(ref):
        return _store_inline_image(ref, code, settings) or ref

    prefix = settings.upload_url_prefix
    local = normalize_reference(ref, prefix)
    if not is_upload_reference(local, prefix):
        logger.debug("Leaving foreign asset reference untouched: %s", ref[:200])
        return ref

    source = resolve_reference(local, settings=settings)
    filename = PurePosixPath(local).name
    if source is None or filename in {"", ".", ".."}:
        logger.warning("Asset reference escapes the upload root: %s", local, extra={"item_code": code})
        return ref

    try:
        target = item_subdir(code, category, settings=settings) / filename
    except OSError:
        logger.warning("Item directory unavailable for code %s", code, exc_info=True, extra={"item_code": code})
        return ref

    if source == target.resolve():
        return ref

    if not source.is_file():
        logger.warning("Asset source file does not exist: %s", source, extra={"item_code": code, "ref": local})
        return ref

    if target.exists() or target.is_symlink():
        try:
            target.unlink()
            logger.info("Replaced existing asset %s", target, extra={"item_code": code})
        except OSError:
            logger.warning("Failed to remove existing asset %s", target, exc_info=True, extra={"item_code": code})

    try:
        if _is_code_owned(source, settings):
            # Owned by another item (e.g. duplicating): that item keeps its copy.
            shutil.copyfile(source, target)
            logger.info("Copied asset %s -> %s", source, target, extra={"item_code": code})
        else:
            shutil.move(source, target)
            logger.info("Moved asset %s -> %s", source, target, extra={"item_code": code})
    except OSError:
        logger.warning("Failed to relocate asset %s", source, exc_info=True, extra={"item_code": code})
        return ref

    return public_reference(target, settings=settings)


def relocate_assets(
    refs: Iterable[str] | None,
    code: int,
    category: AssetCategory | str,
    *,
    settings: Settings | None = None,
) -> list[str]:
    return [relocate_asset(ref, code, category, settings=settings) or ref for ref in refs or []]
