from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from app.core.enums import AssetCategory


ITEMS_SEGMENT = "items"

_INLINE_IMAGE_RE = re.compile(r"^data:image/(png|jpeg|jpg|webp);base64,(.+)$", re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True)
class ItemAssetRef:
    code: int
    category: AssetCategory
    filename: str


@dataclass(frozen=True)
class InlineImage:
    extension: str
    data: bytes


def is_inline_image(ref: str | None) -> bool:
    return bool(ref) and ref.startswith("data:image/")


def decode_inline_image(ref: str) -> InlineImage | None:
    """
    Decode a `data:image/{png|jpeg|jpg|webp};base64,...` payload.

    Returns None for other subtypes. Raises `binascii.Error` for a malformed payload.
    """
    match = _INLINE_IMAGE_RE.match(ref.strip())
    if match is None:
        return None
    detected = match.group(1).lower()
    extension = "jpg" if detected == "jpeg" else detected
    payload = "".join(match.group(2).split()).rstrip("=")
    # Accept URL-safe and unpadded payloads.
    payload += "=" * (-len(payload) % 4)
    altchars = b"-_" if ("-" in payload or "_" in payload) else None
    data = base64.b64decode(payload, altchars=altchars, validate=True)
    if not data:
        raise binascii.Error("empty image payload")
    return InlineImage(extension=extension, data=data)


def normalize_reference(ref: str, prefix: str) -> str:
    """
    Strip query string and fragment, then drop everything before the first `{prefix}/`.

    `https://shop.example/uploads/tmp/a.png?v=3` -> `/uploads/tmp/a.png`.
    """
    local = ref.split("?", 1)[0].split("#", 1)[0] or ref
    local = local.replace("\\", "/")
    marker = f"{prefix}/"
    idx = local.find(marker)
    if idx >= 0:
        local = local[idx:]
    return local


def is_upload_reference(ref: str, prefix: str) -> bool:
    return ref.startswith(f"{prefix}/")


def relative_upload_parts(ref: str, prefix: str) -> tuple[str, ...] | None:
    """Segments of a normalized reference below the upload prefix, or None if it is not one."""
    if not is_upload_reference(ref, prefix):
        return None
    parts = tuple(p for p in PurePosixPath(ref[len(prefix) :]).parts if p not in {"/", ""})
    return parts or None


def code_from_parts(parts: tuple[str, ...]) -> int | None:
    """Code of an `items/{code}/...` path (segments relative to the upload root)."""
    if len(parts) < 2 or parts[0] != ITEMS_SEGMENT:
        return None
    raw = parts[1]
    if not raw.isdigit() or raw.startswith("0"):
        return None
    return int(raw)


def parse_item_reference(ref: str | None, prefix: str) -> ItemAssetRef | None:
    """
    Parse `{prefix}/items/{code}/{category}/{filename}` into its segments.

    Anything else (external URL, staging upload, other layout) yields None.
    """
    if not ref:
        return None
    parts = relative_upload_parts(normalize_reference(ref, prefix), prefix)
    if parts is None or len(parts) != 4:
        return None
    code = code_from_parts(parts)
    if code is None:
        return None
    try:
        category = AssetCategory(parts[2])
    except ValueError:
        return None
    filename = parts[3]
    if filename in {".", ".."}:
        return None
    return ItemAssetRef(code=code, category=category, filename=filename)


def extract_basename_if_in_code(ref: str | None, code: int, prefix: str) -> str | None:
    parsed = parse_item_reference(ref, prefix)
    if parsed is None or parsed.code != code:
        return None
    return parsed.filename
