"""File naming helpers for uploaded blobs."""

import re
import time
import uuid
from pathlib import Path

# Extensions accepted for each image MIME type
IMAGE_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
    "image/bmp": ".bmp",
}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def is_image_mime(mime_type: str | None) -> bool:
    return bool(mime_type) and mime_type.lower().startswith("image/")


def unique_blob_name(original_name: str | None, mime_type: str | None = None) -> str:
    """
    Collision-resistant blob name: ``<epoch-ms>-<random hex><ext>``.

    The extension comes from the original name when present, else from the
    MIME type. Only letters, digits, ``_ . -`` survive.

    Args:
        original_name: Client-supplied file name (untrusted)
        mime_type: Client-supplied content type

    Returns:
        A bare file name safe to join under the uploads directory
    """
    suffix = Path(original_name or "").suffix.lower()
    suffix = _UNSAFE_CHARS.sub("", suffix)
    if not suffix or suffix == ".":
        suffix = IMAGE_EXTENSIONS.get((mime_type or "").lower(), "")

    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}{suffix}"
