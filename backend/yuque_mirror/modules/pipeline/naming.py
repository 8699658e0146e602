"""Local file names for downloaded resources."""

import hashlib
import os
from typing import AbstractSet, Optional
from urllib.parse import parse_qs, unquote, urlsplit

from ..common.utils.filenames import sanitize_segment

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".bmp", ".ico")
DEFAULT_IMAGE_EXTENSION = ".png"
DEFAULT_ATTACHMENT_NAME = "attachment"


def image_extension(url: str) -> str:
    """First known image extension that occurs in the URL path, ``.png`` otherwise."""
    path = urlsplit(url).path.lower()
    for extension in IMAGE_EXTENSIONS:
        if extension in path:
            return extension
    return DEFAULT_IMAGE_EXTENSION


def image_filename(url: str, taken: AbstractSet[str]) -> str:
    """Content-independent name for an image: a short hash of its URL.

    Args:
        url: Remote image URL
        taken: Names already present in the target directory or allocated earlier

    Returns:
        ``<hash><ext>``, or ``<hash>_<n><ext>`` when that is taken
    """
    digest = hashlib.md5(url.encode("utf-8")).hexdigest()[:12]
    extension = image_extension(url)

    filename = f"{digest}{extension}"
    counter = 1
    while filename in taken:
        filename = f"{digest}_{counter}{extension}"
        counter += 1
    return filename


def attachment_original_name(url: str, display_text: Optional[str] = None) -> str:
    """Best guess at an attachment's original file name.

    The last path segment wins when it has an extension, then a ``filename``
    or ``name`` query parameter, then the link text.
    """
    parts = urlsplit(url)
    last_segment = parts.path.rsplit("/", 1)[-1]
    if last_segment and "." in last_segment:
        return sanitize_segment(unquote(last_segment), DEFAULT_ATTACHMENT_NAME)

    query = parse_qs(parts.query)
    for key in ("filename", "name"):
        values = query.get(key)
        if values and values[0]:
            return sanitize_segment(values[0], DEFAULT_ATTACHMENT_NAME)

    return sanitize_segment((display_text or "").strip(), DEFAULT_ATTACHMENT_NAME)


def unique_filename(filename: str, taken: AbstractSet[str]) -> str:
    """``filename`` itself when free, else ``<base>_<n><ext>`` with the smallest free n."""
    if filename not in taken:
        return filename

    base, extension = os.path.splitext(filename)

    counter = 1
    candidate = f"{base}_{counter}{extension}"
    while candidate in taken:
        counter += 1
        candidate = f"{base}_{counter}{extension}"
    return candidate
