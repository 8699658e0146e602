"""Filesystem-safe naming helpers."""

import re

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_segment(name: str, fallback: str = "untitled") -> str:
    """Make a string usable as a single path segment.

    Replaces reserved and control characters with ``_`` and trims trailing
    dots and spaces. Never returns an empty string.

    Example:
        ```python
        sanitize_segment('Q3: plan/draft?')  # 'Q3_ plan_draft_'
        sanitize_segment('...', fallback='doc')  # 'doc'
        ```
    """
    cleaned = _UNSAFE_CHARS.sub("_", name or "").rstrip(". ").strip()
    if not cleaned or cleaned in (".", ".."):
        return fallback
    return cleaned
