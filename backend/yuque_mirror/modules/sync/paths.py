"""Where mirrored documents are written."""

import os

from ..common.utils.filenames import sanitize_segment


def build_document_path(sync_directory: str, book_name: str, title: str) -> str:
    """Absolute file path of a document: ``<sync_directory>/<book>/<title>.md``."""
    book_segment = sanitize_segment(book_name, fallback="untitled-book")
    title_segment = sanitize_segment(title, fallback="untitled")
    return os.path.join(sync_directory, book_segment, f"{title_segment}.md")
