"""Pydantic schemas for mirror statistics."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class MirrorStatistics(BaseModel):
    """Snapshot of what the mirror holds."""

    total_documents: int = 0
    synced_documents: int = 0
    failed_documents: int = 0
    pending_documents: int = 0
    new_documents: int = 0
    modified_documents: int = 0
    deleted_documents: int = 0

    total_books: int = 0
    total_storage_bytes: int = Field(default=0, description="Size of the sync directory on disk")
    last_sync_time: Optional[datetime] = Field(default=None, description="Completion of the last successful sync")

    image_count: int = 0
    attachment_count: int = 0
    sync_runs: int = 0
    total_docs_synced: int = 0
