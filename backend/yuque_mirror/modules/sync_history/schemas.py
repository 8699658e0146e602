"""Pydantic schemas for sync history."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class HistoryStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SyncHistoryCreate(BaseModel):
    total_docs: int = Field(default=0, ge=0)


class SyncHistoryRead(BaseModel):
    """Schema for reading a history row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    total_docs: int
    synced_docs: int
    failed_docs: int
    status: HistoryStatus
    error_message: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None


class SyncHistoryListResponse(BaseModel):
    history: List[SyncHistoryRead]
    total: int


class SyncStatistics(BaseModel):
    """Totals over the stored history."""

    total_syncs: int = 0
    successful_syncs: int = 0
    failed_syncs: int = 0
    total_docs_synced: int = 0
