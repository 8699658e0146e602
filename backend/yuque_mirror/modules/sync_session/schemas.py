"""Pydantic schemas for sync sessions."""

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from ..common.schemas import TimestampSchema


class SessionStatus(str, Enum):
    RUNNING = "running"
    INTERRUPTED = "interrupted"
    COMPLETED = "completed"


class SyncSessionCreate(BaseModel):
    """Schema for opening a session."""

    book_ids: List[str] = Field(default_factory=list)
    total_docs: int = Field(default=0, ge=0)


class SyncSessionRead(TimestampSchema):
    """Schema for reading session data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    book_ids: List[str]
    total_docs: int
    completed_doc_ids: List[str]
    status: SessionStatus
