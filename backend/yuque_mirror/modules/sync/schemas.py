"""Pydantic schemas for sync requests, progress and results."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..document.schemas import SyncStatus


class SyncOptions(BaseModel):
    """What a sync run should cover."""

    book_ids: List[str] = Field(default_factory=list, description="Books to synchronize")
    document_ids: Optional[List[str]] = Field(
        default=None, description="Restrict the work list to these documents (intersection)"
    )
    force: bool = Field(default=False, description="Re-download every live document instead of only changes")


class BookContext(BaseModel):
    """Addressing information for one book, keyed by book id in a sync request."""

    user_login: str
    slug: str
    name: str


class SyncStartRequest(SyncOptions):
    """Body of a sync start request."""

    book_context: Dict[str, BookContext] = Field(
        default_factory=dict,
        description="Book id to addressing info; books missing here are looked up in the metadata store",
    )

    @field_validator("document_ids")
    @classmethod
    def empty_filter_means_all(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """An empty document list does not restrict the run."""
        return v or None


class ResumeRequest(BaseModel):
    """Body of a resume request."""

    book_context: Dict[str, BookContext] = Field(default_factory=dict)


class ChangesRequest(BaseModel):
    """Body of a change detection request."""

    book_ids: List[str] = Field(min_length=1)


class SyncPhase(str, Enum):
    """Progress vocabulary of a sync run."""

    DOWNLOADING = "downloading"
    WRITING = "writing"
    COMPARING = "comparing"


class SyncProgress(BaseModel):
    """One progress event of a sync run."""

    current: int = Field(ge=0)
    total: int = Field(ge=0)
    current_doc: str = ""
    status: SyncPhase


class SyncResult(BaseModel):
    """Outcome of a sync run."""

    success: bool
    total_docs: int = 0
    synced_docs: int = 0
    failed_docs: int = 0
    errors: List[str] = Field(default_factory=list)
    cancelled: bool = False
    completed: bool = Field(default=False, description="The run went through its whole work list")
    history_id: Optional[int] = None


class SyncEvent(BaseModel):
    """Message on the sync event stream."""

    event: str = Field(description="progress or finished")
    run_id: Optional[str] = None
    progress: Optional[SyncProgress] = None
    result: Optional[SyncResult] = None

    @property
    def is_final(self) -> bool:
        return self.event == "finished"


class DocumentChange(BaseModel):
    """A document as classified by change detection."""

    id: str
    book_id: str
    slug: str
    title: str
    local_path: Optional[str] = None
    remote_updated_at: Optional[str] = None
    local_synced_at: Optional[str] = None
    sync_status: SyncStatus


class ChangeSet(BaseModel):
    """Documents that are new, modified or gone relative to the metadata store."""

    new: List[DocumentChange] = Field(default_factory=list)
    modified: List[DocumentChange] = Field(default_factory=list)
    deleted: List[DocumentChange] = Field(default_factory=list)

    def extend(self, other: "ChangeSet") -> None:
        self.new.extend(other.new)
        self.modified.extend(other.modified)
        self.deleted.extend(other.deleted)


class SyncStatusResponse(BaseModel):
    """Snapshot of the orchestrator's run state."""

    is_running: bool
    history_id: Optional[int] = None
    session_id: Optional[int] = None
    current_document: Optional[str] = None
    progress: Optional[SyncProgress] = None


class SyncSessionInfo(BaseModel):
    """An interrupted sync session and the work it still has left."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    book_ids: List[str]
    total_docs: int
    completed_doc_ids: List[str]
    remaining_doc_ids: List[str] = Field(default_factory=list)
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None
