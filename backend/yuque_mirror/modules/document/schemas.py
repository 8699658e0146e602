"""Pydantic schemas for document entities."""

from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..common.schemas import TimestampSchema


class SyncStatus(str, Enum):
    """Synchronization state of a single document."""

    NEW = "new"
    PENDING = "pending"
    MODIFIED = "modified"
    SYNCED = "synced"
    DELETED = "deleted"
    FAILED = "failed"


class DocumentBase(BaseModel):
    """Base schema for document data."""

    book_id: Annotated[str, Field(min_length=1, max_length=64, description="Owning book id")]
    slug: Annotated[str, Field(max_length=255, description="Remote path segment of the document")]
    title: Annotated[str, Field(max_length=512, description="Document title")]

    uuid: Optional[str] = Field(default=None, description="Catalog node uuid")
    parent_uuid: Optional[str] = Field(default=None, description="Catalog parent uuid, null for roots")
    child_uuid: Optional[str] = Field(default=None, description="First child uuid in the catalog")
    doc_type: str = Field(default="DOC", description="DOC or TITLE")
    depth: int = Field(default=0, ge=0)
    sort_order: int = Field(default=0, ge=0)

    local_path: Optional[str] = Field(default=None, description="Absolute path of the mirrored file")
    remote_created_at: Optional[str] = Field(default=None, description="ISO-8601 creation time on the remote")
    remote_updated_at: Optional[str] = Field(default=None, description="ISO-8601 last modification on the remote")
    local_synced_at: Optional[str] = Field(default=None, description="ISO-8601 time of the last successful sync")
    sync_status: SyncStatus = Field(default=SyncStatus.NEW)


class DocumentUpsert(DocumentBase):
    """Schema for inserting or refreshing a document row.

    Optional fields left as None keep whatever value is already stored.
    """

    id: Annotated[str, Field(min_length=1, max_length=64, description="Remote document id")]


class DocumentRead(TimestampSchema, DocumentBase):
    """Schema for reading document data."""

    model_config = ConfigDict(from_attributes=True)

    id: str


class DocumentListResponse(BaseModel):
    """Documents of one book."""

    documents: List[DocumentRead]
    total: int
    from_cache: bool = Field(default=False, description="True when the remote was unreachable and stored rows were returned")


class FailedDocument(BaseModel):
    """A failed document together with the name of its book."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    book_id: str
    book_name: Optional[str] = None
    title: str
    remote_updated_at: Optional[str] = None
    local_synced_at: Optional[str] = None


class StatusCounts(BaseModel):
    """Number of documents per sync status."""

    new: int = 0
    pending: int = 0
    modified: int = 0
    synced: int = 0
    deleted: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.new + self.pending + self.modified + self.synced + self.deleted + self.failed
