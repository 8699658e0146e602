"""Pydantic schemas for embedded resources."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..common.schemas import TimestampSchema


class ResourceType(str, Enum):
    IMAGE = "image"
    ATTACHMENT = "attachment"


class ResourceStatus(str, Enum):
    PENDING = "pending"
    DOWNLOADED = "downloaded"
    FAILED = "failed"


class ResourceRecord(BaseModel):
    """Schema for recording the outcome of a resource download."""

    doc_id: str
    resource_type: ResourceType
    remote_url: str
    local_path: Optional[str] = Field(default=None, description="Absolute path of the downloaded file")
    filename: Optional[str] = None
    size_bytes: Optional[int] = Field(default=None, ge=0)
    status: ResourceStatus = ResourceStatus.PENDING


class ResourceRead(TimestampSchema, ResourceRecord):
    """Schema for reading resource data."""

    model_config = ConfigDict(from_attributes=True)

    id: int


class ResourceListResponse(BaseModel):
    resources: List[ResourceRead]
    total: int


class ResourceStats(BaseModel):
    """Aggregate numbers over stored resources."""

    images: int = 0
    attachments: int = 0
    downloaded: int = 0
    failed: int = 0
    total_bytes: int = 0
