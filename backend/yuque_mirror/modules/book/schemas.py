"""Pydantic schemas for book entities."""

from enum import Enum
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field

from ..common.schemas import TimestampSchema


class BookType(str, Enum):
    """Whether the current user owns the book or collaborates on it."""

    OWNER = "owner"
    COLLAB = "collab"


class BookBase(BaseModel):
    """Base schema for book data."""

    slug: Annotated[str, Field(max_length=255, description="Remote path segment of the book")]
    name: Annotated[str, Field(max_length=255, description="Display name")]
    user_login: Annotated[str, Field(max_length=255, description="Login of the owning user")]
    book_type: BookType = Field(default=BookType.OWNER, description="Ownership of the book")
    doc_count: int = Field(default=0, ge=0, description="Cached number of documents")


class BookUpsert(BookBase):
    """Schema for creating or refreshing a book from the remote listing."""

    id: Annotated[str, Field(min_length=1, max_length=64, description="Remote book id")]


class BookRead(TimestampSchema, BookBase):
    """Schema for reading book data."""

    model_config = ConfigDict(from_attributes=True)

    id: str


class BookListResponse(BaseModel):
    """Books currently known to the mirror."""

    books: List[BookRead]
    total: int
    from_cache: bool = Field(default=False, description="True when the remote was unreachable and cached rows were returned")
