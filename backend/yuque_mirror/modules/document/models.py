"""SQLAlchemy models for document entities."""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base


class Document(Base, TimestampMixin):
    """A remote document and its local synchronization state.

    Documents form a tree per book through the ``uuid``/``parent_uuid``
    hierarchy fields (a null parent is a root). ``local_path`` and
    ``local_synced_at`` are only ever written together, when the document
    reaches ``synced``. Remote removal is recorded as ``deleted``; rows are
    only physically removed by an explicit purge.
    """

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    book_id: Mapped[str] = mapped_column(String(64), ForeignKey("books.id", ondelete="CASCADE"), index=True)
    slug: Mapped[str] = mapped_column(String(255))
    title: Mapped[str] = mapped_column(String(512), index=True)

    uuid: Mapped[Optional[str]] = mapped_column(String(64), default=None, index=True)
    parent_uuid: Mapped[Optional[str]] = mapped_column(String(64), default=None, index=True)
    child_uuid: Mapped[Optional[str]] = mapped_column(String(64), default=None)
    doc_type: Mapped[str] = mapped_column(String(16), default="DOC")
    depth: Mapped[int] = mapped_column(Integer, default=0)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    local_path: Mapped[Optional[str]] = mapped_column(Text, default=None)
    remote_created_at: Mapped[Optional[str]] = mapped_column(String(64), default=None)
    remote_updated_at: Mapped[Optional[str]] = mapped_column(String(64), default=None)
    local_synced_at: Mapped[Optional[str]] = mapped_column(String(64), default=None)
    sync_status: Mapped[str] = mapped_column(String(16), default="new", index=True)
