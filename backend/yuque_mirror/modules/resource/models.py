"""SQLAlchemy models for embedded resources."""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base


class Resource(Base, TimestampMixin):
    """An image or attachment referenced by a document.

    Unique per ``(doc_id, remote_url)``; recording the same reference again
    updates the existing row.
    """

    __tablename__ = "resources"
    __table_args__ = (UniqueConstraint("doc_id", "remote_url", name="uq_resources_doc_url"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    doc_id: Mapped[str] = mapped_column(String(64), ForeignKey("documents.id", ondelete="CASCADE"), index=True)
    resource_type: Mapped[str] = mapped_column(String(16))
    remote_url: Mapped[str] = mapped_column(Text)
    local_path: Mapped[Optional[str]] = mapped_column(Text, default=None)
    filename: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    size_bytes: Mapped[Optional[int]] = mapped_column(Integer, default=None)
    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)
