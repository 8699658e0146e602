"""SQLAlchemy models for resumable sync sessions."""

from typing import List

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base


class SyncSession(Base, TimestampMixin):
    """Checkpoint of a sync run.

    ``completed_doc_ids`` grows in completion order and is what a resumed run
    skips. ``created_at`` is the start of the run.
    """

    __tablename__ = "sync_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    book_ids: Mapped[List[str]] = mapped_column(JSON, default_factory=list)
    total_docs: Mapped[int] = mapped_column(Integer, default=0)
    completed_doc_ids: Mapped[List[str]] = mapped_column(JSON, default_factory=list)
    status: Mapped[str] = mapped_column(String(16), default="running", index=True)
