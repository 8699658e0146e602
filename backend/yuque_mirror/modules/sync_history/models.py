"""SQLAlchemy models for sync history."""

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.session import Base


class SyncHistory(Base):
    """Audit row of one sync run.

    A row is finalized exactly once, by setting ``completed_at``; finalized
    rows are never updated again.
    """

    __tablename__ = "sync_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    total_docs: Mapped[int] = mapped_column(Integer, default=0)
    synced_docs: Mapped[int] = mapped_column(Integer, default=0)
    failed_docs: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(16), default="running", index=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, default=None)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default_factory=lambda: datetime.now(UTC), index=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=None)
