from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, MappedAsDataclass, mapped_column


class TimestampMixin(MappedAsDataclass):
    """Mixin for adding created_at and updated_at timestamp columns.

    Provides automatic timestamp tracking for metadata records. Both columns
    default to the current UTC time and are excluded from the dataclass
    constructor (``init=False``).

    Attributes:
        created_at: Timestamp when the record was created.
        updated_at: Timestamp when the record was last updated.

    Note:
        FastCRUD refreshes ``updated_at`` on every ``update`` call. Raw
        SQLAlchemy upserts must set it explicitly.

        SQLite stores these values without timezone information, so values
        read back are naive UTC datetimes. Compare them inside SQL (ORDER BY)
        rather than against aware datetimes in Python.

    Example:
        ```python
        class SyncSession(Base, TimestampMixin):
            __tablename__ = "sync_sessions"
            id: Mapped[int] = mapped_column(Integer, primary_key=True, init=False)

        session = SyncSession()
        # session.created_at and session.updated_at are set automatically
        ```
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        init=False,
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default_factory=lambda: datetime.now(UTC),
        nullable=True,
        init=False,
    )
