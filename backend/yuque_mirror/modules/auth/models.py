"""SQLAlchemy models for the stored remote session."""

from sqlalchemy import BigInteger, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base


class AuthSession(Base, TimestampMixin):
    """The single remote session the mirror works with.

    ``expires_at`` is a millisecond epoch. Saving a new session replaces the
    previous row.
    """

    __tablename__ = "auth_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    user_id: Mapped[str] = mapped_column(String(64))
    user_name: Mapped[str] = mapped_column(String(255))
    login: Mapped[str] = mapped_column(String(255))
    cookies: Mapped[str] = mapped_column(Text)
    expires_at: Mapped[int] = mapped_column(BigInteger)
