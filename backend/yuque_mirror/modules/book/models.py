"""SQLAlchemy models for book entities."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base


class Book(Base, TimestampMixin):
    """A remote knowledge base whose documents are mirrored locally.

    Books are created and refreshed from the remote listing. Deleting a book
    cascades to its documents and their resources.
    """

    __tablename__ = "books"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    slug: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255), index=True)
    user_login: Mapped[str] = mapped_column(String(255))
    book_type: Mapped[str] = mapped_column(String(16), default="owner")
    doc_count: Mapped[int] = mapped_column(Integer, default=0)
