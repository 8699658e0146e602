from typing import Any, AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, MappedAsDataclass

from ..config.settings import settings


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """Turn on SQLite foreign key enforcement for every new connection.

    SQLite ships with foreign keys disabled, which would silently skip the
    ON DELETE CASCADE rules between books, documents and resources.

    Args:
        async_engine: Engine whose pooled connections should enforce foreign keys.
    """

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.SQLITE_ECHO,
    future=True,
)
enable_sqlite_foreign_keys(engine)

local_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase, MappedAsDataclass):
    """Base class for all metadata store models.

    Combines SQLAlchemy's DeclarativeBase with MappedAsDataclass so every
    model gets a generated ``__init__``/``__repr__`` from its mapped columns.
    Columns declared with ``init=False`` (surrogate keys, timestamps) are
    filled in by defaults instead of the constructor.

    Example:
        ```python
        class Book(Base):
            __tablename__ = "books"

            id: Mapped[str] = mapped_column(String(64), primary_key=True)
            name: Mapped[str] = mapped_column(String(255))

        book = Book(id="42", name="Engineering Handbook")
        ```
    """

    pass


async def async_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for database session management with proper lifecycle.

    Yields:
        AsyncSession: A configured async database session.

    Note:
        Designed to be used as a FastAPI dependency via ``Depends(async_session)``.
        Sessions are created with ``expire_on_commit=False`` so ORM objects stay
        readable after the service layer commits.
    """
    async_get_db = local_session
    async with async_get_db() as db:
        yield db


async def create_tables() -> None:
    """Create all metadata tables if they don't exist.

    Idempotent: existing tables are left unchanged. Model modules must be
    imported before the tables are on ``Base.metadata``; the model registry is imported here for that.
    """
    from ...modules import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
