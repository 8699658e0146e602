"""Book management service."""

from datetime import UTC, datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.logging import get_logger
from ...infrastructure.remote import RemoteAuthenticationError, RemoteError, RemoteProvider
from ..common.exceptions import BookNotFoundError
from .crud import book_crud
from .models import Book
from .schemas import BookListResponse, BookRead, BookUpsert

logger = get_logger()

# Upserts bypass the identity map, so entity reads reload their rows.
_FRESH = {"populate_existing": True}


class BookService:
    """Service for the books known to the mirror.

    Keeps the local book table in step with the remote listing and falls
    back to the cached rows when the remote cannot be reached.
    """

    async def upsert_books(self, books: List[BookUpsert], db: AsyncSession) -> None:
        """Insert or refresh books in one transaction.

        Args:
            books: Books as seen on the remote
            db: Database session
        """
        if not books:
            return

        now = datetime.now(UTC)
        stmt = sqlite_insert(Book).values(
            [{**book.model_dump(mode="json"), "created_at": now, "updated_at": now} for book in books]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Book.id],
            set_={
                "slug": stmt.excluded.slug,
                "name": stmt.excluded.name,
                "user_login": stmt.excluded.user_login,
                "book_type": stmt.excluded.book_type,
                "doc_count": stmt.excluded.doc_count,
                "updated_at": now,
            },
        )
        await db.execute(stmt)
        await db.commit()

    async def ensure_books(self, books: List[BookUpsert], db: AsyncSession) -> None:
        """Create rows for books that are not stored yet, leaving existing rows untouched."""
        if not books:
            return

        now = datetime.now(UTC)
        stmt = sqlite_insert(Book).values(
            [{**book.model_dump(mode="json"), "created_at": now, "updated_at": now} for book in books]
        )
        await db.execute(stmt.on_conflict_do_nothing(index_elements=[Book.id]))
        await db.commit()

    async def refresh_books(self, remote: RemoteProvider, db: AsyncSession) -> BookListResponse:
        """Refresh the book table from the remote listing.

        Authentication failures propagate. Any other remote failure returns
        the cached books instead.

        Args:
            remote: Remote provider to list books from
            db: Database session

        Returns:
            The stored books and whether they came from cache
        """
        try:
            remote_books = await remote.list_books()
        except RemoteAuthenticationError:
            raise
        except RemoteError as exc:
            logger.warning(f"Book listing failed, serving cached books: {exc}")
            books = await self.get_books(db)
            return BookListResponse(books=books, total=len(books), from_cache=True)

        await self.upsert_books(
            [
                BookUpsert(
                    id=book.id,
                    slug=book.slug,
                    name=book.name,
                    user_login=book.user_login,
                    book_type=book.book_type,
                    doc_count=book.doc_count,
                )
                for book in remote_books
            ],
            db,
        )
        logger.info(f"Refreshed {len(remote_books)} books from remote")

        books = await self.get_books(db)
        return BookListResponse(books=books, total=len(books))

    async def get_books(self, db: AsyncSession) -> List[BookRead]:
        """All stored books ordered by name."""
        result = await db.execute(select(Book).order_by(Book.name, Book.id), execution_options=_FRESH)
        return [BookRead.model_validate(book) for book in result.scalars().all()]

    async def get_book(self, book_id: str, db: AsyncSession) -> Optional[BookRead]:
        """Get a single book.

        Args:
            book_id: Remote book id
            db: Database session

        Returns:
            The book, or None when it is not stored
        """
        book = await db.get(Book, book_id, populate_existing=True)
        if book is None:
            return None
        return BookRead.model_validate(book)

    async def update_doc_count(self, book_id: str, doc_count: int, db: AsyncSession) -> None:
        await book_crud.update(db=db, object={"doc_count": doc_count}, id=book_id)

    async def delete_book(self, book_id: str, db: AsyncSession) -> None:
        """Delete a book together with its documents and resources.

        Raises:
            BookNotFoundError: If the book is not stored
        """
        if not await book_crud.exists(db=db, id=book_id):
            raise BookNotFoundError(f"Book {book_id} not found")
        await book_crud.delete(db=db, id=book_id)
        logger.info(f"Deleted book {book_id} and its documents")

    async def count_books(self, db: AsyncSession) -> int:
        result = await db.execute(select(func.count()).select_from(Book))
        return int(result.scalar_one())
