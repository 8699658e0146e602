"""Tests for book service."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from yuque_mirror.infrastructure.remote import RemoteAuthenticationError, RemoteBook, RemoteError
from yuque_mirror.modules.book.schemas import BookType, BookUpsert
from yuque_mirror.modules.book.services import BookService
from yuque_mirror.modules.common.exceptions import BookNotFoundError
from yuque_mirror.modules.document.schemas import DocumentUpsert
from yuque_mirror.modules.document.services import DocumentService


@pytest.fixture
def book_service():
    """Create book service instance."""
    return BookService()


@pytest.fixture
def remote_books(fake_remote):
    fake_remote.books = [
        RemoteBook(
            id="book-1", slug="handbook", name="Engineering Handbook", user_login="alice", book_type="owner", doc_count=3
        ),
        RemoteBook(id="book-2", slug="ops", name="Ops", user_login="bob", book_type="collab", doc_count=1),
    ]
    return fake_remote


@pytest.mark.asyncio
async def test_refresh_books(book_service: BookService, db_session: AsyncSession, remote_books):
    """Test refreshing the book table from the remote listing."""
    result = await book_service.refresh_books(remote_books, db_session)

    assert result.from_cache is False
    assert result.total == 2
    assert [book.name for book in result.books] == ["Engineering Handbook", "Ops"]
    assert result.books[1].book_type == BookType.COLLAB


@pytest.mark.asyncio
async def test_refresh_books_updates_existing_rows(book_service: BookService, db_session: AsyncSession, remote_books):
    await book_service.refresh_books(remote_books, db_session)
    remote_books.books[0].name = "Renamed Handbook"

    await book_service.refresh_books(remote_books, db_session)

    book = await book_service.get_book("book-1", db_session)
    assert book.name == "Renamed Handbook"
    assert await book_service.count_books(db_session) == 2


@pytest.mark.asyncio
async def test_refresh_books_falls_back_to_cache(book_service: BookService, db_session: AsyncSession, remote_books):
    await book_service.refresh_books(remote_books, db_session)
    remote_books.list_error = RemoteError("service unavailable")

    result = await book_service.refresh_books(remote_books, db_session)

    assert result.from_cache is True
    assert result.total == 2


@pytest.mark.asyncio
async def test_refresh_books_authentication_error(book_service: BookService, db_session: AsyncSession, remote_books):
    remote_books.credentials = None

    with pytest.raises(RemoteAuthenticationError):
        await book_service.refresh_books(remote_books, db_session)


@pytest.mark.asyncio
async def test_ensure_books_keeps_existing_rows(book_service: BookService, db_session: AsyncSession):
    await book_service.upsert_books(
        [BookUpsert(id="book-1", slug="handbook", name="Stored", user_login="alice", doc_count=5)], db_session
    )

    await book_service.ensure_books(
        [
            BookUpsert(id="book-1", slug="handbook", name="Placeholder", user_login="alice"),
            BookUpsert(id="book-2", slug="ops", name="Ops", user_login="alice"),
        ],
        db_session,
    )

    assert (await book_service.get_book("book-1", db_session)).name == "Stored"
    assert (await book_service.get_book("book-2", db_session)).name == "Ops"


@pytest.mark.asyncio
async def test_get_book_not_found(book_service: BookService, db_session: AsyncSession):
    assert await book_service.get_book("missing", db_session) is None


@pytest.mark.asyncio
async def test_delete_book_cascades(book_service: BookService, db_session: AsyncSession):
    """Deleting a book removes its documents too."""
    await book_service.upsert_books(
        [BookUpsert(id="book-1", slug="handbook", name="Handbook", user_login="alice")], db_session
    )
    await DocumentService().upsert_document(
        DocumentUpsert(id="1", book_id="book-1", slug="intro", title="Intro"), db_session
    )

    await book_service.delete_book("book-1", db_session)

    assert await book_service.get_book("book-1", db_session) is None
    assert await DocumentService().get_document("1", db_session) is None


@pytest.mark.asyncio
async def test_delete_book_not_found(book_service: BookService, db_session: AsyncSession):
    with pytest.raises(BookNotFoundError):
        await book_service.delete_book("missing", db_session)
