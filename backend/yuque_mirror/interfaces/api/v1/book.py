"""Book API endpoints."""

from fastapi import APIRouter, Depends, status

from ....infrastructure.remote import RemoteProvider
from ....modules.book.schemas import BookListResponse
from ....modules.book.services import BookService
from ....modules.common.utils.error_handler import to_http_exception
from ....modules.document.schemas import DocumentListResponse
from ....modules.document.services import DocumentService
from ..dependencies import DbSession, get_book_service, get_document_service, get_remote

router = APIRouter(prefix="/books", tags=["Books"])


@router.get(
    "",
    summary="List Books",
    description="Returns the books stored in the metadata store, ordered by name. Does not contact the remote.",
    responses={
        200: {"description": "Stored books"},
    },
)
async def list_books(
    db: DbSession,
    book_service: BookService = Depends(get_book_service),
) -> BookListResponse:
    """List stored books."""
    try:
        books = await book_service.get_books(db)
        return BookListResponse(books=books, total=len(books))
    except Exception as e:
        raise to_http_exception(e)


@router.post(
    "/refresh",
    summary="Refresh Books",
    description="""
    Lists the books of the current user on the remote (owned and collaborated,
    plus the notes pseudo-book) and stores them.

    When the remote cannot be reached the stored books are returned with
    `from_cache=true`. A missing or rejected session is reported as 401.
    """,
    responses={
        200: {"description": "Stored books after the refresh"},
        401: {"description": "No valid remote session"},
    },
)
async def refresh_books(
    db: DbSession,
    remote: RemoteProvider = Depends(get_remote),
    book_service: BookService = Depends(get_book_service),
) -> BookListResponse:
    """Refresh books from the remote."""
    try:
        return await book_service.refresh_books(remote, db)
    except Exception as e:
        raise to_http_exception(e)


@router.get(
    "/{book_id}/documents",
    summary="List Book Documents",
    description="Returns the stored documents of a book in catalog order, with their sync status.",
    responses={
        200: {"description": "Stored documents of the book"},
    },
)
async def list_book_documents(
    book_id: str,
    db: DbSession,
    document_service: DocumentService = Depends(get_document_service),
) -> DocumentListResponse:
    """List stored documents of a book."""
    try:
        documents = await document_service.get_documents_by_book(book_id, db)
        return DocumentListResponse(documents=documents, total=len(documents))
    except Exception as e:
        raise to_http_exception(e)


@router.post(
    "/{book_id}/documents/refresh",
    summary="Refresh Book Documents",
    description="""
    Lists the documents of a book on the remote, classifies each against the
    metadata store and stores the listing with the resulting sync status.

    Falls back to the stored documents when the remote cannot be reached.
    """,
    responses={
        200: {"description": "Stored documents after the refresh"},
        401: {"description": "No valid remote session"},
        404: {"description": "Book not found"},
    },
)
async def refresh_book_documents(
    book_id: str,
    db: DbSession,
    remote: RemoteProvider = Depends(get_remote),
    document_service: DocumentService = Depends(get_document_service),
) -> DocumentListResponse:
    """Refresh the documents of a book from the remote."""
    try:
        return await document_service.refresh_book_documents(remote, book_id, db)
    except Exception as e:
        raise to_http_exception(e)


@router.delete(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Book",
    description="""
    Removes a book with its documents and resource records from the metadata store.

    Files already written to the sync directory are left in place.
    """,
    responses={
        204: {"description": "Book deleted"},
        404: {"description": "Book not found"},
    },
)
async def delete_book(
    book_id: str,
    db: DbSession,
    book_service: BookService = Depends(get_book_service),
) -> None:
    """Delete a book."""
    try:
        await book_service.delete_book(book_id, db)
    except Exception as e:
        raise to_http_exception(e)
