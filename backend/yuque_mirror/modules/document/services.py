"""Document metadata service."""

from datetime import UTC, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.logging import get_logger
from ...infrastructure.remote import RemoteAuthenticationError, RemoteDocument, RemoteError, RemoteProvider
from ..book.models import Book
from ..book.services import BookService
from ..common.exceptions import BookNotFoundError, DocumentNotFoundError
from ..sync.change_detector import determine_sync_status
from .crud import document_crud
from .models import Document
from .schemas import (
    DocumentListResponse,
    DocumentRead,
    DocumentUpsert,
    FailedDocument,
    StatusCounts,
    SyncStatus,
)

logger = get_logger()

_COALESCED_COLUMNS = (
    "uuid",
    "parent_uuid",
    "child_uuid",
    "local_path",
    "remote_created_at",
    "remote_updated_at",
    "local_synced_at",
)
_OVERWRITTEN_COLUMNS = ("book_id", "slug", "title", "sync_status", "doc_type", "depth", "sort_order")

# Rows per INSERT statement, kept well below SQLite's bound parameter limit.
_UPSERT_BATCH = 200

# Upserts bypass the identity map, so entity reads reload their rows.
_FRESH = {"populate_existing": True}


def to_upsert(remote: RemoteDocument, sync_status: SyncStatus) -> DocumentUpsert:
    """Build an upsert payload from a remote listing entry."""
    return DocumentUpsert(
        id=remote.id,
        book_id=remote.book_id,
        slug=remote.slug,
        title=remote.title,
        uuid=remote.uuid,
        parent_uuid=remote.parent_uuid,
        child_uuid=remote.child_uuid,
        doc_type=remote.doc_type.value,
        depth=remote.depth,
        sort_order=remote.sort_order,
        remote_created_at=remote.remote_created_at,
        remote_updated_at=remote.remote_updated_at,
        sync_status=sync_status,
    )


class DocumentService:
    """Service for the per-document synchronization records.

    Upserts never erase stored optional fields: a payload that leaves
    ``local_path`` or a timestamp as None keeps the stored value. Status,
    title and hierarchy position are always overwritten.
    """

    def _upsert_statement(self, documents: Sequence[DocumentUpsert]) -> Any:
        now = datetime.now(UTC)
        stmt = sqlite_insert(Document).values(
            [{**document.model_dump(mode="json"), "created_at": now, "updated_at": now} for document in documents]
        )
        columns = Document.__table__.c
        set_: Dict[str, Any] = {
            column: func.coalesce(stmt.excluded[column], columns[column]) for column in _COALESCED_COLUMNS
        }
        set_.update({column: stmt.excluded[column] for column in _OVERWRITTEN_COLUMNS})
        set_["updated_at"] = now
        return stmt.on_conflict_do_update(index_elements=[Document.id], set_=set_)

    async def upsert_document(self, document: DocumentUpsert, db: AsyncSession) -> None:
        """Insert or update a single document row and commit."""
        await db.execute(self._upsert_statement([document]))
        await db.commit()

    async def upsert_documents(self, documents: Sequence[DocumentUpsert], db: AsyncSession) -> None:
        """Insert or update many document rows in one transaction.

        Args:
            documents: Rows to write
            db: Database session

        Note:
            Either every row is written or, on error, none are.
        """
        if not documents:
            return

        try:
            for start in range(0, len(documents), _UPSERT_BATCH):
                await db.execute(self._upsert_statement(documents[start : start + _UPSERT_BATCH]))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    async def get_document(self, document_id: str, db: AsyncSession) -> Optional[DocumentRead]:
        document = await db.get(Document, document_id, populate_existing=True)
        if document is None:
            return None
        return DocumentRead.model_validate(document)

    async def get_documents_by_book(self, book_id: str, db: AsyncSession) -> List[DocumentRead]:
        """All stored documents of a book in catalog order."""
        result = await db.execute(
            select(Document).where(Document.book_id == book_id).order_by(Document.sort_order, Document.title),
            execution_options=_FRESH,
        )
        return [DocumentRead.model_validate(row) for row in result.scalars().all()]

    async def get_children(self, book_id: str, parent_uuid: Optional[str], db: AsyncSession) -> List[DocumentRead]:
        """Direct children of a catalog node; a None parent selects the roots."""
        stmt = select(Document).where(Document.book_id == book_id)
        if parent_uuid is None:
            stmt = stmt.where(Document.parent_uuid.is_(None))
        else:
            stmt = stmt.where(Document.parent_uuid == parent_uuid)
        result = await db.execute(stmt.order_by(Document.sort_order, Document.title), execution_options=_FRESH)
        return [DocumentRead.model_validate(row) for row in result.scalars().all()]

    async def get_pending_documents(self, db: AsyncSession) -> List[DocumentRead]:
        """Documents waiting for a sync: new, pending or modified."""
        waiting = [SyncStatus.NEW.value, SyncStatus.PENDING.value, SyncStatus.MODIFIED.value]
        result = await db.execute(
            select(Document)
            .where(Document.sync_status.in_(waiting), Document.doc_type != "TITLE")
            .order_by(Document.book_id, Document.sort_order),
            execution_options=_FRESH,
        )
        return [DocumentRead.model_validate(row) for row in result.scalars().all()]

    async def update_sync_status(
        self,
        document_id: str,
        sync_status: SyncStatus,
        db: AsyncSession,
        local_path: Optional[str] = None,
        local_synced_at: Optional[str] = None,
    ) -> None:
        """Set a document's status, and its local location when given.

        Raises:
            DocumentNotFoundError: If the document is not stored
        """
        values: Dict[str, Any] = {"sync_status": sync_status.value}
        if local_path is not None:
            values["local_path"] = local_path
        if local_synced_at is not None:
            values["local_synced_at"] = local_synced_at

        if not await document_crud.exists(db=db, id=document_id):
            raise DocumentNotFoundError(f"Document {document_id} not found")
        await document_crud.update(db=db, object=values, id=document_id)

    async def mark_deleted(self, document_ids: Iterable[str], db: AsyncSession) -> int:
        """Mark documents as removed on the remote, keeping their rows.

        Returns:
            Number of rows changed
        """
        ids = list(document_ids)
        if not ids:
            return 0
        result = await db.execute(
            update(Document)
            .where(Document.id.in_(ids))
            .values(sync_status=SyncStatus.DELETED.value, updated_at=datetime.now(UTC))
        )
        await db.commit()
        return int(result.rowcount or 0)

    async def delete_document(self, document_id: str, db: AsyncSession) -> None:
        """Purge a document row together with its resources.

        Raises:
            DocumentNotFoundError: If the document is not stored
        """
        if not await document_crud.exists(db=db, id=document_id):
            raise DocumentNotFoundError(f"Document {document_id} not found")
        await document_crud.delete(db=db, id=document_id)

    async def delete_by_book(self, book_id: str, db: AsyncSession) -> int:
        """Purge every document of a book. Returns the number of rows removed."""
        count = await document_crud.count(db=db, book_id=book_id)
        if count:
            await document_crud.delete(db=db, book_id=book_id, allow_multiple=True)
        return count

    async def count_by_status(self, db: AsyncSession, book_id: Optional[str] = None) -> StatusCounts:
        """Document counts grouped by sync status, optionally for one book. Catalog TITLE nodes are not counted."""
        stmt = (
            select(Document.sync_status, func.count())
            .where(Document.doc_type != "TITLE")
            .group_by(Document.sync_status)
        )
        if book_id is not None:
            stmt = stmt.where(Document.book_id == book_id)
        result = await db.execute(stmt)
        return StatusCounts(**{status: count for status, count in result.all()})

    async def search_documents(self, query: str, db: AsyncSession, limit: int = 50) -> List[DocumentRead]:
        """Case-insensitive title and slug search over stored documents."""
        pattern = f"%{query.strip()}%"
        result = await db.execute(
            select(Document)
            .where(or_(Document.title.ilike(pattern), Document.slug.ilike(pattern)))
            .where(Document.sync_status != SyncStatus.DELETED.value)
            .order_by(Document.title)
            .limit(limit),
            execution_options=_FRESH,
        )
        return [DocumentRead.model_validate(row) for row in result.scalars().all()]

    async def get_failed_documents(self, db: AsyncSession) -> List[FailedDocument]:
        """Failed documents with their book names, most recently touched first."""
        result = await db.execute(
            select(
                Document.id,
                Document.book_id,
                Book.name.label("book_name"),
                Document.title,
                Document.remote_updated_at,
                Document.local_synced_at,
            )
            .outerjoin(Book, Book.id == Document.book_id)
            .where(Document.sync_status == SyncStatus.FAILED.value)
            .order_by(Document.updated_at.desc())
        )
        return [FailedDocument.model_validate(row) for row in result.all()]

    async def retry_failed_document(self, document_id: str, db: AsyncSession) -> None:
        """Put a failed document back in the queue as ``new``."""
        await self.update_sync_status(document_id, SyncStatus.NEW, db)
        logger.info(f"Document {document_id} queued for retry")

    async def clear_failed_document(self, document_id: str, db: AsyncSession) -> None:
        """Drop a failed document from future syncs by marking it ``deleted``."""
        await self.update_sync_status(document_id, SyncStatus.DELETED, db)
        logger.info(f"Document {document_id} cleared from the failed list")

    async def store_listing(
        self, remote_docs: Sequence[RemoteDocument], local_docs: Sequence[DocumentRead], db: AsyncSession
    ) -> None:
        """Upsert a book's remote listing with statuses from change detection."""
        local_by_id = {doc.id: doc for doc in local_docs}
        await self.upsert_documents(
            [
                to_upsert(remote_doc, determine_sync_status(remote_doc, local_by_id.get(remote_doc.id)))
                for remote_doc in remote_docs
            ],
            db,
        )

    async def refresh_book_documents(
        self, remote: RemoteProvider, book_id: str, db: AsyncSession, book_service: Optional[BookService] = None
    ) -> DocumentListResponse:
        """Refresh a book's document rows from the remote listing.

        Each listed document gets its status from change detection, so failed
        documents stay failed and stored local paths survive. The book's cached
        document count is updated. When the remote fails for any reason other
        than authentication, the stored rows are returned instead.

        Raises:
            BookNotFoundError: If the book is not stored
            RemoteAuthenticationError: If the remote rejects the session
        """
        book_service = book_service or BookService()
        if await book_service.get_book(book_id, db) is None:
            raise BookNotFoundError(f"Book {book_id} not found")

        try:
            remote_docs = await remote.list_documents(book_id)
        except RemoteAuthenticationError:
            raise
        except RemoteError as exc:
            logger.warning(f"Document listing for book {book_id} failed, serving stored rows: {exc}")
            documents = await self.get_documents_by_book(book_id, db)
            return DocumentListResponse(documents=documents, total=len(documents), from_cache=True)

        await self.store_listing(remote_docs, await self.get_documents_by_book(book_id, db), db)
        await book_service.update_doc_count(book_id, len(remote_docs), db)
        logger.info(f"Refreshed {len(remote_docs)} documents of book {book_id}")

        documents = await self.get_documents_by_book(book_id, db)
        return DocumentListResponse(documents=documents, total=len(documents))
