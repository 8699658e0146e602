"""Statistics service."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.storage import LocalFileStore
from ..book.services import BookService
from ..document.services import DocumentService
from ..preference.services import PreferenceService
from ..resource.services import ResourceService
from ..sync_history.services import SyncHistoryService
from .schemas import MirrorStatistics


class StatisticsService:
    """Aggregates counts from the metadata store and the size of the mirror tree."""

    def __init__(self, store: Optional[LocalFileStore] = None):
        self.store = store or LocalFileStore()
        self.book_service = BookService()
        self.document_service = DocumentService()
        self.resource_service = ResourceService()
        self.history_service = SyncHistoryService()
        self.preference_service = PreferenceService()

    async def get_statistics(self, db: AsyncSession) -> MirrorStatistics:
        counts = await self.document_service.count_by_status(db)
        resources = await self.resource_service.get_resource_stats(db)
        history = await self.history_service.get_statistics(db)
        preferences = await self.preference_service.get_preferences(db)

        storage = 0
        if preferences.sync_directory:
            storage = await self.store.directory_size(preferences.sync_directory)

        return MirrorStatistics(
            total_documents=counts.total,
            synced_documents=counts.synced,
            failed_documents=counts.failed,
            pending_documents=counts.pending,
            new_documents=counts.new,
            modified_documents=counts.modified,
            deleted_documents=counts.deleted,
            total_books=await self.book_service.count_books(db),
            total_storage_bytes=storage,
            last_sync_time=await self.history_service.get_last_successful_sync_time(db),
            image_count=resources.images,
            attachment_count=resources.attachments,
            sync_runs=history.total_syncs,
            total_docs_synced=history.total_docs_synced,
        )
