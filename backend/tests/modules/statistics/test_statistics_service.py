"""Tests for mirror statistics."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from yuque_mirror.infrastructure.storage import LocalFileStore
from yuque_mirror.modules.book.schemas import BookUpsert
from yuque_mirror.modules.book.services import BookService
from yuque_mirror.modules.document.schemas import DocumentUpsert, SyncStatus
from yuque_mirror.modules.document.services import DocumentService
from yuque_mirror.modules.preference.services import PreferenceService
from yuque_mirror.modules.resource.schemas import ResourceRecord, ResourceStatus, ResourceType
from yuque_mirror.modules.resource.services import ResourceService
from yuque_mirror.modules.statistics.services import StatisticsService
from yuque_mirror.modules.sync_history.schemas import SyncHistoryCreate
from yuque_mirror.modules.sync_history.services import SyncHistoryService


@pytest.mark.asyncio
async def test_empty_statistics(db_session: AsyncSession, sync_dir):
    await PreferenceService().set_preference("sync_directory", str(sync_dir), db_session)

    stats = await StatisticsService(LocalFileStore()).get_statistics(db_session)

    assert stats.total_documents == 0
    assert stats.total_books == 0
    assert stats.total_storage_bytes == 0
    assert stats.last_sync_time is None


@pytest.mark.asyncio
async def test_statistics(db_session: AsyncSession, sync_dir):
    """Counts come from the metadata store, storage from the mirror directory."""
    await PreferenceService().set_preference("sync_directory", str(sync_dir), db_session)
    (sync_dir / "Handbook").mkdir()
    (sync_dir / "Handbook" / "Intro.md").write_text("# Intro\n", encoding="utf-8")

    await BookService().upsert_books(
        [BookUpsert(id="book-1", slug="handbook", name="Handbook", user_login="alice")], db_session
    )
    await DocumentService().upsert_documents(
        [
            DocumentUpsert(id="1", book_id="book-1", slug="a", title="A", sync_status=SyncStatus.SYNCED),
            DocumentUpsert(id="2", book_id="book-1", slug="b", title="B", sync_status=SyncStatus.FAILED),
            DocumentUpsert(id="3", book_id="book-1", slug="c", title="C", sync_status=SyncStatus.NEW),
        ],
        db_session,
    )
    resources = ResourceService()
    await resources.record_resource(
        ResourceRecord(
            doc_id="1",
            resource_type=ResourceType.IMAGE,
            remote_url="https://cdn.nlark.com/a.png",
            size_bytes=10,
            status=ResourceStatus.DOWNLOADED,
        ),
        db_session,
    )
    await resources.record_resource(
        ResourceRecord(
            doc_id="1",
            resource_type=ResourceType.ATTACHMENT,
            remote_url="https://www.yuque.com/attachments/b.pdf",
            status=ResourceStatus.FAILED,
        ),
        db_session,
    )
    history = SyncHistoryService()
    run = await history.create_history(SyncHistoryCreate(total_docs=3), db_session)
    await history.complete_success(run.id, 1, db_session)

    stats = await StatisticsService(LocalFileStore()).get_statistics(db_session)

    assert stats.total_documents == 3
    assert stats.synced_documents == 1
    assert stats.failed_documents == 1
    assert stats.new_documents == 1
    assert stats.total_books == 1
    assert stats.total_storage_bytes == len("# Intro\n")
    assert stats.image_count == 1
    assert stats.attachment_count == 1
    assert stats.sync_runs == 1
    assert stats.total_docs_synced == 1
    assert stats.last_sync_time is not None

    resource_stats = await resources.get_resource_stats(db_session)
    assert resource_stats.downloaded == 1
    assert resource_stats.failed == 1
    assert resource_stats.total_bytes == 10
