"""Tests for change detection."""

from datetime import UTC, datetime
from typing import Optional

from fakes import make_document
from yuque_mirror.infrastructure.remote import DocType
from yuque_mirror.modules.document.schemas import DocumentRead, SyncStatus
from yuque_mirror.modules.sync.change_detector import (
    detect_changes,
    determine_sync_status,
    is_remote_newer,
    select_force_documents,
)


def stored(doc_id: str, status: SyncStatus, synced_at: Optional[str] = None, title: str = "Doc", **kwargs) -> DocumentRead:
    now = datetime.now(UTC)
    return DocumentRead(
        id=doc_id,
        book_id="book-1",
        slug=f"slug-{doc_id}",
        title=title,
        sync_status=status,
        local_synced_at=synced_at,
        remote_updated_at=kwargs.pop("remote_updated_at", "2024-01-01T00:00:00Z"),
        created_at=now,
        updated_at=now,
        **kwargs,
    )


OLD = "2023-06-01T00:00:00Z"
SYNCED_AT = "2024-02-01T00:00:00.000Z"
NEWER = "2024-03-01T00:00:00Z"


class TestIsRemoteNewer:
    def test_missing_local_time_counts_as_never_synced(self):
        assert is_remote_newer(OLD, None) is True

    def test_unparseable_remote_time_is_never_newer(self):
        assert is_remote_newer("not a date", SYNCED_AT) is False
        assert is_remote_newer(None, None) is False

    def test_strictly_after(self):
        assert is_remote_newer(NEWER, SYNCED_AT) is True
        assert is_remote_newer(SYNCED_AT, SYNCED_AT) is False
        assert is_remote_newer("2024-02-01T08:00:00+08:00", SYNCED_AT) is False


class TestDetermineSyncStatus:
    """Classification of one remote document against its stored row."""

    def test_unknown_document_is_new(self):
        assert determine_sync_status(make_document("1", "Doc"), None) == SyncStatus.NEW

    def test_failed_stays_failed_even_when_remote_changed(self):
        local = stored("1", SyncStatus.FAILED, SYNCED_AT)
        assert determine_sync_status(make_document("1", "Doc", updated_at=NEWER), local) == SyncStatus.FAILED

    def test_synced_document(self):
        local = stored("1", SyncStatus.SYNCED, SYNCED_AT)
        assert determine_sync_status(make_document("1", "Doc", updated_at=OLD), local) == SyncStatus.SYNCED
        assert determine_sync_status(make_document("1", "Doc", updated_at=NEWER), local) == SyncStatus.MODIFIED

    def test_pending_states_without_sync_time_become_modified(self):
        for status in (SyncStatus.NEW, SyncStatus.PENDING, SyncStatus.MODIFIED):
            local = stored("1", status)
            assert determine_sync_status(make_document("1", "Doc", updated_at=OLD), local) == SyncStatus.MODIFIED

    def test_pending_states_keep_status_when_not_newer(self):
        local = stored("1", SyncStatus.PENDING, SYNCED_AT)
        assert determine_sync_status(make_document("1", "Doc", updated_at=OLD), local) == SyncStatus.PENDING

    def test_deleted_document_listed_again(self):
        local = stored("1", SyncStatus.DELETED, SYNCED_AT)
        assert determine_sync_status(make_document("1", "Doc", updated_at=OLD), local) == SyncStatus.SYNCED
        assert determine_sync_status(make_document("1", "Doc", updated_at=NEWER), local) == SyncStatus.MODIFIED

    def test_classification_is_total(self):
        """Every stored status and timestamp combination maps to a status."""
        for status in SyncStatus:
            for synced_at in (None, SYNCED_AT, "garbage"):
                for remote_at in (None, OLD, NEWER, "garbage"):
                    remote = make_document("1", "Doc", updated_at=remote_at)
                    assert determine_sync_status(remote, stored("1", status, synced_at)) in SyncStatus


class TestDetectChanges:
    def test_new_modified_and_deleted(self):
        remote = [
            make_document("1", "Unchanged", updated_at=OLD),
            make_document("2", "Edited", updated_at=NEWER),
            make_document("4", "Brand new"),
        ]
        local = [
            stored("1", SyncStatus.SYNCED, SYNCED_AT),
            stored("2", SyncStatus.SYNCED, SYNCED_AT),
            stored("3", SyncStatus.SYNCED, SYNCED_AT, title="Gone"),
            stored("5", SyncStatus.DELETED, SYNCED_AT),
        ]

        changes = detect_changes(remote, local)

        assert [change.id for change in changes.new] == ["4"]
        assert [change.id for change in changes.modified] == ["2"]
        assert [change.id for change in changes.deleted] == ["3"]
        assert changes.deleted[0].sync_status == SyncStatus.DELETED
        assert changes.modified[0].local_synced_at == SYNCED_AT

    def test_title_nodes_are_ignored(self):
        remote = [make_document("toc_1", "Section", updated_at=None, doc_type=DocType.TITLE)]

        changes = detect_changes(remote, [])

        assert changes.new == []
        assert changes.modified == []

    def test_failed_documents_are_not_reported(self):
        changes = detect_changes(
            [make_document("1", "Doc", updated_at=NEWER)], [stored("1", SyncStatus.FAILED, SYNCED_AT)]
        )
        assert changes.new == changes.modified == changes.deleted == []


class TestSelectForceDocuments:
    def test_force_selection(self):
        remote = [
            make_document("1", "Synced", updated_at=OLD),
            make_document("2", "Failed"),
            make_document("3", "Deleted unchanged", updated_at=OLD),
            make_document("4", "Deleted edited", updated_at=NEWER),
            make_document("5", "New"),
            make_document("1", "Duplicate", updated_at=OLD),
            make_document("toc_1", "Section", doc_type=DocType.TITLE),
        ]
        local = [
            stored("1", SyncStatus.SYNCED, SYNCED_AT),
            stored("2", SyncStatus.FAILED, SYNCED_AT),
            stored("3", SyncStatus.DELETED, SYNCED_AT),
            stored("4", SyncStatus.DELETED, SYNCED_AT),
        ]

        selected = select_force_documents(remote, local)

        assert [document.id for document in selected] == ["1", "4", "5"]
