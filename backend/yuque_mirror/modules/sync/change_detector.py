"""Classification of remote documents against the metadata store.

Everything here is pure: the orchestrator gathers the remote snapshot and the
stored rows, and persists whatever transitions come out.
"""

from typing import Dict, Iterable, List, Optional

from ...infrastructure.remote import DocType, RemoteDocument
from ..common.utils.timestamps import to_epoch_ms
from ..document.schemas import DocumentRead, SyncStatus
from .schemas import ChangeSet, DocumentChange

_IN_PROGRESS = frozenset({SyncStatus.NEW, SyncStatus.PENDING, SyncStatus.MODIFIED})


def is_remote_newer(remote_updated_at: Optional[str], local_synced_at: Optional[str]) -> bool:
    """Whether the remote modification time is strictly after the last local sync.

    A missing or unparseable local time counts as negative infinity. An
    unparseable remote time is never newer.
    """
    remote_ms = to_epoch_ms(remote_updated_at)
    if remote_ms is None:
        return False
    local_ms = to_epoch_ms(local_synced_at)
    if local_ms is None:
        return True
    return remote_ms > local_ms


def determine_sync_status(remote: RemoteDocument, local: Optional[DocumentRead]) -> SyncStatus:
    """Classify one remote document given its stored record, if any.

    Args:
        remote: The document as listed by the remote
        local: The stored row for the same id

    Returns:
        The status the document should have after this comparison
    """
    if local is None:
        return SyncStatus.NEW

    status = SyncStatus(local.sync_status)

    if status == SyncStatus.FAILED:
        return SyncStatus.FAILED

    newer = local.local_synced_at is None or is_remote_newer(remote.remote_updated_at, local.local_synced_at)

    if status == SyncStatus.SYNCED:
        if is_remote_newer(remote.remote_updated_at, local.local_synced_at):
            return SyncStatus.MODIFIED
        return SyncStatus.SYNCED

    if status in _IN_PROGRESS:
        if newer:
            return SyncStatus.MODIFIED
        return status

    # deleted and now listed again
    if newer:
        return SyncStatus.MODIFIED
    return SyncStatus.SYNCED


def _as_change(remote: RemoteDocument, local: Optional[DocumentRead], status: SyncStatus) -> DocumentChange:
    return DocumentChange(
        id=remote.id,
        book_id=remote.book_id,
        slug=remote.slug,
        title=remote.title,
        local_path=local.local_path if local else None,
        remote_updated_at=remote.remote_updated_at,
        local_synced_at=local.local_synced_at if local else None,
        sync_status=status,
    )


def detect_changes(remote_docs: Iterable[RemoteDocument], local_docs: Iterable[DocumentRead]) -> ChangeSet:
    """Compare a book's remote snapshot with its stored documents.

    Catalog TITLE nodes carry no content and never enter the new or modified
    lists. Stored documents missing from the snapshot are reported as deleted
    unless they already are.

    Args:
        remote_docs: The remote listing, in remote order
        local_docs: Every stored document of the same book

    Returns:
        The change set, with new and modified in remote order
    """
    remote_list = list(remote_docs)
    local_by_id: Dict[str, DocumentRead] = {doc.id: doc for doc in local_docs}
    remote_ids = {doc.id for doc in remote_list}

    changes = ChangeSet()
    for remote in remote_list:
        if remote.doc_type == DocType.TITLE:
            continue
        local = local_by_id.get(remote.id)
        status = determine_sync_status(remote, local)
        if status == SyncStatus.NEW:
            changes.new.append(_as_change(remote, local, status))
        elif status == SyncStatus.MODIFIED:
            changes.modified.append(_as_change(remote, local, status))

    for local in local_by_id.values():
        if local.id not in remote_ids and local.sync_status != SyncStatus.DELETED:
            changes.deleted.append(
                DocumentChange(
                    id=local.id,
                    book_id=local.book_id,
                    slug=local.slug,
                    title=local.title,
                    local_path=local.local_path,
                    remote_updated_at=local.remote_updated_at,
                    local_synced_at=local.local_synced_at,
                    sync_status=SyncStatus.DELETED,
                )
            )

    return changes


def select_force_documents(
    remote_docs: Iterable[RemoteDocument], local_docs: Iterable[DocumentRead]
) -> List[RemoteDocument]:
    """Work list of a forced sync for one book.

    Every listed document except failed ones and deleted records that the
    comparison does not bring back, de-duplicated by id in remote order.
    """
    local_by_id = {doc.id: doc for doc in local_docs}
    selected: List[RemoteDocument] = []
    seen = set()

    for remote in remote_docs:
        if remote.doc_type == DocType.TITLE or remote.id in seen:
            continue
        local = local_by_id.get(remote.id)
        status = determine_sync_status(remote, local)
        if status == SyncStatus.FAILED:
            continue
        if local is not None and local.sync_status == SyncStatus.DELETED and status != SyncStatus.MODIFIED:
            continue
        seen.add(remote.id)
        selected.append(remote)

    return selected
