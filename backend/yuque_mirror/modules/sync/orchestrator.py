"""Incremental sync of remote books into the local mirror."""

import os
from functools import lru_cache
from typing import Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.config.settings import Settings, get_settings
from ...infrastructure.logging import get_logger, reset_sync_run_id, set_sync_run_id
from ...infrastructure.remote import (
    BookAddress,
    ContentFormat,
    DocType,
    RemoteAuthenticationError,
    RemoteDocument,
    RemoteProvider,
    RenderOptions,
    YuqueRemoteProvider,
)
from ...infrastructure.storage import LocalFileStore
from ..auth.services import load_credentials
from ..book.schemas import BookUpsert
from ..book.services import BookService
from ..common.exceptions import NoInterruptedSessionError
from ..common.utils.timestamps import parse_timestamp, utc_now_iso
from ..document.schemas import SyncStatus
from ..document.services import DocumentService, to_upsert
from ..pipeline import ResourcePipeline, html_to_markdown
from ..preference.schemas import AppPreferences
from ..preference.services import PreferenceService
from ..sync_history.schemas import SyncHistoryCreate
from ..sync_history.services import SyncHistoryService
from ..sync_session.schemas import SessionStatus, SyncSessionCreate
from ..sync_session.services import SyncSessionService
from .change_detector import detect_changes, select_force_documents
from .events import SyncEventStream, SyncRunState
from .paths import build_document_path
from .schemas import (
    BookContext,
    ChangeSet,
    SyncEvent,
    SyncOptions,
    SyncPhase,
    SyncProgress,
    SyncResult,
    SyncSessionInfo,
    SyncStatusResponse,
)

logger = get_logger()

ProgressCallback = Callable[[SyncProgress], None]

SYNC_IN_PROGRESS = "Sync already in progress"
NO_BOOKS_SPECIFIED = "No books specified"
INTERRUPTED_BY_RESTART = "Interrupted by process restart"


class SyncOrchestrator:
    """Runs sync sessions one at a time.

    A run lists the requested books, classifies their documents, then
    downloads the work list strictly in order: fetch content, normalize HTML,
    localize resources, write the file and record the document as synced.
    One failing document never stops the run. Cancellation is checked before
    each document. Progress goes to an optional callback and to the
    ``events`` stream.

    The orchestrator owns the in-process run state, so the application keeps
    a single instance (see ``get_sync_orchestrator``).
    """

    def __init__(
        self,
        remote: RemoteProvider,
        store: Optional[LocalFileStore] = None,
        settings: Optional[Settings] = None,
        pipeline: Optional[ResourcePipeline] = None,
    ):
        self.settings = settings or get_settings()
        self.remote = remote
        self.store = store or LocalFileStore()
        self.pipeline = pipeline or ResourcePipeline(remote, self.store, self.settings)

        self.book_service = BookService()
        self.document_service = DocumentService()
        self.session_service = SyncSessionService()
        self.history_service = SyncHistoryService()
        self.preference_service = PreferenceService()

        self.state = SyncRunState()
        self.events = SyncEventStream()

    @property
    def is_running(self) -> bool:
        return self.state.is_running

    def _emit(self, progress: SyncProgress, on_progress: Optional[ProgressCallback]) -> None:
        self.state.last_progress = progress
        self.state.current_document = progress.current_doc or None
        if on_progress:
            on_progress(progress)
        self.events.publish(SyncEvent(event="progress", run_id=self.state.run_id, progress=progress))

    async def start_sync(
        self,
        db: AsyncSession,
        options: SyncOptions,
        book_context: Optional[Dict[str, BookContext]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SyncResult:
        """Run a sync over the requested books.

        A second call while a run is in progress returns a failed result at
        once and changes nothing.

        Args:
            db: Database session used for the whole run
            options: Books, optional document filter and force flag
            book_context: Addressing info per book id; missing books are looked up in the store
            on_progress: Called for every progress event

        Returns:
            Counts and per-document error messages of the run
        """
        if self.state.is_running:
            return SyncResult(success=False, errors=[SYNC_IN_PROGRESS])

        self.state.begin()
        run_token = set_sync_run_id(self.state.run_id or "")
        result: Optional[SyncResult] = None
        try:
            result = await self._run(db, options, dict(book_context or {}), on_progress)
            return result
        finally:
            self.events.publish(SyncEvent(event="finished", run_id=self.state.run_id, result=result))
            reset_sync_run_id(run_token)
            self.state.reset()

    async def _resolve_contexts(
        self, db: AsyncSession, book_ids: List[str], book_context: Dict[str, BookContext]
    ) -> Dict[str, BookContext]:
        """Fill in addressing info for requested books from stored rows."""
        for book_id in book_ids:
            if book_id in book_context:
                continue
            book = await self.book_service.get_book(book_id, db)
            if book is not None:
                book_context[book_id] = BookContext(user_login=book.user_login, slug=book.slug, name=book.name)
        return book_context

    async def _run(
        self,
        db: AsyncSession,
        options: SyncOptions,
        book_context: Dict[str, BookContext],
        on_progress: Optional[ProgressCallback],
    ) -> SyncResult:
        if not options.book_ids:
            return SyncResult(success=False, errors=[NO_BOOKS_SPECIFIED])

        try:
            await self.remote.get_credentials()
        except RemoteAuthenticationError as exc:
            return SyncResult(success=False, errors=[str(exc)])

        book_context = await self._resolve_contexts(db, options.book_ids, book_context)
        unknown = [book_id for book_id in options.book_ids if book_id not in book_context]
        if unknown:
            return SyncResult(success=False, errors=[f"Book {book_id} not found" for book_id in unknown])

        await self.book_service.ensure_books(
            [
                BookUpsert(id=book_id, slug=context.slug, name=context.name, user_login=context.user_login)
                for book_id, context in book_context.items()
            ],
            db,
        )

        history = await self.history_service.create_history(SyncHistoryCreate(), db)
        self.state.history_id = history.id
        logger.info(
            f"Sync started for {len(options.book_ids)} book(s)",
            extra={"history_id": history.id, "force": options.force},
        )

        try:
            work_list = await self._prepare(db, options)
        except Exception as exc:
            await db.rollback()
            logger.exception(f"Sync setup failed: {exc}")
            await self.history_service.complete_failed(history.id, str(exc), db)
            return SyncResult(success=False, errors=[str(exc)], history_id=history.id)

        return await self._execute(db, options, book_context, work_list, history.id, on_progress)

    async def _prepare(self, db: AsyncSession, options: SyncOptions) -> List[RemoteDocument]:
        """Classify the requested books and build the work list.

        Stores the listing (with computed statuses) and the deleted
        transitions, so the metadata store reflects the remote before any
        document is transferred.
        """
        new_docs: List[RemoteDocument] = []
        modified_docs: List[RemoteDocument] = []
        forced: List[RemoteDocument] = []
        changes = ChangeSet()

        for book_id in options.book_ids:
            remote_docs = await self.remote.list_documents(book_id)
            local_docs = await self.document_service.get_documents_by_book(book_id, db)
            by_id = {doc.id: doc for doc in remote_docs}

            book_changes = detect_changes(remote_docs, local_docs)
            changes.extend(book_changes)
            new_docs.extend(by_id[change.id] for change in book_changes.new)
            modified_docs.extend(by_id[change.id] for change in book_changes.modified)
            if options.force:
                forced.extend(select_force_documents(remote_docs, local_docs))

            await self.document_service.store_listing(remote_docs, local_docs, db)
            await self.book_service.update_doc_count(book_id, len(remote_docs), db)

        await self.document_service.mark_deleted([change.id for change in changes.deleted], db)

        work_list = forced if options.force else [*new_docs, *modified_docs]

        seen = set()
        unique: List[RemoteDocument] = []
        for document in work_list:
            if document.id not in seen:
                seen.add(document.id)
                unique.append(document)

        if options.document_ids is not None:
            wanted = set(options.document_ids)
            unique = [document for document in unique if document.id in wanted]

        return unique

    async def _execute(
        self,
        db: AsyncSession,
        options: SyncOptions,
        book_context: Dict[str, BookContext],
        work_list: List[RemoteDocument],
        history_id: int,
        on_progress: Optional[ProgressCallback],
    ) -> SyncResult:
        total = len(work_list)
        synced = 0
        failed = 0
        errors: List[str] = []
        session_id: Optional[int] = None

        try:
            await self.history_service.update_progress(history_id, db, total_docs=total)
            session = await self.session_service.create_session(
                SyncSessionCreate(book_ids=list(options.book_ids), total_docs=total), db
            )
            session_id = session.id
            self.state.session_id = session_id

            preferences = await self.preference_service.get_preferences(db)
            render = RenderOptions(linebreak=preferences.linebreak, latexcode=preferences.latexcode)

            for index, document in enumerate(work_list):
                if self.state.token.is_cancelled:
                    break

                self._emit(
                    SyncProgress(current=index, total=total, current_doc=document.title, status=SyncPhase.DOWNLOADING),
                    on_progress,
                )
                try:
                    await self._sync_document(
                        db, document, book_context[document.book_id], preferences, render, index, total, on_progress
                    )
                except Exception as exc:
                    await db.rollback()
                    logger.warning(f"Document {document.id} failed: {exc}")
                    errors.append(f"Download failed [{document.title}]: {exc}")
                    failed += 1
                    await self._record_failure(db, document)
                    await self.history_service.update_progress(history_id, db, failed_docs=failed)
                    continue

                await self.session_service.mark_doc_completed(session_id, document.id, db)
                synced += 1
                await self.history_service.update_progress(history_id, db, synced_docs=synced)

            self._emit(SyncProgress(current=total, total=total, status=SyncPhase.COMPARING), on_progress)

            cancelled = self.state.token.is_cancelled
            if cancelled:
                await self.history_service.complete_cancelled(history_id, db, synced_docs=synced, failed_docs=failed)
                await self.session_service.update_status(session_id, SessionStatus.INTERRUPTED, db)
            elif errors:
                await self.history_service.complete_failed(
                    history_id, "\n".join(errors), db, synced_docs=synced, failed_docs=failed
                )
                await self.session_service.update_status(session_id, SessionStatus.COMPLETED, db)
            else:
                await self.history_service.complete_success(history_id, synced, db)
                await self.session_service.update_status(session_id, SessionStatus.COMPLETED, db)

        except Exception as exc:
            await db.rollback()
            logger.exception(f"Sync aborted: {exc}")
            await self.history_service.complete_failed(
                history_id, str(exc), db, synced_docs=synced, failed_docs=failed
            )
            if session_id is not None:
                await self.session_service.update_status(session_id, SessionStatus.INTERRUPTED, db)
            return SyncResult(
                success=False,
                total_docs=total,
                synced_docs=synced,
                failed_docs=failed,
                errors=[*errors, str(exc)],
                history_id=history_id,
            )

        logger.info(
            f"Sync finished: {synced} synced, {failed} failed of {total}",
            extra={"history_id": history_id, "cancelled": cancelled},
        )
        return SyncResult(
            success=not errors and not cancelled,
            total_docs=total,
            synced_docs=synced,
            failed_docs=failed,
            errors=errors,
            cancelled=cancelled,
            completed=not cancelled,
            history_id=history_id,
        )

    async def _sync_document(
        self,
        db: AsyncSession,
        document: RemoteDocument,
        context: BookContext,
        preferences: AppPreferences,
        render: RenderOptions,
        index: int,
        total: int,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        address = BookAddress(book_id=document.book_id, user_login=context.user_login, slug=context.slug)
        content = await self.remote.fetch_content(address, document, render)

        self._emit(
            SyncProgress(current=index, total=total, current_doc=document.title, status=SyncPhase.WRITING),
            on_progress,
        )

        if document.content_format == ContentFormat.HTML:
            content = html_to_markdown(content)

        path = build_document_path(preferences.sync_directory, context.name, document.title)

        def report_resources(current: int, resource_total: int) -> None:
            label = f"{document.title} ({current}/{resource_total} resources)"
            self._emit(
                SyncProgress(current=index, total=total, current_doc=label, status=SyncPhase.WRITING), on_progress
            )

        try:
            content = await self.pipeline.process_content(
                db, content, document.id, os.path.dirname(path), on_progress=report_resources
            )
        except Exception as exc:
            await db.rollback()
            logger.warning(f"Resource processing failed for {document.id}, writing content as fetched: {exc}")

        await self.store.write_text(path, content)
        await self.store.set_times(
            path, parse_timestamp(document.remote_created_at), parse_timestamp(document.remote_updated_at)
        )

        synced_doc = to_upsert(document, SyncStatus.SYNCED)
        await self.document_service.upsert_document(
            synced_doc.model_copy(update={"local_path": path, "local_synced_at": utc_now_iso()}), db
        )

    async def _record_failure(self, db: AsyncSession, document: RemoteDocument) -> None:
        await self.document_service.upsert_document(to_upsert(document, SyncStatus.FAILED), db)

    async def cancel_sync(self, db: AsyncSession) -> bool:
        """Ask the running sync to stop before its next document.

        The history row shows ``cancelled`` and the session ``interrupted``
        right away; the run finalizes them when it stops.

        Returns:
            False when no sync is running
        """
        if not self.state.is_running:
            return False

        self.state.token.cancel()
        if self.state.history_id is not None:
            await self.history_service.mark_cancel_requested(self.state.history_id, db)
        if self.state.session_id is not None:
            await self.session_service.update_status(self.state.session_id, SessionStatus.INTERRUPTED, db)
        logger.info("Sync cancellation requested")
        return True

    def get_sync_status(self) -> SyncStatusResponse:
        return SyncStatusResponse(
            is_running=self.state.is_running,
            history_id=self.state.history_id,
            session_id=self.state.session_id,
            current_document=self.state.current_document,
            progress=self.state.last_progress,
        )

    async def get_changes_for_books(self, db: AsyncSession, book_ids: List[str]) -> ChangeSet:
        """Classify the documents of several books against the store.

        Documents found to be gone from the remote are marked deleted.
        """
        changes = ChangeSet()
        for book_id in book_ids:
            remote_docs = await self.remote.list_documents(book_id)
            local_docs = await self.document_service.get_documents_by_book(book_id, db)
            changes.extend(detect_changes(remote_docs, local_docs))

        await self.document_service.mark_deleted([change.id for change in changes.deleted], db)
        return changes

    async def get_interrupted_session(self, db: AsyncSession) -> Optional[SyncSessionInfo]:
        """The latest interrupted session and the documents it has not finished."""
        session = await self.session_service.get_interrupted_session(db)
        if session is None:
            return None

        completed = set(session.completed_doc_ids)
        remaining: List[str] = []
        for book_id in session.book_ids:
            for document in await self.document_service.get_documents_by_book(book_id, db):
                if document.id in completed or document.doc_type == DocType.TITLE.value:
                    continue
                if document.sync_status in (SyncStatus.DELETED, SyncStatus.FAILED):
                    continue
                remaining.append(document.id)

        return SyncSessionInfo(
            id=session.id,
            book_ids=session.book_ids,
            total_docs=session.total_docs,
            completed_doc_ids=session.completed_doc_ids,
            remaining_doc_ids=remaining,
            status=session.status.value,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )

    async def resume_interrupted_sync(
        self,
        db: AsyncSession,
        book_context: Optional[Dict[str, BookContext]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SyncResult:
        """Continue the latest interrupted session with the documents it has left.

        Runs an incremental sync restricted to the remaining documents. When
        that run gets through its work list, the interrupted session is
        marked completed.

        Raises:
            NoInterruptedSessionError: If there is nothing to resume
        """
        if self.state.is_running:
            return SyncResult(success=False, errors=[SYNC_IN_PROGRESS])

        interrupted = await self.get_interrupted_session(db)
        if interrupted is None:
            raise NoInterruptedSessionError("No interrupted sync session to resume")

        logger.info(
            f"Resuming sync session {interrupted.id} with {len(interrupted.remaining_doc_ids)} remaining document(s)"
        )
        result = await self.start_sync(
            db,
            SyncOptions(book_ids=interrupted.book_ids, document_ids=interrupted.remaining_doc_ids),
            book_context,
            on_progress,
        )
        if result.completed:
            await self.session_service.update_status(interrupted.id, SessionStatus.COMPLETED, db)
        return result

    async def recover(self, db: AsyncSession) -> None:
        """Repair state left behind by a process that stopped mid-sync.

        Running sessions become interrupted, unfinished history rows are
        finalized as failed, and old sessions and history are pruned.
        """
        if self.state.is_running:
            return
        await self.session_service.mark_running_as_interrupted(db)
        await self.history_service.fail_unfinished(INTERRUPTED_BY_RESTART, db)
        await self.session_service.prune_old_sessions(db)
        await self.history_service.prune_history(db)

    async def aclose(self) -> None:
        await self.remote.aclose()


@lru_cache()
def get_remote_provider() -> RemoteProvider:
    """Get the process-wide remote provider, authenticated from the stored session."""
    return YuqueRemoteProvider(load_credentials)


@lru_cache()
def get_sync_orchestrator() -> SyncOrchestrator:
    """Get the process-wide sync orchestrator."""
    return SyncOrchestrator(get_remote_provider())
