"""Sync API endpoints."""

from collections.abc import AsyncIterator
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import StreamingResponse

from ....modules.common.utils.error_handler import to_http_exception
from ....modules.sync.schemas import (
    ChangeSet,
    ChangesRequest,
    ResumeRequest,
    SyncResult,
    SyncSessionInfo,
    SyncStartRequest,
    SyncStatusResponse,
)
from ....modules.sync_history.schemas import SyncHistoryListResponse, SyncHistoryRead
from ....modules.sync_history.services import SyncHistoryService
from ..dependencies import DbSession, Orchestrator, get_history_service

router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post(
    "/start",
    summary="Start Sync",
    description="""
    Mirrors the requested books into the sync directory and waits for the run to finish.

    Only new and modified documents are downloaded unless **force** is set, in
    which case every live document is downloaded again. Documents that failed
    in an earlier run stay excluded until they are retried.

    - **book_ids**: Books to synchronize
    - **document_ids**: Optional restriction of the work list
    - **force**: Re-download everything that is still on the remote
    - **book_context**: Addressing info per book id; books left out are looked up in the metadata store

    A request made while another sync is running returns at once with
    `success=false` and the error `Sync already in progress`.
    """,
    responses={
        200: {"description": "Sync result with counts and per-document errors"},
        422: {"description": "Invalid request body"},
    },
)
async def start_sync(request: SyncStartRequest, orchestrator: Orchestrator, db: DbSession) -> SyncResult:
    """Run a sync."""
    try:
        return await orchestrator.start_sync(
            db,
            request,
            book_context=request.book_context,
        )
    except Exception as e:
        raise to_http_exception(e)


@router.post(
    "/cancel",
    summary="Cancel Sync",
    description="""
    Asks the running sync to stop before its next document.

    The document being transferred is finished first. The run's history entry
    ends as `cancelled` and its session as `interrupted`, so it can be resumed.
    """,
    responses={
        200: {"description": "Whether a running sync was signalled"},
    },
)
async def cancel_sync(orchestrator: Orchestrator, db: DbSession) -> dict:
    """Cancel the running sync."""
    try:
        cancelled = await orchestrator.cancel_sync(db)
        return {"cancelled": cancelled}
    except Exception as e:
        raise to_http_exception(e)


@router.get(
    "/status",
    summary="Get Sync Status",
    description="Returns whether a sync is running, its history and session ids and the latest progress event.",
    responses={
        200: {"description": "Current run state"},
    },
)
async def get_sync_status(orchestrator: Orchestrator) -> SyncStatusResponse:
    """Get the orchestrator's run state."""
    return orchestrator.get_sync_status()


@router.post(
    "/changes",
    summary="Detect Changes",
    description="""
    Compares the remote listing of each book with the metadata store without downloading anything.

    Documents that disappeared from the remote are marked `deleted` as a side effect.
    """,
    responses={
        200: {"description": "New, modified and deleted documents"},
        401: {"description": "No valid remote session"},
        422: {"description": "No books given"},
    },
)
async def detect_changes(request: ChangesRequest, orchestrator: Orchestrator, db: DbSession) -> ChangeSet:
    """Detect changes for the given books."""
    try:
        return await orchestrator.get_changes_for_books(db, request.book_ids)
    except Exception as e:
        raise to_http_exception(e)


@router.get(
    "/events",
    summary="Stream Sync Events",
    description="""
    Streams progress of the next or current sync run as newline-delimited JSON.

    Each line is a sync event. Progress events carry the phase
    (`downloading`, `writing` or `comparing`) and the position in the work
    list. The stream ends after the `finished` event, which carries the run result.
    """,
    response_class=StreamingResponse,
    responses={
        200: {"description": "NDJSON stream of sync events", "content": {"application/x-ndjson": {}}},
    },
)
async def stream_sync_events(orchestrator: Orchestrator) -> StreamingResponse:
    """Stream sync events."""

    async def event_lines() -> AsyncIterator[str]:
        async for event in orchestrator.events.subscribe():
            yield event.model_dump_json() + "\n"

    return StreamingResponse(event_lines(), media_type="application/x-ndjson")


@router.get(
    "/interrupted",
    summary="Get Interrupted Session",
    description="""
    Returns the most recent interrupted sync session, if any, with the ids of
    the documents it has not finished yet.
    """,
    responses={
        200: {"description": "The interrupted session, or null"},
    },
)
async def get_interrupted_session(orchestrator: Orchestrator, db: DbSession) -> Optional[SyncSessionInfo]:
    """Get the latest interrupted session."""
    try:
        return await orchestrator.get_interrupted_session(db)
    except Exception as e:
        raise to_http_exception(e)


@router.post(
    "/resume",
    summary="Resume Interrupted Sync",
    description="""
    Continues the latest interrupted session by syncing only the documents it
    has left. The old session is marked completed once the new run gets
    through its work list.
    """,
    responses={
        200: {"description": "Result of the resumed run"},
        404: {"description": "No interrupted session"},
    },
)
async def resume_sync(
    orchestrator: Orchestrator,
    db: DbSession,
    request: Annotated[Optional[ResumeRequest], Body()] = None,
) -> SyncResult:
    """Resume the latest interrupted session."""
    try:
        book_context = request.book_context if request else None
        return await orchestrator.resume_interrupted_sync(db, book_context=book_context)
    except Exception as e:
        raise to_http_exception(e)


@router.get(
    "/history",
    summary="List Sync History",
    description="Returns the most recent sync runs, newest first.",
    responses={
        200: {"description": "Recent sync runs"},
    },
)
async def list_history(
    db: DbSession,
    limit: Annotated[int, Query(ge=1, le=200, description="Maximum number of entries")] = 50,
    history_service: SyncHistoryService = Depends(get_history_service),
) -> SyncHistoryListResponse:
    """List recent sync runs."""
    try:
        entries = await history_service.get_recent_history(db, limit=limit)
        return SyncHistoryListResponse(history=entries, total=len(entries))
    except Exception as e:
        raise to_http_exception(e)


@router.get(
    "/history/{history_id}",
    summary="Get Sync History Entry",
    description="Returns one sync run with its counts, status and error message.",
    responses={
        200: {"description": "The sync run"},
        404: {"description": "Sync history entry not found"},
    },
)
async def get_history(
    history_id: int,
    db: DbSession,
    history_service: SyncHistoryService = Depends(get_history_service),
) -> SyncHistoryRead:
    """Get a sync run by id."""
    try:
        return await history_service.get_history(history_id, db)
    except Exception as e:
        raise to_http_exception(e)
