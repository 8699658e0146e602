"""Tests for sync session service."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from yuque_mirror.modules.sync_session.schemas import SessionStatus, SyncSessionCreate
from yuque_mirror.modules.sync_session.services import SyncSessionService


@pytest.fixture
def session_service():
    """Create sync session service instance."""
    return SyncSessionService()


@pytest.mark.asyncio
async def test_create_session(session_service: SyncSessionService, db_session: AsyncSession):
    result = await session_service.create_session(SyncSessionCreate(book_ids=["book-1"], total_docs=3), db_session)

    assert result.id is not None
    assert result.book_ids == ["book-1"]
    assert result.total_docs == 3
    assert result.completed_doc_ids == []
    assert result.status == SessionStatus.RUNNING


@pytest.mark.asyncio
async def test_mark_doc_completed_keeps_order_and_skips_duplicates(
    session_service: SyncSessionService, db_session: AsyncSession
):
    session = await session_service.create_session(SyncSessionCreate(book_ids=["book-1"], total_docs=3), db_session)

    for doc_id in ("102", "101", "102"):
        await session_service.mark_doc_completed(session.id, doc_id, db_session)

    stored = await session_service.get_session(session.id, db_session)
    assert stored.completed_doc_ids == ["102", "101"]


@pytest.mark.asyncio
async def test_mark_doc_completed_unknown_session(session_service: SyncSessionService, db_session: AsyncSession):
    await session_service.mark_doc_completed(99999, "101", db_session)
    assert await session_service.get_session(99999, db_session) is None


@pytest.mark.asyncio
async def test_mark_running_as_interrupted(session_service: SyncSessionService, db_session: AsyncSession):
    """Running sessions left behind by a crash become resumable."""
    running = await session_service.create_session(SyncSessionCreate(book_ids=["book-1"]), db_session)
    done = await session_service.create_session(SyncSessionCreate(book_ids=["book-2"]), db_session)
    await session_service.update_status(done.id, SessionStatus.COMPLETED, db_session)

    changed = await session_service.mark_running_as_interrupted(db_session)

    assert changed == 1
    assert await session_service.get_running_session(db_session) is None
    interrupted = await session_service.get_interrupted_session(db_session)
    assert interrupted.id == running.id
    assert (await session_service.get_session(done.id, db_session)).status == SessionStatus.COMPLETED


@pytest.mark.asyncio
async def test_get_running_session(session_service: SyncSessionService, db_session: AsyncSession):
    assert await session_service.get_running_session(db_session) is None

    session = await session_service.create_session(SyncSessionCreate(book_ids=["book-1"]), db_session)

    assert (await session_service.get_running_session(db_session)).id == session.id


@pytest.mark.asyncio
async def test_prune_old_sessions_keeps_running_and_recent(session_service: SyncSessionService, db_session: AsyncSession):
    finished = []
    for _ in range(4):
        session = await session_service.create_session(SyncSessionCreate(), db_session)
        await session_service.update_status(session.id, SessionStatus.COMPLETED, db_session)
        finished.append(session.id)
    running = await session_service.create_session(SyncSessionCreate(), db_session)

    deleted = await session_service.prune_old_sessions(db_session, keep=2)

    assert deleted == 2
    assert await session_service.get_session(finished[0], db_session) is None
    assert await session_service.get_session(finished[1], db_session) is None
    assert await session_service.get_session(finished[3], db_session) is not None
    assert await session_service.get_session(running.id, db_session) is not None


@pytest.mark.asyncio
async def test_delete_session(session_service: SyncSessionService, db_session: AsyncSession):
    session = await session_service.create_session(SyncSessionCreate(), db_session)

    await session_service.delete_session(session.id, db_session)

    assert await session_service.get_session(session.id, db_session) is None
