"""Sync session service."""

from datetime import UTC, datetime
from typing import Any, Optional, cast

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.config.settings import settings
from ...infrastructure.logging import get_logger
from .crud import sync_session_crud
from .models import SyncSession
from .schemas import SessionStatus, SyncSessionCreate, SyncSessionRead

logger = get_logger()


class SyncSessionService:
    """Service for the checkpoints that make sync runs resumable.

    At most one session is ``running`` at a time; the orchestrator guarantees
    that in-process and ``mark_running_as_interrupted`` repairs it after a
    crash.
    """

    async def create_session(self, session_data: SyncSessionCreate, db: AsyncSession) -> SyncSessionRead:
        created = cast(
            Any,
            await sync_session_crud.create(
                db=db,
                object=session_data,
            ),
        )
        return SyncSessionRead.model_validate(created)

    async def get_session(self, session_id: int, db: AsyncSession) -> Optional[SyncSessionRead]:
        session = await db.get(SyncSession, session_id)
        if session is None:
            return None
        await db.refresh(session)
        return SyncSessionRead.model_validate(session)

    async def get_interrupted_session(self, db: AsyncSession) -> Optional[SyncSessionRead]:
        """Latest interrupted session by last update."""
        result = await db.execute(
            select(SyncSession)
            .where(SyncSession.status == SessionStatus.INTERRUPTED.value)
            .order_by(SyncSession.updated_at.desc(), SyncSession.id.desc())
            .limit(1)
        )
        session = result.scalar_one_or_none()
        return SyncSessionRead.model_validate(session) if session else None

    async def get_running_session(self, db: AsyncSession) -> Optional[SyncSessionRead]:
        result = await db.execute(
            select(SyncSession)
            .where(SyncSession.status == SessionStatus.RUNNING.value)
            .order_by(SyncSession.created_at.desc(), SyncSession.id.desc())
            .limit(1)
        )
        session = result.scalar_one_or_none()
        return SyncSessionRead.model_validate(session) if session else None

    async def mark_doc_completed(self, session_id: int, doc_id: str, db: AsyncSession) -> None:
        """Append a document to the session's completed set, keeping order."""
        session = await db.get(SyncSession, session_id)
        if session is None:
            return
        await db.refresh(session)
        if doc_id in session.completed_doc_ids:
            return
        await sync_session_crud.update(
            db=db,
            object={"completed_doc_ids": [*session.completed_doc_ids, doc_id]},
            id=session_id,
        )

    async def update_status(self, session_id: int, status: SessionStatus, db: AsyncSession) -> None:
        await sync_session_crud.update(db=db, object={"status": status.value}, id=session_id)

    async def mark_running_as_interrupted(self, db: AsyncSession) -> int:
        """Turn every running session into an interrupted one.

        Returns:
            Number of sessions changed
        """
        result = await db.execute(
            update(SyncSession)
            .where(SyncSession.status == SessionStatus.RUNNING.value)
            .values(status=SessionStatus.INTERRUPTED.value, updated_at=datetime.now(UTC))
        )
        await db.commit()
        changed = int(result.rowcount or 0)
        if changed:
            logger.warning(f"Marked {changed} running sync session(s) as interrupted")
        return changed

    async def prune_old_sessions(self, db: AsyncSession, keep: Optional[int] = None) -> int:
        """Delete all but the most recent non-running sessions.

        Args:
            db: Database session
            keep: How many to keep, defaults to ``SYNC_SESSION_KEEP``

        Returns:
            Number of sessions deleted
        """
        keep = settings.SYNC_SESSION_KEEP if keep is None else keep
        recent = (
            select(SyncSession.id)
            .where(SyncSession.status != SessionStatus.RUNNING.value)
            .order_by(SyncSession.created_at.desc(), SyncSession.id.desc())
            .limit(keep)
        )
        result = await db.execute(
            delete(SyncSession).where(
                SyncSession.status != SessionStatus.RUNNING.value,
                SyncSession.id.not_in(recent),
            )
        )
        await db.commit()
        return int(result.rowcount or 0)

    async def delete_session(self, session_id: int, db: AsyncSession) -> None:
        await sync_session_crud.delete(db=db, id=session_id)
