"""Sync history service."""

from datetime import UTC, datetime
from typing import Any, Dict, List, Optional, cast

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.config.settings import settings
from ...infrastructure.logging import get_logger
from ..common.exceptions import SyncHistoryNotFoundError
from .crud import sync_history_crud
from .models import SyncHistory
from .schemas import HistoryStatus, SyncHistoryCreate, SyncHistoryRead, SyncStatistics

logger = get_logger()


class SyncHistoryService:
    """Service for the audit trail of sync runs.

    Progress updates and finalization only touch rows whose ``completed_at``
    is still null, so a finalized row keeps its outcome even if a late
    writer tries to change it.
    """

    async def create_history(self, history_data: SyncHistoryCreate, db: AsyncSession) -> SyncHistoryRead:
        created = cast(Any, await sync_history_crud.create(db=db, object=history_data))
        return SyncHistoryRead.model_validate(created)

    async def get_history(self, history_id: int, db: AsyncSession) -> SyncHistoryRead:
        """Get one history row.

        Raises:
            SyncHistoryNotFoundError: If no such row exists
        """
        history = await db.get(SyncHistory, history_id)
        if history is None:
            raise SyncHistoryNotFoundError(f"Sync history {history_id} not found")
        await db.refresh(history)
        return SyncHistoryRead.model_validate(history)

    async def get_recent_history(self, db: AsyncSession, limit: int = 50) -> List[SyncHistoryRead]:
        result = await db.execute(
            select(SyncHistory).order_by(SyncHistory.started_at.desc(), SyncHistory.id.desc()).limit(limit)
        )
        return [SyncHistoryRead.model_validate(row) for row in result.scalars().all()]

    async def get_history_by_status(self, status: HistoryStatus, db: AsyncSession) -> List[SyncHistoryRead]:
        result = await db.execute(
            select(SyncHistory)
            .where(SyncHistory.status == status.value)
            .order_by(SyncHistory.started_at.desc(), SyncHistory.id.desc())
        )
        return [SyncHistoryRead.model_validate(row) for row in result.scalars().all()]

    async def _update_open(self, history_id: int, values: Dict[str, Any], db: AsyncSession) -> bool:
        result = await db.execute(
            update(SyncHistory)
            .where(SyncHistory.id == history_id, SyncHistory.completed_at.is_(None))
            .values(**values)
        )
        await db.commit()
        return bool(result.rowcount)

    async def update_progress(
        self,
        history_id: int,
        db: AsyncSession,
        total_docs: Optional[int] = None,
        synced_docs: Optional[int] = None,
        failed_docs: Optional[int] = None,
    ) -> None:
        """Update the counters of a running row. Finalized rows are left alone."""
        values = {
            key: value
            for key, value in (("total_docs", total_docs), ("synced_docs", synced_docs), ("failed_docs", failed_docs))
            if value is not None
        }
        if values:
            await self._update_open(history_id, values, db)

    async def complete_success(self, history_id: int, synced_docs: int, db: AsyncSession) -> bool:
        """Finalize a row as successful.

        Returns:
            False when the row had already been finalized
        """
        return await self._update_open(
            history_id,
            {"status": HistoryStatus.SUCCESS.value, "synced_docs": synced_docs, "completed_at": datetime.now(UTC)},
            db,
        )

    async def complete_failed(
        self, history_id: int, error_message: str, db: AsyncSession, synced_docs: int = 0, failed_docs: int = 0
    ) -> bool:
        return await self._update_open(
            history_id,
            {
                "status": HistoryStatus.FAILED.value,
                "error_message": error_message,
                "synced_docs": synced_docs,
                "failed_docs": failed_docs,
                "completed_at": datetime.now(UTC),
            },
            db,
        )

    async def complete_cancelled(
        self, history_id: int, db: AsyncSession, synced_docs: int = 0, failed_docs: int = 0
    ) -> bool:
        return await self._update_open(
            history_id,
            {
                "status": HistoryStatus.CANCELLED.value,
                "synced_docs": synced_docs,
                "failed_docs": failed_docs,
                "completed_at": datetime.now(UTC),
            },
            db,
        )

    async def mark_cancel_requested(self, history_id: int, db: AsyncSession) -> None:
        """Show a running row as cancelled before the run has actually stopped."""
        await self._update_open(history_id, {"status": HistoryStatus.CANCELLED.value}, db)

    async def fail_unfinished(self, error_message: str, db: AsyncSession) -> int:
        """Finalize every row left open by a crashed process as failed.

        Returns:
            Number of rows finalized
        """
        result = await db.execute(
            update(SyncHistory)
            .where(SyncHistory.completed_at.is_(None))
            .values(status=HistoryStatus.FAILED.value, error_message=error_message, completed_at=datetime.now(UTC))
        )
        await db.commit()
        changed = int(result.rowcount or 0)
        if changed:
            logger.warning(f"Finalized {changed} unfinished sync history row(s) as failed")
        return changed

    async def prune_history(self, db: AsyncSession, keep: Optional[int] = None) -> int:
        """Delete all but the most recent rows, ``SYNC_HISTORY_KEEP`` by default."""
        keep = settings.SYNC_HISTORY_KEEP if keep is None else keep
        recent = select(SyncHistory.id).order_by(SyncHistory.started_at.desc(), SyncHistory.id.desc()).limit(keep)
        result = await db.execute(delete(SyncHistory).where(SyncHistory.id.not_in(recent)))
        await db.commit()
        return int(result.rowcount or 0)

    async def get_last_successful_sync_time(self, db: AsyncSession) -> Optional[datetime]:
        result = await db.execute(
            select(SyncHistory.completed_at)
            .where(SyncHistory.status == HistoryStatus.SUCCESS.value)
            .order_by(SyncHistory.completed_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_statistics(self, db: AsyncSession) -> SyncStatistics:
        result = await db.execute(
            select(
                func.count(SyncHistory.id),
                func.coalesce(func.sum(case((SyncHistory.status == HistoryStatus.SUCCESS.value, 1), else_=0)), 0),
                func.coalesce(func.sum(case((SyncHistory.status == HistoryStatus.FAILED.value, 1), else_=0)), 0),
                func.coalesce(func.sum(SyncHistory.synced_docs), 0),
            )
        )
        total, successful, failed, docs = result.one()
        return SyncStatistics(
            total_syncs=total, successful_syncs=successful, failed_syncs=failed, total_docs_synced=docs
        )
