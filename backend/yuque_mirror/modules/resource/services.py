"""Resource metadata service."""

from datetime import UTC, datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Resource
from .schemas import ResourceRead, ResourceRecord, ResourceStats, ResourceStatus, ResourceType

# Upserts bypass the identity map, so entity reads reload their rows.
_FRESH = {"populate_existing": True}


class ResourceService:
    """Service for the images and attachments downloaded alongside documents."""

    async def record_resource(self, record: ResourceRecord, db: AsyncSession) -> None:
        """Insert or update the row for a ``(doc_id, remote_url)`` pair.

        Args:
            record: Outcome of a download attempt
            db: Database session
        """
        now = datetime.now(UTC)
        stmt = sqlite_insert(Resource).values(**record.model_dump(mode="json"), created_at=now, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Resource.doc_id, Resource.remote_url],
            set_={
                "resource_type": stmt.excluded.resource_type,
                "local_path": stmt.excluded.local_path,
                "filename": stmt.excluded.filename,
                "size_bytes": stmt.excluded.size_bytes,
                "status": stmt.excluded.status,
                "updated_at": now,
            },
        )
        await db.execute(stmt)
        await db.commit()

    async def get_resource(self, doc_id: str, remote_url: str, db: AsyncSession) -> Optional[ResourceRead]:
        result = await db.execute(
            select(Resource).where(Resource.doc_id == doc_id, Resource.remote_url == remote_url), execution_options=_FRESH
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return ResourceRead.model_validate(row)

    async def get_resources_by_document(self, doc_id: str, db: AsyncSession) -> List[ResourceRead]:
        result = await db.execute(
            select(Resource).where(Resource.doc_id == doc_id).order_by(Resource.id), execution_options=_FRESH
        )
        return [ResourceRead.model_validate(row) for row in result.scalars().all()]

    async def get_resource_stats(self, db: AsyncSession) -> ResourceStats:
        """Counts by type and status, and the total size of downloaded files."""
        stats = ResourceStats()

        by_type = await db.execute(select(Resource.resource_type, func.count()).group_by(Resource.resource_type))
        for resource_type, count in by_type.all():
            if resource_type == ResourceType.IMAGE.value:
                stats.images = count
            elif resource_type == ResourceType.ATTACHMENT.value:
                stats.attachments = count

        by_status = await db.execute(select(Resource.status, func.count()).group_by(Resource.status))
        for status, count in by_status.all():
            if status == ResourceStatus.DOWNLOADED.value:
                stats.downloaded = count
            elif status == ResourceStatus.FAILED.value:
                stats.failed = count

        size = await db.execute(
            select(func.coalesce(func.sum(Resource.size_bytes), 0)).where(Resource.status == ResourceStatus.DOWNLOADED.value)
        )
        stats.total_bytes = int(size.scalar_one())
        return stats
