"""Statistics API endpoints."""

from fastapi import APIRouter, Depends

from ....modules.common.utils.error_handler import to_http_exception
from ....modules.statistics.schemas import MirrorStatistics
from ....modules.statistics.services import StatisticsService
from ..dependencies import DbSession, get_statistics_service

router = APIRouter(prefix="/statistics", tags=["Statistics"])


@router.get(
    "",
    summary="Get Mirror Statistics",
    description="""
    Summarizes the mirror: document counts per sync status, books, downloaded
    images and attachments, sync runs, and the size of the sync directory on disk.
    """,
    responses={
        200: {"description": "Mirror statistics"},
    },
)
async def get_statistics(
    db: DbSession,
    statistics_service: StatisticsService = Depends(get_statistics_service),
) -> MirrorStatistics:
    """Get mirror statistics."""
    try:
        return await statistics_service.get_statistics(db)
    except Exception as e:
        raise to_http_exception(e)
