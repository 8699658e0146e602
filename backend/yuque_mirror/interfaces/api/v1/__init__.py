from fastapi import APIRouter

from .auth import router as auth_router
from .book import router as book_router
from .document import router as document_router
from .preference import router as preference_router
from .statistics import router as statistics_router
from .sync import router as sync_router

router = APIRouter(prefix="/v1")
router.include_router(sync_router)
router.include_router(book_router)
router.include_router(document_router)
router.include_router(auth_router)
router.include_router(preference_router)
router.include_router(statistics_router)


@router.get(
    "/health",
    summary="API Health Check",
    description="Simple health check endpoint for monitoring and process supervisors.",
    responses={
        200: {"description": "API is healthy and responding"},
    },
)
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "message": "Yuque Mirror API is running"}
