"""Preference API endpoints."""

from fastapi import APIRouter, Depends

from ....modules.common.utils.error_handler import to_http_exception
from ....modules.preference.schemas import AppPreferences, PreferencesUpdate
from ....modules.preference.services import PreferenceService
from ..dependencies import DbSession, get_preference_service

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get(
    "",
    summary="Get Preferences",
    description="Returns the effective preferences. Keys never stored fall back to the application settings.",
    responses={
        200: {"description": "Effective preferences"},
    },
)
async def get_preferences(
    db: DbSession,
    preference_service: PreferenceService = Depends(get_preference_service),
) -> AppPreferences:
    """Get the effective preferences."""
    try:
        return await preference_service.get_preferences(db)
    except Exception as e:
        raise to_http_exception(e)


@router.put(
    "",
    summary="Update Preferences",
    description="""
    Stores the given preferences. Omitted fields keep their current value.

    - **sync_directory**: Root of the mirror tree used by the next sync
    - **linebreak** / **latexcode**: Export options passed to the remote
    - **theme**: light, dark or system
    - **auto_sync_interval**: Minutes between automatic syncs, 0 disables
    """,
    responses={
        200: {"description": "Effective preferences after the update"},
        422: {"description": "Invalid preference value"},
    },
)
async def update_preferences(
    update: PreferencesUpdate,
    db: DbSession,
    preference_service: PreferenceService = Depends(get_preference_service),
) -> AppPreferences:
    """Update preferences."""
    try:
        return await preference_service.update_preferences(update, db)
    except Exception as e:
        raise to_http_exception(e)
