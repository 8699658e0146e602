"""Remote session API endpoints."""

from fastapi import APIRouter, Depends, status

from ....modules.auth.schemas import AuthSessionCreate, AuthSessionRead, AuthStatus
from ....modules.auth.services import AuthService
from ....modules.common.utils.error_handler import to_http_exception
from ..dependencies import DbSession, get_auth_service

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get(
    "/session",
    summary="Get Session Status",
    description="""
    Reports whether a valid remote session is stored.

    An expired session is removed and reported as unauthenticated. Cookies are never returned.
    """,
    responses={
        200: {"description": "Authentication status"},
    },
)
async def get_session(
    db: DbSession,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthStatus:
    """Get the stored session status."""
    try:
        session = await auth_service.get_valid_session(db)
        if session is None:
            return AuthStatus(authenticated=False)
        return AuthStatus(authenticated=True, session=AuthSessionRead.model_validate(session))
    except Exception as e:
        raise to_http_exception(e)


@router.put(
    "/session",
    summary="Store Session",
    description="""
    Replaces the stored remote session with the given one.

    The session is valid for `SESSION_TTL_HOURS` from now. Obtaining the
    cookies (the login flow) happens outside this service.

    - **login**: Remote login used in content URLs
    - **cookies**: Cookie header value sent to the remote
    - **user_id** / **user_name**: Optional profile details
    """,
    responses={
        200: {"description": "The stored session"},
        422: {"description": "Invalid session data"},
    },
)
async def put_session(
    session_data: AuthSessionCreate,
    db: DbSession,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthStatus:
    """Store a remote session."""
    try:
        session = await auth_service.save_session(session_data, db)
        return AuthStatus(authenticated=True, session=AuthSessionRead.model_validate(session))
    except Exception as e:
        raise to_http_exception(e)


@router.delete(
    "/session",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear Session",
    description="Removes the stored remote session. Later syncs fail with an authentication error until a new one is stored.",
    responses={
        204: {"description": "Session cleared"},
    },
)
async def delete_session(
    db: DbSession,
    auth_service: AuthService = Depends(get_auth_service),
) -> None:
    """Clear the stored session."""
    try:
        await auth_service.clear_session(db)
    except Exception as e:
        raise to_http_exception(e)
