"""Translation of domain errors into HTTP errors."""

from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ....infrastructure.logging import get_logger
from ..constants import EXCEPTION_MAPPING
from ..exceptions import DomainError

logger = get_logger()


def map_exception(error: DomainError) -> HTTPException:
    """The HTTP error for a domain error; the first matching entry of ``EXCEPTION_MAPPING`` wins."""
    mapper = next((m for cls, m in EXCEPTION_MAPPING.items() if isinstance(error, cls)), None)
    if mapper is None:
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
    return mapper(str(error))


def register_exception_handlers(app: FastAPI) -> None:
    """Answer uncaught domain errors with their mapped status."""

    @app.exception_handler(DomainError)
    async def domain_error_response(request: Request, exc: DomainError) -> JSONResponse:
        mapped = map_exception(exc)
        if mapped.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected with {mapped.status_code}: {exc}")
        return JSONResponse(status_code=mapped.status_code, content={"detail": mapped.detail})


def handle_exception(error: Exception) -> Optional[HTTPException]:
    """
    Map an error caught in a route handler.

    Args:
        error: The caught error

    Returns:
        The matching HTTPException, or None for errors outside the domain
    """
    if isinstance(error, HTTPException):
        return error
    if isinstance(error, DomainError):
        return map_exception(error)
    logger.exception(f"Unexpected error while handling request: {error}")
    return None


def to_http_exception(error: Exception) -> HTTPException:
    """``handle_exception`` with a bare 500 for anything it cannot map."""
    return handle_exception(error) or HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error"
    )
