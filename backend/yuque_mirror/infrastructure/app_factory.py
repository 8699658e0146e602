from asyncio import Event
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Dict, List, Optional

import anyio
import fastapi
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.openapi.utils import get_openapi

from ..modules.common.utils.error_handler import register_exception_handlers
from .config.settings import EnvironmentOption, Settings, get_settings
from .database.session import create_tables
from .logging import get_logger

logger = get_logger()

LifecycleHook = Callable[[], Awaitable[None]]


async def set_threadpool_tokens(number_of_tokens: int = 100) -> None:
    """Configure the number of threadpool tokens for anyio.

    Filesystem work of the sync engine runs in worker threads, so this also
    bounds how many blocking file operations can be in flight.
    """
    limiter = anyio.to_thread.current_default_thread_limiter()
    limiter.total_tokens = number_of_tokens


def lifespan_factory(
    settings: Settings,
    create_tables_on_startup: bool = True,
    on_startup: Sequence[LifecycleHook] = (),
    on_shutdown: Sequence[LifecycleHook] = (),
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Factory to create a lifespan async context manager for a FastAPI app.

    Startup creates the metadata tables (when enabled) and then runs the
    ``on_startup`` hooks in order; shutdown runs ``on_shutdown`` in order.

    Args:
        settings: Application settings
        create_tables_on_startup: Whether to create database tables on startup
        on_startup: Coroutine functions awaited after the tables exist
        on_shutdown: Coroutine functions awaited when the app stops

    Returns:
        An async context manager for FastAPI's lifespan
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        initialization_complete = Event()
        app.state.initialization_complete = initialization_complete

        await set_threadpool_tokens()

        try:
            if create_tables_on_startup:
                await create_tables()
                logger.info(f"Metadata store ready at {settings.SQLITE_URI}")

            for hook in on_startup:
                await hook()

            initialization_complete.set()
            yield

        finally:
            for hook in on_shutdown:
                await hook()

    return lifespan


def create_application(
    router: APIRouter,
    settings: Optional[Settings] = None,
    lifespan: Optional[Callable[[FastAPI], AbstractAsyncContextManager[None]]] = None,
    create_tables_on_startup: Optional[bool] = None,
    enable_cors: Optional[bool] = None,
    cors_origins: Optional[List[str]] = None,
    enable_docs_in_production: Optional[bool] = None,
    enable_gzip: Optional[bool] = None,
    title: Optional[str] = None,
    summary: Optional[str] = None,
    description: Optional[str] = None,
    version: Optional[str] = None,
    **kwargs: Any,
) -> FastAPI:
    """Creates and configures a FastAPI application based on the provided settings.

    Args:
        router: The APIRouter containing the routes for the application
        settings: Application settings (uses get_settings() if None)
        lifespan: Optional lifespan function. If None, ``lifespan_factory`` is used
            without hooks.
        create_tables_on_startup: Defaults to settings.CREATE_TABLES_ON_STARTUP if None.
        enable_cors: Defaults to settings.CORS_ENABLED if None.
        cors_origins: Defaults to settings.CORS_ORIGINS_LIST if None.
        enable_docs_in_production: Defaults to settings.ENABLE_DOCS_IN_PRODUCTION if None.
        enable_gzip: Defaults to settings.GZIP_ENABLED if None.
        title: The title of the API, else settings.API_TITLE or settings.APP_NAME.
        summary: A short summary of the API.
        description: A detailed description of the API (supports Markdown).
        version: The version of the API, else settings.API_VERSION or settings.VERSION.
        **kwargs: Additional keyword arguments passed to FastAPI constructor

    Returns:
        A configured FastAPI application with domain exception handlers installed
    """
    if settings is None:
        settings = get_settings()

    _create_tables = settings.CREATE_TABLES_ON_STARTUP if create_tables_on_startup is None else create_tables_on_startup
    _enable_cors = settings.CORS_ENABLED if enable_cors is None else enable_cors
    _cors_origins = settings.CORS_ORIGINS_LIST if cors_origins is None else cors_origins
    _docs_in_production = (
        settings.ENABLE_DOCS_IN_PRODUCTION if enable_docs_in_production is None else enable_docs_in_production
    )
    _enable_gzip = settings.GZIP_ENABLED if enable_gzip is None else enable_gzip

    metadata: Dict[str, Any] = {
        "openapi_prefix": settings.OPENAPI_PREFIX,
        "title": title or settings.API_TITLE or settings.APP_NAME,
        "description": description or settings.API_DESCRIPTION or settings.APP_DESCRIPTION,
        "version": version or settings.API_VERSION or settings.VERSION,
    }
    if summary or settings.API_SUMMARY:
        metadata["summary"] = summary or settings.API_SUMMARY

    is_production = settings.ENVIRONMENT == EnvironmentOption.PRODUCTION
    show_docs = not is_production or _docs_in_production

    # Docs are served by the routes below so they follow the same switch.
    kwargs.update(metadata)
    kwargs.update({"docs_url": None, "redoc_url": None, "openapi_url": None})

    if lifespan is None:
        lifespan = lifespan_factory(settings, create_tables_on_startup=_create_tables)

    application = FastAPI(lifespan=lifespan, **kwargs)
    application.include_router(router)
    register_exception_handlers(application)

    if _enable_cors:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=_cors_origins,
            allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
            allow_methods=settings.CORS_ALLOW_METHODS.split(","),
            allow_headers=settings.CORS_ALLOW_HEADERS.split(","),
        )

    if _enable_gzip:
        application.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MINIMUM_SIZE)

    if show_docs:
        docs_router = APIRouter()
        openapi_url = settings.OPENAPI_URL

        @docs_router.get(settings.DOCS_URL, include_in_schema=False)
        async def get_swagger_documentation() -> fastapi.responses.HTMLResponse:
            return get_swagger_ui_html(openapi_url=openapi_url, title=f"{metadata['title']} docs")

        @docs_router.get(settings.REDOC_URL, include_in_schema=False)
        async def get_redoc_documentation() -> fastapi.responses.HTMLResponse:
            return get_redoc_html(openapi_url=openapi_url, title=f"{metadata['title']} redoc")

        @docs_router.get(openapi_url, include_in_schema=False)
        async def openapi() -> Dict[str, Any]:
            return get_openapi(
                title=metadata["title"],
                version=metadata["version"],
                description=metadata["description"],
                routes=application.routes,
            )

        application.include_router(docs_router)

    return application
