from ..infrastructure.app_factory import create_application, lifespan_factory
from ..infrastructure.config.settings import get_settings
from ..infrastructure.database import local_session
from ..infrastructure.logging import get_logger
from ..interfaces.api import router as api_router
from ..modules.sync.orchestrator import get_sync_orchestrator

settings = get_settings()
logger = get_logger()


async def recover_interrupted_syncs() -> None:
    """Finalize sessions and history rows left open by a previous process."""
    async with local_session() as db:
        await get_sync_orchestrator().recover(db)
    logger.info("Sync state recovered")


async def close_remote() -> None:
    await get_sync_orchestrator().aclose()


app = create_application(
    router=api_router,
    settings=settings,
    lifespan=lifespan_factory(
        settings,
        create_tables_on_startup=settings.CREATE_TABLES_ON_STARTUP,
        on_startup=[recover_interrupted_syncs],
        on_shutdown=[close_remote],
    ),
    title="Yuque Mirror API",
    summary="Incremental local mirror of Yuque knowledge bases",
    description="""
    # Yuque Mirror API

    Mirrors Yuque knowledge bases into a local Markdown tree and keeps it up to date.

    ## Features

    - Change detection against a local metadata store, so only new and modified documents are downloaded
    - Images and attachments downloaded next to each document with links rewritten to local paths
    - Cancellable sync runs that can be resumed where they stopped
    - Sync history, failed document management and progress streaming
    """,
    version=settings.VERSION,
)
