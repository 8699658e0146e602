"""FastAPI dependencies for use in API endpoints."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.database import async_session
from ...infrastructure.remote import RemoteProvider
from ...modules.auth.services import AuthService
from ...modules.book.services import BookService
from ...modules.document.services import DocumentService
from ...modules.preference.services import PreferenceService
from ...modules.resource.services import ResourceService
from ...modules.statistics.services import StatisticsService
from ...modules.sync.orchestrator import SyncOrchestrator, get_sync_orchestrator
from ...modules.sync_history.services import SyncHistoryService

DbSession = Annotated[AsyncSession, Depends(async_session)]


def get_orchestrator() -> SyncOrchestrator:
    """Dependency for the process-wide SyncOrchestrator."""
    return get_sync_orchestrator()


Orchestrator = Annotated[SyncOrchestrator, Depends(get_orchestrator)]


def get_remote(orchestrator: Orchestrator) -> RemoteProvider:
    """Dependency for the remote provider the orchestrator syncs from."""
    return orchestrator.remote


def get_book_service() -> BookService:
    """Dependency for providing a BookService instance."""
    return BookService()


def get_document_service() -> DocumentService:
    """Dependency for providing a DocumentService instance."""
    return DocumentService()


def get_resource_service() -> ResourceService:
    return ResourceService()


def get_history_service() -> SyncHistoryService:
    return SyncHistoryService()


def get_auth_service() -> AuthService:
    return AuthService()


def get_preference_service() -> PreferenceService:
    return PreferenceService()


def get_statistics_service(orchestrator: Orchestrator) -> StatisticsService:
    """Dependency for a StatisticsService measuring the orchestrator's file store."""
    return StatisticsService(orchestrator.store)
