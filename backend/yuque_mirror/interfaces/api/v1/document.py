"""Document API endpoints."""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Query, status

from ....modules.common.utils.error_handler import to_http_exception
from ....modules.document.schemas import DocumentListResponse, FailedDocument
from ....modules.document.services import DocumentService
from ....modules.resource.schemas import ResourceListResponse
from ....modules.resource.services import ResourceService
from ..dependencies import DbSession, get_document_service, get_resource_service

router = APIRouter(prefix="/documents", tags=["Documents"])


@router.get(
    "/failed",
    summary="List Failed Documents",
    description="""
    Returns documents whose last transfer failed, with the name of their book.

    Failed documents are skipped by every sync until they are retried or cleared.
    """,
    responses={
        200: {"description": "Failed documents, most recently touched first"},
    },
)
async def list_failed_documents(
    db: DbSession,
    document_service: DocumentService = Depends(get_document_service),
) -> List[FailedDocument]:
    """List failed documents."""
    try:
        return await document_service.get_failed_documents(db)
    except Exception as e:
        raise to_http_exception(e)


@router.post(
    "/{document_id}/retry",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Retry Failed Document",
    description="Marks a document as `new` so the next sync downloads it again.",
    responses={
        204: {"description": "Document queued for the next sync"},
        404: {"description": "Document not found"},
    },
)
async def retry_document(
    document_id: str,
    db: DbSession,
    document_service: DocumentService = Depends(get_document_service),
) -> None:
    """Retry a failed document."""
    try:
        await document_service.retry_failed_document(document_id, db)
    except Exception as e:
        raise to_http_exception(e)


@router.post(
    "/{document_id}/clear",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear Failed Document",
    description="Marks a document as `deleted` so it leaves the failed list and is no longer synced.",
    responses={
        204: {"description": "Document cleared"},
        404: {"description": "Document not found"},
    },
)
async def clear_document(
    document_id: str,
    db: DbSession,
    document_service: DocumentService = Depends(get_document_service),
) -> None:
    """Clear a failed document."""
    try:
        await document_service.clear_failed_document(document_id, db)
    except Exception as e:
        raise to_http_exception(e)


@router.get(
    "/search",
    summary="Search Documents",
    description="""
    Case-insensitive search over the titles and slugs of stored documents.
    Documents marked deleted are not returned.

    - **q**: Text to look for
    - **limit**: Maximum number of results (default: 50, max: 200)
    """,
    responses={
        200: {"description": "Matching documents"},
        422: {"description": "Missing or empty query"},
    },
)
async def search_documents(
    db: DbSession,
    q: Annotated[str, Query(min_length=1, description="Search text")],
    limit: Annotated[int, Query(ge=1, le=200, description="Maximum number of results")] = 50,
    document_service: DocumentService = Depends(get_document_service),
) -> DocumentListResponse:
    """Search stored documents."""
    try:
        documents = await document_service.search_documents(q, db, limit=limit)
        return DocumentListResponse(documents=documents, total=len(documents))
    except Exception as e:
        raise to_http_exception(e)


@router.get(
    "/{document_id}/resources",
    summary="List Document Resources",
    description="Returns the images and attachments recorded for a document with their download status.",
    responses={
        200: {"description": "Resources of the document"},
    },
)
async def list_document_resources(
    document_id: str,
    db: DbSession,
    resource_service: ResourceService = Depends(get_resource_service),
) -> ResourceListResponse:
    """List resources of a document."""
    try:
        resources = await resource_service.get_resources_by_document(document_id, db)
        return ResourceListResponse(resources=resources, total=len(resources))
    except Exception as e:
        raise to_http_exception(e)
