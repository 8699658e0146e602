"""Download and localize the resources embedded in a document."""

import os
from typing import Callable, Dict, List, Optional, Sequence, Set

from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.config.settings import Settings, get_settings
from ...infrastructure.logging import create_child_logger, get_logger
from ...infrastructure.remote import RemoteError, RemoteProvider
from ...infrastructure.storage import LocalFileStore
from ..resource.schemas import ResourceRecord, ResourceStatus
from ..resource.services import ResourceService
from .scanner import AttachmentReferenceScanner, ImageReferenceScanner, ResourceReference, ResourceReferenceScanner

logger = get_logger()

ProgressCallback = Callable[[int, int], None]


def relative_posix_path(path: str, start: str) -> str:
    """Path of ``path`` relative to ``start``, always with forward slashes."""
    return os.path.relpath(path, start).replace(os.sep, "/")


class ResourcePipeline:
    """Localizes images and attachments referenced by a document.

    For each scanner in turn, references are extracted, resolved one by one
    (reusing an earlier download of the same URL for the same document when
    its file still exists), recorded in the metadata store and finally
    rewritten to paths relative to the document's directory. A failed
    download leaves its reference untouched.

    Example:
        ```python
        pipeline = ResourcePipeline(remote, LocalFileStore())
        markdown = await pipeline.process_content(db, markdown, doc.id, "/mirror/Handbook")
        ```
    """

    def __init__(
        self,
        remote: RemoteProvider,
        store: LocalFileStore,
        settings: Optional[Settings] = None,
        scanners: Optional[Sequence[ResourceReferenceScanner]] = None,
        resource_service: Optional[ResourceService] = None,
    ):
        settings = settings or get_settings()
        self.remote = remote
        self.store = store
        self.resource_service = resource_service or ResourceService()
        self.scanners: List[ResourceReferenceScanner] = list(
            scanners
            or (
                ImageReferenceScanner(timeout=settings.IMAGE_DOWNLOAD_TIMEOUT),
                AttachmentReferenceScanner(
                    timeout=settings.ATTACHMENT_DOWNLOAD_TIMEOUT, max_bytes=settings.ATTACHMENT_MAX_BYTES
                ),
            )
        )

    async def process_content(
        self,
        db: AsyncSession,
        content: str,
        doc_id: str,
        target_dir: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Download every referenced resource and rewrite the content.

        Args:
            db: Database session for resource records
            content: Document content, markdown
            doc_id: Owning document id
            target_dir: Directory the document file is written to
            on_progress: Called with ``(current, total)`` after each resource, per class

        Returns:
            The content with downloaded references pointing at local files
        """
        for scanner in self.scanners:
            references = scanner.extract(content)
            if not references:
                continue

            scanner_logger = create_child_logger(logger, scanner.resource_type.value, doc_id=doc_id)
            scanner_logger.info(f"Found {len(references)} {scanner.resource_type.value} reference(s)")

            mapping = await self._resolve_all(db, scanner, references, doc_id, target_dir, on_progress, scanner_logger)
            if mapping:
                content = scanner.rewrite(content, mapping)

        return content

    async def _resolve_all(
        self,
        db: AsyncSession,
        scanner: ResourceReferenceScanner,
        references: List[ResourceReference],
        doc_id: str,
        target_dir: str,
        on_progress: Optional[ProgressCallback],
        scanner_logger,
    ) -> Dict[str, str]:
        directory = os.path.join(target_dir, scanner.subdirectory)
        taken: Set[str] = await self.store.list_dir(directory)
        mapping: Dict[str, str] = {}

        for index, reference in enumerate(references):
            local = await self._resolve(db, scanner, reference, doc_id, target_dir, directory, taken, scanner_logger)
            if local is not None:
                mapping[reference.url] = local
            if on_progress:
                on_progress(index + 1, len(references))

        return mapping

    async def _resolve(
        self,
        db: AsyncSession,
        scanner: ResourceReferenceScanner,
        reference: ResourceReference,
        doc_id: str,
        target_dir: str,
        directory: str,
        taken: Set[str],
        scanner_logger,
    ) -> Optional[str]:
        existing = await self.resource_service.get_resource(doc_id, reference.url, db)
        if (
            existing is not None
            and existing.status == ResourceStatus.DOWNLOADED
            and existing.local_path
            and await self.store.exists(existing.local_path)
        ):
            return relative_posix_path(existing.local_path, target_dir)

        filename = scanner.allocate_name(reference, taken)
        taken.add(filename)
        local_path = os.path.join(directory, filename)

        try:
            data = await self.remote.download(reference.url, timeout=scanner.timeout, max_bytes=scanner.max_bytes)
            size = await self.store.write_bytes(local_path, data)
        except Exception as exc:
            scanner_logger.warning(f"Failed to download {reference.url}: {exc}", exc_info=not isinstance(exc, RemoteError))
            await self.resource_service.record_resource(
                ResourceRecord(
                    doc_id=doc_id,
                    resource_type=scanner.resource_type,
                    remote_url=reference.url,
                    filename=filename,
                    status=ResourceStatus.FAILED,
                ),
                db,
            )
            return None

        await self.resource_service.record_resource(
            ResourceRecord(
                doc_id=doc_id,
                resource_type=scanner.resource_type,
                remote_url=reference.url,
                local_path=local_path,
                filename=filename,
                size_bytes=size,
                status=ResourceStatus.DOWNLOADED,
            ),
            db,
        )
        scanner_logger.debug(f"Downloaded {filename} ({size} bytes)")
        return f"{scanner.subdirectory}/{filename}"
