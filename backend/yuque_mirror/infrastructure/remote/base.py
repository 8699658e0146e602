"""Abstract remote provider contract and the value types it exchanges."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ...modules.common.exceptions import PermissionDeniedError, UpstreamError


class ContentFormat(str, Enum):
    """Representation a document's content is served in."""

    MARKDOWN = "markdown"
    HTML = "html"


class DocType(str, Enum):
    """Kind of node in a book's table of contents."""

    DOC = "DOC"
    TITLE = "TITLE"


class RemoteError(UpstreamError):
    """Raised when the remote provider cannot serve a request."""

    pass


class RemoteAuthenticationError(RemoteError, PermissionDeniedError):
    """Raised when there is no valid session or the remote rejects the credentials."""

    pass


class ResourceTooLargeError(RemoteError):
    """Raised when a download exceeds its size cap."""

    pass


@dataclass
class RemoteCredentials:
    """Opaque credential material for the remote channel."""

    login: str
    cookies: str


@dataclass
class RemoteBook:
    """A knowledge base as listed by the remote."""

    id: str
    slug: str
    name: str
    user_login: str
    book_type: str
    doc_count: int = 0


@dataclass
class RemoteDocument:
    """One document in a book's remote snapshot."""

    id: str
    book_id: str
    slug: str
    title: str
    remote_updated_at: Optional[str] = None
    remote_created_at: Optional[str] = None
    uuid: Optional[str] = None
    parent_uuid: Optional[str] = None
    child_uuid: Optional[str] = None
    doc_type: DocType = DocType.DOC
    depth: int = 0
    sort_order: int = 0
    content_format: ContentFormat = ContentFormat.MARKDOWN


@dataclass
class BookAddress:
    """What the remote needs to address a book's content."""

    book_id: str
    user_login: str
    slug: str


@dataclass
class RenderOptions:
    """Markdown export switches."""

    linebreak: bool = True
    latexcode: bool = False


class RemoteProvider(ABC):
    """Interface to the remote document corpus.

    Implementations list books and documents, fetch document content and
    download embedded resources. A missing or rejected session must surface
    as ``RemoteAuthenticationError`` so callers can tell it apart from
    transient failures.
    """

    @abstractmethod
    async def get_credentials(self) -> RemoteCredentials:
        """Return the current credentials.

        Raises:
            RemoteAuthenticationError: If there is no valid session
        """
        pass

    @abstractmethod
    async def list_books(self) -> List[RemoteBook]:
        """List every book visible to the current user."""
        pass

    @abstractmethod
    async def list_documents(self, book_id: str) -> List[RemoteDocument]:
        """List a book's documents, including hierarchy fields when available."""
        pass

    @abstractmethod
    async def fetch_content(self, book: BookAddress, document: RemoteDocument, options: RenderOptions) -> str:
        """Fetch a document's content in its ``content_format``."""
        pass

    @abstractmethod
    async def download(self, url: str, *, timeout: float, max_bytes: Optional[int] = None) -> bytes:
        """Download an embedded resource.

        Args:
            url: Absolute resource URL
            timeout: Per-request timeout in seconds
            max_bytes: Payload cap; exceeding it raises ``ResourceTooLargeError``

        Returns:
            The resource body
        """
        pass

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        return None
