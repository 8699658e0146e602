"""Yuque implementation of the remote provider, built on httpx."""

import asyncio
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from ...modules.common.constants import NOTES_BOOK_ID, NOTES_BOOK_NAME, NOTES_BOOK_SLUG
from ...modules.common.utils.timestamps import utc_now_iso
from ..config.settings import Settings, get_settings
from ..logging import get_logger
from .base import (
    BookAddress,
    ContentFormat,
    DocType,
    RemoteAuthenticationError,
    RemoteBook,
    RemoteCredentials,
    RemoteDocument,
    RemoteError,
    RemoteProvider,
    RenderOptions,
    ResourceTooLargeError,
)

logger = get_logger()

CredentialSource = Callable[[], Awaitable[Optional[RemoteCredentials]]]

BOOK_STACKS_PATH = "/api/mine/book_stacks"
COLLAB_BOOKS_PATH = "/api/mine/raw_collab_books"
DOCS_PATH = "/api/docs"
CATALOG_PATH = "/api/catalog_nodes"
NOTES_PATH = "/api/modules/note/notes/NoteController/index"

CREDENTIAL_HOSTS = ("yuque.com", "nlark.com", "alipayobjects.com", "intranetproxy.alipay.com")

NOTE_TITLE_LIMIT = 50
UNTITLED_NOTE = "Untitled note"

_TAG_PATTERN = re.compile(r"<[^>]*>")


def is_yuque_host(url: str) -> bool:
    """Whether a URL points at a host that expects the session cookie."""
    try:
        hostname = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return any(hostname == host or hostname.endswith("." + host) for host in CREDENTIAL_HOSTS)


def note_title(content: str, tags: List[str]) -> str:
    """Derive a note title from the first line of its HTML abstract."""
    first_line = content.split("\n")[0] if content else ""
    title = _TAG_PATTERN.sub("", first_line).strip()
    if len(title) > NOTE_TITLE_LIMIT:
        title = title[:NOTE_TITLE_LIMIT] + "..."
    if not title:
        title = UNTITLED_NOTE
    if tags:
        title = f"[{', '.join(tags)}] {title}"
    return title


class YuqueRemoteProvider(RemoteProvider):
    """Remote provider speaking Yuque's web API.

    Requests are authenticated with the session cookie supplied by
    ``credential_source``. Connection errors, timeouts and 5xx responses are
    retried with exponential backoff; 401/403 responses are raised as
    ``RemoteAuthenticationError`` without retrying.

    Note contents arrive with the note listing, so they are cached by
    document id until the next listing.
    """

    def __init__(
        self,
        credential_source: CredentialSource,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the provider.

        Args:
            credential_source: Coroutine function returning the current credentials, or None
            settings: Application settings (uses get_settings() if None)
            transport: Optional httpx transport, used by tests to stub the network
        """
        self.settings = settings or get_settings()
        self.credential_source = credential_source
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._note_contents: Dict[str, str] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.settings.YUQUE_HOST,
                timeout=self.settings.REMOTE_REQUEST_TIMEOUT,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def get_credentials(self) -> RemoteCredentials:
        credentials = await self.credential_source()
        if credentials is None or not credentials.cookies:
            raise RemoteAuthenticationError("Not logged in or the session has expired")
        return credentials

    def _headers(self, credentials: RemoteCredentials) -> Dict[str, str]:
        return {
            "content-type": "application/json",
            "x-requested-with": "XMLHttpRequest",
            "user-agent": self.settings.YUQUE_USER_AGENT,
            "cookie": credentials.cookies,
        }

    async def _request_with_retry(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Execute an authenticated request, retrying transient failures.

        Retries on connection errors, timeouts and 5xx responses with
        exponential backoff. Other 4xx responses are not retried.
        """
        credentials = await self.get_credentials()
        client = await self._get_client()
        max_retries = max(1, self.settings.REMOTE_MAX_RETRIES)
        last_exc: Optional[Exception] = None

        for attempt in range(max_retries):
            try:
                resp = await client.request(method, path, headers=self._headers(credentials), **kwargs)
                if resp.status_code in (401, 403):
                    raise RemoteAuthenticationError(f"Remote rejected the session ({resp.status_code})")
                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp
                last_exc = httpx.HTTPStatusError(
                    f"Server error {resp.status_code}",
                    request=resp.request,
                    response=resp,
                )
            except (httpx.ConnectError, httpx.TimeoutException) as exc:
                last_exc = exc
            except httpx.HTTPStatusError as exc:
                raise RemoteError(f"{method} {path} failed with status {exc.response.status_code}") from exc

            if attempt < max_retries - 1:
                delay = self.settings.REMOTE_RETRY_BASE_DELAY * (2**attempt)
                logger.warning(
                    "Request %s %s failed (attempt %d/%d), retrying in %.1fs: %s",
                    method,
                    path,
                    attempt + 1,
                    max_retries,
                    delay,
                    last_exc,
                )
                await asyncio.sleep(delay)

        raise RemoteError(f"{method} {path} failed after {max_retries} attempts: {last_exc}") from last_exc

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        resp = await self._request_with_retry("GET", path, params=params)
        try:
            body = resp.json()
        except ValueError as exc:
            raise RemoteError(f"GET {path} returned a non-JSON body") from exc
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    async def list_books(self) -> List[RemoteBook]:
        credentials = await self.get_credentials()

        stacks = await self._get_json(BOOK_STACKS_PATH) or []
        personal = [book for stack in stacks for book in (stack.get("books") or [])]

        try:
            collab = await self._get_json(COLLAB_BOOKS_PATH) or []
        except RemoteAuthenticationError:
            raise
        except RemoteError as exc:
            logger.warning(f"Failed to fetch collaborative books: {exc}")
            collab = []

        books = [
            RemoteBook(
                id=str(item["id"]),
                slug=item.get("slug", ""),
                name=item.get("name", ""),
                user_login=(item.get("user") or {}).get("login", ""),
                book_type="owner" if (item.get("user") or {}).get("login") == credentials.login else "collab",
                doc_count=int(item.get("items_count") or 0),
            )
            for item in [*personal, *collab]
        ]

        notes_book = RemoteBook(
            id=NOTES_BOOK_ID,
            slug=NOTES_BOOK_SLUG,
            name=NOTES_BOOK_NAME,
            user_login=credentials.login,
            book_type="owner",
            doc_count=0,
        )
        return [notes_book, *books]

    async def list_documents(self, book_id: str) -> List[RemoteDocument]:
        if book_id == NOTES_BOOK_ID:
            return await self._list_notes()

        items = await self._get_json(DOCS_PATH, params={"book_id": book_id}) or []
        documents = [
            RemoteDocument(
                id=str(item["id"]),
                book_id=book_id,
                slug=item.get("slug", ""),
                title=item.get("title", ""),
                remote_updated_at=item.get("content_updated_at") or item.get("updated_at") or utc_now_iso(),
                remote_created_at=item.get("created_at") or item.get("updated_at"),
            )
            for item in items
        ]

        await self._apply_catalog(book_id, documents)
        return documents

    async def _apply_catalog(self, book_id: str, documents: List[RemoteDocument]) -> None:
        """Merge table-of-contents hierarchy into the listed documents.

        Section titles without a document body are appended as TITLE nodes.
        The catalog is optional; failures leave the listing flat.
        """
        try:
            nodes = await self._get_json(CATALOG_PATH, params={"book_id": book_id}) or []
        except RemoteAuthenticationError:
            raise
        except RemoteError as exc:
            logger.warning(f"Catalog unavailable for book {book_id}, keeping a flat listing: {exc}")
            return

        by_id = {document.id: document for document in documents}
        for position, node in enumerate(nodes):
            doc_type = DocType.TITLE if node.get("type") == DocType.TITLE.value else DocType.DOC
            doc_id = str(node["doc_id"]) if node.get("doc_id") else None
            target = by_id.get(doc_id) if doc_id else None

            if target is None:
                if doc_type != DocType.TITLE or not node.get("uuid"):
                    continue
                target = RemoteDocument(
                    id=f"toc_{node['uuid']}",
                    book_id=book_id,
                    slug=node.get("url") or node["uuid"],
                    title=node.get("title", ""),
                    remote_updated_at=None,
                )
                documents.append(target)

            target.uuid = node.get("uuid")
            target.parent_uuid = node.get("parent_uuid") or None
            target.child_uuid = node.get("child_uuid") or None
            target.doc_type = doc_type
            target.depth = int(node.get("level") or 0)
            target.sort_order = position

    async def _list_notes(self) -> List[RemoteDocument]:
        """Page through every note; pinned notes come with the first page only."""
        self._note_contents.clear()
        documents: List[RemoteDocument] = []
        limit = self.settings.NOTES_PAGE_SIZE
        offset = 0
        has_more = True

        while has_more:
            page = await self._get_json(
                NOTES_PATH,
                params={
                    "offset": offset,
                    "q": "",
                    "filter_type": "all",
                    "status": 0,
                    "merge_dynamic_data": 0,
                    "order": "content_updated_at",
                    "with_pinned_notes": "true",
                    "limit": limit,
                },
            ) or {}
            pinned = (page.get("pin_notes") or []) if offset == 0 else []
            notes = [*pinned, *(page.get("notes") or [])]
            has_more = bool(page.get("has_more"))

            for note in notes:
                content = note.get("content") or {}
                abstract = content.get("abstract") or ""
                tags = [tag.get("name", "") for tag in note.get("tags") or []]
                note_id = f"note_{note['id']}"
                self._note_contents[note_id] = abstract

                documents.append(
                    RemoteDocument(
                        id=note_id,
                        book_id=NOTES_BOOK_ID,
                        slug=note.get("slug") or note_id,
                        title=note_title(abstract, tags),
                        remote_updated_at=content.get("updated_at") or note.get("updated_at") or utc_now_iso(),
                        remote_created_at=note.get("created_at") or content.get("updated_at"),
                        content_format=ContentFormat.HTML,
                    )
                )

            offset += limit
            if offset > self.settings.NOTES_MAX_OFFSET:
                logger.warning(f"Stopped paging notes at offset {offset}")
                break

        return documents

    async def fetch_content(self, book: BookAddress, document: RemoteDocument, options: RenderOptions) -> str:
        if document.book_id == NOTES_BOOK_ID:
            if document.id not in self._note_contents:
                await self._list_notes()
            if document.id not in self._note_contents:
                raise RemoteError(f"Note {document.id} no longer exists")
            return self._note_contents[document.id]

        path = f"/{book.user_login}/{book.slug}/{document.slug}/markdown"
        params = {
            "attachment": "true",
            "latexcode": str(options.latexcode).lower(),
            "anchor": "false",
            "linebreak": str(options.linebreak).lower(),
        }
        resp = await self._request_with_retry("GET", path, params=params)
        return resp.text

    async def download(self, url: str, *, timeout: float, max_bytes: Optional[int] = None) -> bytes:
        headers = {"user-agent": self.settings.YUQUE_USER_AGENT}
        if is_yuque_host(url):
            credentials = await self.credential_source()
            if credentials is not None and credentials.cookies:
                headers["cookie"] = credentials.cookies

        client = await self._get_client()
        chunks: List[bytes] = []
        received = 0
        try:
            async with client.stream("GET", url, headers=headers, timeout=timeout) as resp:
                resp.raise_for_status()
                async for chunk in resp.aiter_bytes():
                    received += len(chunk)
                    if max_bytes is not None and received > max_bytes:
                        raise ResourceTooLargeError(f"{url} exceeds the {max_bytes} byte limit")
                    chunks.append(chunk)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RemoteError(f"Download of {url} failed: {exc}") from exc

        return b"".join(chunks)
