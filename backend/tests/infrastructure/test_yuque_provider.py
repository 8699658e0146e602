"""Tests for the Yuque remote provider against a stubbed transport."""

from typing import Callable, List

import httpx
import pytest

from yuque_mirror.infrastructure.config.settings import get_settings
from yuque_mirror.infrastructure.remote import (
    BookAddress,
    ContentFormat,
    DocType,
    RemoteAuthenticationError,
    RemoteCredentials,
    RemoteError,
    RenderOptions,
    ResourceTooLargeError,
    YuqueRemoteProvider,
    is_yuque_host,
)
from yuque_mirror.infrastructure.remote.yuque import note_title
from yuque_mirror.modules.common.constants import NOTES_BOOK_ID

from fakes import make_document


async def alice() -> RemoteCredentials:
    return RemoteCredentials(login="alice", cookies="_yuque_session=abc")


async def nobody():
    return None


def provider(handler: Callable[[httpx.Request], httpx.Response], requests: List[httpx.Request], **overrides):
    def recording(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    settings = get_settings().model_copy(update={"REMOTE_RETRY_BASE_DELAY": 0, **overrides})
    return YuqueRemoteProvider(alice, settings=settings, transport=httpx.MockTransport(recording))


def test_is_yuque_host():
    assert is_yuque_host("https://www.yuque.com/attachments/a.pdf") is True
    assert is_yuque_host("https://cdn.nlark.com/yuque/0/a.png") is True
    assert is_yuque_host("https://gw.alipayobjects.com/a.png") is True
    assert is_yuque_host("https://example.com/a.png") is False
    assert is_yuque_host("https://notyuque.com/a.png") is False


def test_note_title():
    assert note_title("<p>Shopping list</p>\n<p>milk</p>", []) == "Shopping list"
    assert note_title("", []) == "Untitled note"
    assert note_title("<p>Idea</p>", ["work", "ideas"]) == "[work, ideas] Idea"
    assert note_title("x" * 60, []) == "x" * 50 + "..."


class TestListBooks:
    async def test_personal_collab_and_notes_books(self):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/mine/book_stacks":
                return httpx.Response(
                    200,
                    json={
                        "data": [
                            {
                                "books": [
                                    {
                                        "id": 1,
                                        "slug": "handbook",
                                        "name": "Handbook",
                                        "user": {"login": "alice"},
                                        "items_count": 3,
                                    }
                                ]
                            },
                            {"books": None},
                        ]
                    },
                )
            if request.url.path == "/api/mine/raw_collab_books":
                return httpx.Response(200, json={"data": [{"id": 2, "slug": "ops", "name": "Ops", "user": {"login": "bob"}}]})
            return httpx.Response(404)

        books = await provider(handler, requests).list_books()

        assert [book.id for book in books] == [NOTES_BOOK_ID, "1", "2"]
        assert [book.book_type for book in books] == ["owner", "owner", "collab"]
        assert books[1].doc_count == 3
        assert books[2].user_login == "bob"
        assert requests[0].headers["cookie"] == "_yuque_session=abc"
        assert requests[0].headers["x-requested-with"] == "XMLHttpRequest"

    async def test_collab_failure_is_tolerated(self):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/mine/book_stacks":
                return httpx.Response(200, json={"data": []})
            return httpx.Response(404)

        books = await provider(handler, requests).list_books()

        assert [book.id for book in books] == [NOTES_BOOK_ID]

    async def test_missing_session(self):
        remote = YuqueRemoteProvider(nobody, transport=httpx.MockTransport(lambda request: httpx.Response(200)))

        with pytest.raises(RemoteAuthenticationError):
            await remote.list_books()


class TestListDocuments:
    async def test_catalog_hierarchy_and_title_nodes(self):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["book_id"] == "1"
            if request.url.path == "/api/docs":
                return httpx.Response(
                    200,
                    json={
                        "data": [
                            {
                                "id": 11,
                                "slug": "intro",
                                "title": "Intro",
                                "content_updated_at": "2024-01-02T00:00:00Z",
                                "created_at": "2024-01-01T00:00:00Z",
                            },
                            {"id": 12, "slug": "setup", "title": "Setup", "updated_at": "2024-01-03T00:00:00Z"},
                        ]
                    },
                )
            return httpx.Response(
                200,
                json={
                    "data": [
                        {"type": "TITLE", "uuid": "u1", "title": "Basics", "child_uuid": "u2", "level": 0},
                        {"type": "DOC", "uuid": "u2", "parent_uuid": "u1", "doc_id": 11, "level": 1},
                        {"type": "DOC", "uuid": "u3", "doc_id": 12, "level": 0},
                    ]
                },
            )

        documents = await provider(handler, requests).list_documents("1")

        by_id = {document.id: document for document in documents}
        assert [document.id for document in documents] == ["11", "12", "toc_u1"]
        assert by_id["11"].remote_updated_at == "2024-01-02T00:00:00Z"
        assert by_id["11"].remote_created_at == "2024-01-01T00:00:00Z"
        assert by_id["12"].remote_updated_at == "2024-01-03T00:00:00Z"
        assert (by_id["11"].parent_uuid, by_id["11"].depth, by_id["11"].sort_order) == ("u1", 1, 1)
        assert by_id["toc_u1"].doc_type == DocType.TITLE
        assert by_id["toc_u1"].child_uuid == "u2"
        assert by_id["toc_u1"].remote_updated_at is None
        assert by_id["12"].parent_uuid is None

    async def test_catalog_failure_keeps_flat_listing(self):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/docs":
                return httpx.Response(200, json={"data": [{"id": 11, "slug": "intro", "title": "Intro"}]})
            return httpx.Response(503)

        documents = await provider(handler, requests).list_documents("1")

        assert [document.id for document in documents] == ["11"]
        assert documents[0].uuid is None
        assert documents[0].remote_updated_at is not None

    async def test_notes_are_paged(self):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            offset = int(request.url.params["offset"])
            if offset == 0:
                return httpx.Response(
                    200,
                    json={
                        "data": {
                            "pin_notes": [
                                {
                                    "id": 1,
                                    "content": {
                                        "abstract": "<p>Pinned idea</p>\n<p>more</p>",
                                        "updated_at": "2024-01-01T00:00:00Z",
                                    },
                                    "tags": [{"name": "idea"}],
                                }
                            ],
                            "notes": [{"id": 2, "content": {"abstract": ""}, "updated_at": "2024-01-02T00:00:00Z"}],
                            "has_more": True,
                        }
                    },
                )
            return httpx.Response(
                200,
                json={
                    "data": {
                        "pin_notes": [{"id": 1, "content": {"abstract": "<p>Pinned idea</p>"}}],
                        "notes": [{"id": 3, "content": {"abstract": "<p>Third</p>"}}],
                        "has_more": False,
                    }
                },
            )

        remote = provider(handler, requests, NOTES_PAGE_SIZE=2)
        documents = await remote.list_documents(NOTES_BOOK_ID)

        assert [document.id for document in documents] == ["note_1", "note_2", "note_3"]
        assert [document.title for document in documents] == ["[idea] Pinned idea", "Untitled note", "Third"]
        assert all(document.content_format == ContentFormat.HTML for document in documents)
        assert documents[1].remote_updated_at == "2024-01-02T00:00:00Z"
        assert [request.url.params["offset"] for request in requests] == ["0", "2"]

        address = BookAddress(book_id=NOTES_BOOK_ID, user_login="alice", slug="notes")
        content = await remote.fetch_content(address, documents[0], RenderOptions())
        assert content == "<p>Pinned idea</p>\n<p>more</p>"
        assert len(requests) == 2


class TestRequests:
    async def test_fetch_markdown(self):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="# Intro\n")

        remote = provider(handler, requests)
        address = BookAddress(book_id="1", user_login="alice", slug="handbook")

        content = await remote.fetch_content(
            address, make_document("11", "Intro", book_id="1", slug="intro"), RenderOptions(linebreak=False, latexcode=True)
        )

        assert content == "# Intro\n"
        assert requests[0].url.path == "/alice/handbook/intro/markdown"
        assert dict(requests[0].url.params) == {
            "attachment": "true",
            "latexcode": "true",
            "anchor": "false",
            "linebreak": "false",
        }

    async def test_rejected_session_is_not_retried(self):
        requests: List[httpx.Request] = []

        with pytest.raises(RemoteAuthenticationError):
            await provider(lambda request: httpx.Response(401), requests).list_documents("1")

        assert len(requests) == 1

    async def test_server_errors_are_retried(self):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if len(requests) < 3:
                return httpx.Response(502)
            return httpx.Response(200, json={"data": []})

        documents = await provider(handler, requests, REMOTE_MAX_RETRIES=3).list_documents("1")

        assert documents == []
        assert len(requests) == 4

    async def test_retries_are_bounded(self):
        requests: List[httpx.Request] = []

        with pytest.raises(RemoteError):
            await provider(lambda request: httpx.Response(500), requests, REMOTE_MAX_RETRIES=2).list_books()

        assert len(requests) == 2

    async def test_connection_errors_are_retried(self):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if len(requests) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"data": []})

        assert await provider(handler, requests).list_documents("1") == []


class TestDownload:
    async def test_cookie_only_for_yuque_hosts(self):
        requests: List[httpx.Request] = []
        remote = provider(lambda request: httpx.Response(200, content=b"data"), requests)

        assert await remote.download("https://cdn.nlark.com/yuque/0/a.png", timeout=5) == b"data"
        await remote.download("https://example.com/b.png", timeout=5)

        assert requests[0].headers["cookie"] == "_yuque_session=abc"
        assert "cookie" not in requests[1].headers

    async def test_size_cap(self):
        requests: List[httpx.Request] = []
        remote = provider(lambda request: httpx.Response(200, content=b"0123456789"), requests)

        with pytest.raises(ResourceTooLargeError):
            await remote.download("https://www.yuque.com/attachments/a.pdf", timeout=5, max_bytes=4)

    async def test_http_error(self):
        requests: List[httpx.Request] = []
        remote = provider(lambda request: httpx.Response(404), requests)

        with pytest.raises(RemoteError):
            await remote.download("https://cdn.nlark.com/yuque/0/missing.png", timeout=5)

    async def test_malformed_url(self):
        requests: List[httpx.Request] = []
        remote = provider(lambda request: httpx.Response(200, content=b"\x89PNG"), requests)

        with pytest.raises(RemoteError):
            await remote.download("https://cdn.nlark.com/yuque/0/2024/png/2193/a\tb.png", timeout=5)
        assert requests == []
