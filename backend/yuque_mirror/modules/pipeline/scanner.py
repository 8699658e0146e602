"""Strategies that find and rewrite resource references in document content.

Each scanner owns one resource class: which URLs count, where the files go,
how they are named and in which syntactic contexts a reference is rewritten.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AbstractSet, Dict, List, Optional
from urllib.parse import parse_qs, urlsplit

from ..resource.schemas import ResourceType
from .naming import IMAGE_EXTENSIONS, attachment_original_name, image_filename, unique_filename

IMAGE_CDN_HOSTS = ("cdn.nlark.com", "cdn.yuque.com", "gw.alipayobjects.com", "intranetproxy.alipay.com")
IMAGE_PATH_MARKERS = ("/image/", "/png/", "/jpeg/")

ATTACHMENT_HOSTS = ("cdn.nlark.com", "www.yuque.com", "yuque.com")
ATTACHMENT_PATH_MARKERS = ("/attachments/", "/attachment/", "/yuque/__puml/", "/office/")

_MARKDOWN_IMAGE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
_HTML_IMAGE = re.compile(r"""<img[^>]+src=["']([^"']+)["'][^>]*>""", re.IGNORECASE)
_BARE_CDN_URL = re.compile(r"""https?://(?:cdn\.nlark\.com|cdn\.yuque\.com|gw\.alipayobjects\.com)[^\s"'<>)]+""", re.IGNORECASE)
_MARKDOWN_LINK = re.compile(r"(?<!!)\[([^\]]+)\]\(([^)]+)\)")

# A URL occurrence ends where the bare-URL pattern would stop.
_URL_END = r"""(?![^\s"'<>)])"""


def _host_matches(host: str, domains: tuple) -> bool:
    return any(host == domain or host.endswith(f".{domain}") for domain in domains)


def _link_target(raw: str) -> str:
    """URL part of a markdown link target, without an optional title."""
    target = raw.strip()
    return target.split()[0] if target else ""


def is_image_url(url: str) -> bool:
    """Whether a URL points at an image, by extension or by Yuque CDN layout."""
    if not url or not url.lower().startswith("http"):
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False

    path = parts.path.lower()
    if path.endswith(IMAGE_EXTENSIONS):
        return True

    host = (parts.hostname or "").lower()
    if _host_matches(host, IMAGE_CDN_HOSTS):
        if any(marker in path for marker in IMAGE_PATH_MARKERS):
            return True
        if "x-oss-process" in parse_qs(parts.query, keep_blank_values=True):
            return True
    return False


def is_attachment_url(url: str) -> bool:
    """Whether a URL is a Yuque-hosted attachment that is not an image."""
    if not url or not url.lower().startswith("http"):
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False

    host = (parts.hostname or "").lower()
    if not _host_matches(host, ATTACHMENT_HOSTS):
        return False

    path = parts.path.lower()
    if not any(marker in path for marker in ATTACHMENT_PATH_MARKERS):
        return False
    return not path.endswith(IMAGE_EXTENSIONS)


@dataclass(frozen=True)
class ResourceReference:
    """One distinct resource URL found in a document."""

    url: str
    resource_type: ResourceType
    display_text: Optional[str] = None


class ResourceReferenceScanner(ABC):
    """Finds references of one resource class and rewrites them to local paths."""

    resource_type: ResourceType
    subdirectory: str

    def __init__(self, timeout: float, max_bytes: Optional[int] = None):
        self.timeout = timeout
        self.max_bytes = max_bytes

    @abstractmethod
    def extract(self, content: str) -> List[ResourceReference]:
        """Distinct references in order of first appearance."""
        pass

    @abstractmethod
    def rewrite(self, content: str, mapping: Dict[str, str]) -> str:
        """Replace each mapped URL with its local path in this class's contexts."""
        pass

    @abstractmethod
    def allocate_name(self, reference: ResourceReference, taken: AbstractSet[str]) -> str:
        """Pick a file name not in ``taken``."""
        pass


class ImageReferenceScanner(ResourceReferenceScanner):
    """Markdown images, HTML ``<img>`` tags and bare Yuque CDN image URLs."""

    resource_type = ResourceType.IMAGE
    subdirectory = "assets"

    def extract(self, content: str) -> List[ResourceReference]:
        found: Dict[str, ResourceReference] = {}

        candidates = [_link_target(match.group(2)) for match in _MARKDOWN_IMAGE.finditer(content)]
        candidates += [match.group(1).strip() for match in _HTML_IMAGE.finditer(content)]
        candidates += [match.group(0).strip() for match in _BARE_CDN_URL.finditer(content)]

        for url in candidates:
            if url not in found and is_image_url(url):
                found[url] = ResourceReference(url=url, resource_type=self.resource_type)
        return list(found.values())

    def rewrite(self, content: str, mapping: Dict[str, str]) -> str:
        # Longest first, so a URL that prefixes another cannot clobber it.
        for url in sorted(mapping, key=len, reverse=True):
            local = mapping[url]
            content = re.sub(re.escape(url) + _URL_END, lambda _m, local=local: local, content)
        return content

    def allocate_name(self, reference: ResourceReference, taken: AbstractSet[str]) -> str:
        return image_filename(reference.url, taken)


class AttachmentReferenceScanner(ResourceReferenceScanner):
    """Markdown links to files stored on Yuque."""

    resource_type = ResourceType.ATTACHMENT
    subdirectory = "attachments"

    def extract(self, content: str) -> List[ResourceReference]:
        found: Dict[str, ResourceReference] = {}
        for match in _MARKDOWN_LINK.finditer(content):
            url = _link_target(match.group(2))
            if url not in found and is_attachment_url(url):
                found[url] = ResourceReference(
                    url=url, resource_type=self.resource_type, display_text=match.group(1).strip()
                )
        return list(found.values())

    def rewrite(self, content: str, mapping: Dict[str, str]) -> str:
        for url, local in mapping.items():
            pattern = re.compile(r"((?<!!)\[[^\]]+\]\()" + re.escape(url) + r"(?=[\s)])")
            content = pattern.sub(lambda m, local=local: m.group(1) + local, content)
        return content

    def allocate_name(self, reference: ResourceReference, taken: AbstractSet[str]) -> str:
        return unique_filename(attachment_original_name(reference.url, reference.display_text), taken)
