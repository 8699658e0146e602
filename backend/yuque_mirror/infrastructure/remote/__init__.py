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
from .yuque import YuqueRemoteProvider, is_yuque_host

__all__ = [
    "BookAddress",
    "ContentFormat",
    "DocType",
    "RemoteAuthenticationError",
    "RemoteBook",
    "RemoteCredentials",
    "RemoteDocument",
    "RemoteError",
    "RemoteProvider",
    "RenderOptions",
    "ResourceTooLargeError",
    "YuqueRemoteProvider",
    "is_yuque_host",
]
