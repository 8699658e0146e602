from .local import LocalFileStore

__all__ = ["LocalFileStore"]
