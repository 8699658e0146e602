"""Local filesystem capability used by the sync engine.

Blocking filesystem calls are pushed to worker threads so the event loop keeps
serving status queries while a sync writes files.
"""

import asyncio
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Set


class LocalFileStore:
    """Async facade over the handful of filesystem operations the sync needs."""

    async def ensure_dir(self, path: str) -> None:
        await asyncio.to_thread(os.makedirs, path, exist_ok=True)

    async def write_text(self, path: str, content: str) -> None:
        """Write UTF-8 text, creating parent directories first."""
        await asyncio.to_thread(self._write_text, path, content)

    async def write_bytes(self, path: str, data: bytes) -> int:
        """Write binary data, creating parent directories first.

        Returns:
            Number of bytes written
        """
        return await asyncio.to_thread(self._write_bytes, path, data)

    async def set_times(self, path: str, accessed: Optional[datetime], modified: Optional[datetime]) -> None:
        """Set access/modification times; missing values keep the current ones."""
        await asyncio.to_thread(self._set_times, path, accessed, modified)

    async def list_dir(self, path: str) -> Set[str]:
        """Names of the entries in a directory; empty when it does not exist."""
        return await asyncio.to_thread(self._list_dir, path)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def directory_size(self, path: str) -> int:
        """Total size in bytes of all files below a directory."""
        return await asyncio.to_thread(self._directory_size, path)

    @staticmethod
    def _write_text(path: str, content: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)

    @staticmethod
    def _write_bytes(path: str, data: bytes) -> int:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        return len(data)

    @staticmethod
    def _set_times(path: str, accessed: Optional[datetime], modified: Optional[datetime]) -> None:
        if accessed is None and modified is None:
            return
        stat = os.stat(path)
        atime = accessed.timestamp() if accessed is not None else stat.st_atime
        mtime = modified.timestamp() if modified is not None else stat.st_mtime
        os.utime(path, (atime, mtime))

    @staticmethod
    def _list_dir(path: str) -> Set[str]:
        if not os.path.isdir(path):
            return set()
        return set(os.listdir(path))

    @staticmethod
    def _directory_size(path: str) -> int:
        total = 0
        for root, _dirs, files in os.walk(path):
            for name in files:
                try:
                    total += os.path.getsize(os.path.join(root, name))
                except OSError:
                    continue
        return total
