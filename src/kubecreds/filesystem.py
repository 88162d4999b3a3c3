"""File-system access used during credential resolution."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Protocol

__all__ = [
    "FileSystem",
    "LocalFileSystem",
]


class FileSystem(Protocol):
    """Minimal file-system interface needed to resolve credentials.

    Implementations raise `FileNotFoundError` for missing files and other
    `OSError` subclasses for any other failure.
    """

    async def read_text(self, path: Path) -> str:
        """Read a file as UTF-8 text."""

    async def read_bytes(self, path: Path) -> bytes:
        """Read a file as binary data."""

    async def access(self, path: Path) -> bool:
        """Return whether a file exists and is readable."""


class LocalFileSystem:
    """Access the local file system without blocking the event loop."""

    async def read_text(self, path: Path) -> str:
        return await asyncio.to_thread(path.read_text, encoding="utf-8")

    async def read_bytes(self, path: Path) -> bytes:
        return await asyncio.to_thread(path.read_bytes)

    async def access(self, path: Path) -> bool:
        return await asyncio.to_thread(os.access, path, os.R_OK)
