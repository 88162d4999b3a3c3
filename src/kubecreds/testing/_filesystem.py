"""In-memory file system."""

from __future__ import annotations

from pathlib import Path

__all__ = ["MockFileSystem"]


class MockFileSystem:
    """In-memory implementation of `kubecreds.filesystem.FileSystem`.

    Parameters
    ----------
    files
        Initial contents, keyed by path. Text is stored as UTF-8.

    Examples
    --------
    .. code-block:: python

       fs = MockFileSystem({"/sa/token": "some-token"})
       fs.fail_reads("/sa/namespace", PermissionError("denied"))
    """

    def __init__(
        self, files: dict[str | Path, str | bytes] | None = None
    ) -> None:
        self._files: dict[Path, bytes] = {}
        self._errors: dict[Path, OSError] = {}
        for path, content in (files or {}).items():
            self.add(path, content)

    def add(self, path: str | Path, content: str | bytes) -> None:
        """Add or replace a file."""
        if isinstance(content, str):
            content = content.encode()
        self._files[Path(path)] = content

    def fail_reads(self, path: str | Path, error: OSError) -> None:
        """Make reads of a file raise an error.

        The file is still reported as present by `access`.
        """
        self._errors[Path(path)] = error

    async def read_text(self, path: Path) -> str:
        return self._get(path).decode()

    async def read_bytes(self, path: Path) -> bytes:
        return self._get(path)

    async def access(self, path: Path) -> bool:
        return Path(path) in self._files or Path(path) in self._errors

    def _get(self, path: Path) -> bytes:
        path = Path(path)
        if path in self._errors:
            raise self._errors[path]
        if path not in self._files:
            raise FileNotFoundError(2, "No such file or directory", str(path))
        return self._files[path]
