"""Persistence adapters for the issues tree.

All paths are relative POSIX paths below the ``.issues`` directory, e.g.
``issues/ab/cdef.../tags``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)


class Storage(ABC):
    """Abstract file access below the issues root."""

    @abstractmethod
    def read(self, path: str) -> str:
        """Read a text file.

        Args:
            path: Relative path of the file

        Returns:
            File content

        Raises:
            FileNotFoundError: If the file does not exist
            UnicodeDecodeError: If the file is not valid UTF-8
        """
        ...

    @abstractmethod
    def write(self, path: str, text: str) -> None:
        """Write a text file, creating parent directories as needed."""
        ...

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check whether a file or directory exists."""
        ...

    @abstractmethod
    def remove(self, path: str) -> None:
        """Remove a file. Removing a missing file is a no-op."""
        ...

    @abstractmethod
    def is_dir(self, path: str) -> bool:
        """Check whether a path is a directory."""
        ...

    @abstractmethod
    def list_dir(self, path: str) -> list[str]:
        """List entry names of a directory, sorted.

        Returns an empty list when the directory does not exist.
        """
        ...


class FileStorage(Storage):
    """Storage backed by the real filesystem."""

    def __init__(self, root: str | Path) -> None:
        """Initialize with the ``.issues`` directory as root."""
        self.root = Path(root)

    def _abs(self, path: str) -> Path:
        return self.root / PurePosixPath(path)

    def read(self, path: str) -> str:
        """Read a UTF-8 text file below the root."""
        return self._abs(path).read_text(encoding="utf-8")

    def write(self, path: str, text: str) -> None:
        """Write a UTF-8 text file below the root."""
        target = self._abs(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        logger.debug("Wrote %s", target)

    def exists(self, path: str) -> bool:
        """Check whether the path exists below the root."""
        return self._abs(path).exists()

    def remove(self, path: str) -> None:
        """Unlink a file and prune the directories it leaves empty."""
        target = self._abs(path)
        target.unlink(missing_ok=True)
        logger.debug("Removed %s", target)
        parent = target.parent
        while parent != self.root and parent.is_dir() and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent

    def is_dir(self, path: str) -> bool:
        """Check whether the path is a directory below the root."""
        return self._abs(path).is_dir()

    def list_dir(self, path: str) -> list[str]:
        """List a directory below the root."""
        target = self._abs(path)
        if not target.is_dir():
            return []
        return sorted(entry.name for entry in target.iterdir())


class MemoryStorage(Storage):
    """In-memory implementation of Storage for testing.

    Files live in a dictionary keyed by relative path. Directories exist
    implicitly as prefixes of file paths. A value may be ``bytes`` to
    simulate an undecodable file.

    Example:
        >>> storage = MemoryStorage()
        >>> storage.write("issues/ab/cd/tags", "open\\n")
        >>> assert storage.list_dir("issues") == ["ab"]
    """

    def __init__(self, files: dict[str, str | bytes] | None = None) -> None:
        """Initialize with optional starting files."""
        self.files: dict[str, str | bytes] = dict(files or {})

    @staticmethod
    def _norm(path: str) -> str:
        return str(PurePosixPath(path))

    def read(self, path: str) -> str:
        """Read a file from memory."""
        try:
            value = self.files[self._norm(path)]
        except KeyError:
            raise FileNotFoundError(path) from None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def write(self, path: str, text: str) -> None:
        """Store a file in memory."""
        self.files[self._norm(path)] = text

    def exists(self, path: str) -> bool:
        """Check whether a file or implied directory exists."""
        return self._norm(path) in self.files or self.is_dir(path)

    def remove(self, path: str) -> None:
        """Drop a file from memory."""
        self.files.pop(self._norm(path), None)

    def is_dir(self, path: str) -> bool:
        """Check whether any file lives below the path."""
        norm = self._norm(path)
        if norm == ".":
            return True
        prefix = norm + "/"
        return any(name.startswith(prefix) for name in self.files)

    def list_dir(self, path: str) -> list[str]:
        """List the immediate children implied by stored file paths."""
        norm = self._norm(path)
        prefix = "" if norm == "." else norm + "/"
        children = {
            name[len(prefix) :].split("/", 1)[0]
            for name in self.files
            if name.startswith(prefix)
        }
        return sorted(children)

    def snapshot(self) -> dict[str, str | bytes]:
        """Return a copy of all stored files."""
        return dict(self.files)
