"""File system access for the build graph.

Target names are paths relative to an explicit working root. Everything
that needs existence or modification times goes through a FileSystem, so
the staleness logic can be exercised against an in-memory tree with a
manual clock.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class FileSystem(Protocol):
    """Minimal file system interface used by the build graph."""

    def mtime(self, path: str) -> float | None:
        """Return the modification time, or None if the path does not exist."""
        ...

    def exists(self, path: str) -> bool: ...

    def read_text(self, path: str) -> str: ...

    def write_text_atomic(self, path: str, content: str) -> None:
        """Write content so readers see either the old or the new file."""
        ...

    def remove(self, path: str) -> bool:
        """Remove a file or directory tree; return False if it was absent."""
        ...


class LocalFileSystem:
    """FileSystem backed by the real disk, rooted at a working directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def resolve(self, path: str) -> Path:
        return self.root / path

    def mtime(self, path: str) -> float | None:
        try:
            return self.resolve(path).stat().st_mtime
        except FileNotFoundError:
            return None

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def read_text(self, path: str) -> str:
        return self.resolve(path).read_text(encoding="utf-8")

    def write_text_atomic(self, path: str, content: str) -> None:
        final = self.resolve(path)
        final.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=final.parent, prefix=f".{final.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, final)
        finally:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)

    def remove(self, path: str) -> bool:
        target = self.resolve(path)
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
            return True
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        return True


class Clock:
    """Manual clock for MemoryFileSystem."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def advance(self, seconds: float = 1.0) -> float:
        self.now += seconds
        return self.now


@dataclass
class _MemoryFile:
    content: str
    mtime: float


class MemoryFileSystem:
    """In-memory FileSystem with an injectable clock.

    Writes stamp files with the clock's current time; the clock only moves
    when told to, so equal timestamps are easy to produce.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or Clock()
        self.files: dict[str, _MemoryFile] = {}

    def mtime(self, path: str) -> float | None:
        entry = self.files.get(path)
        return entry.mtime if entry else None

    def exists(self, path: str) -> bool:
        return path in self.files

    def read_text(self, path: str) -> str:
        try:
            return self.files[path].content
        except KeyError:
            raise FileNotFoundError(path) from None

    def write_text_atomic(self, path: str, content: str) -> None:
        self.files[path] = _MemoryFile(content, self.clock.now)

    def remove(self, path: str) -> bool:
        prefix = path.rstrip("/") + "/"
        doomed = [p for p in self.files if p == path or p.startswith(prefix)]
        for p in doomed:
            del self.files[p]
        return bool(doomed)

    def touch(self, path: str, mtime: float | None = None) -> None:
        """Create or re-stamp a file."""
        stamp = self.clock.now if mtime is None else mtime
        entry = self.files.get(path)
        if entry is None:
            self.files[path] = _MemoryFile("", stamp)
        else:
            entry.mtime = stamp


__all__ = ["Clock", "FileSystem", "LocalFileSystem", "MemoryFileSystem"]
