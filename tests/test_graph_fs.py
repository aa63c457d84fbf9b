"""Tests for graph/fs.py module."""

from incbuild.graph.fs import Clock, LocalFileSystem, MemoryFileSystem


class TestLocalFileSystem:
    """Tests for LocalFileSystem."""

    def test_mtime_missing(self, tmp_path):
        """Missing files have no modification time."""
        fs = LocalFileSystem(tmp_path)
        assert fs.mtime("nope") is None
        assert fs.exists("nope") is False

    def test_write_text_atomic(self, tmp_path):
        """Atomic writes create parents and leave no temp files."""
        fs = LocalFileSystem(tmp_path)
        fs.write_text_atomic("build/release/lib.deps.json", "{}\n")

        assert fs.read_text("build/release/lib.deps.json") == "{}\n"
        assert sorted(p.name for p in (tmp_path / "build/release").iterdir()) == [
            "lib.deps.json"
        ]
        assert fs.mtime("build/release/lib.deps.json") is not None

    def test_write_replaces_existing(self, tmp_path):
        """Atomic writes replace the previous content."""
        fs = LocalFileSystem(tmp_path)
        fs.write_text_atomic("a.txt", "old")
        fs.write_text_atomic("a.txt", "new")
        assert fs.read_text("a.txt") == "new"

    def test_remove_file_and_directory(self, tmp_path):
        """remove handles files, trees and missing paths."""
        fs = LocalFileSystem(tmp_path)
        fs.write_text_atomic("out/doc/index.html", "<html/>")
        fs.write_text_atomic("out/lib", "lib")

        assert fs.remove("out/lib") is True
        assert fs.remove("out/doc") is True
        assert fs.remove("out/doc") is False
        assert not (tmp_path / "out/doc").exists()


class TestMemoryFileSystem:
    """Tests for MemoryFileSystem."""

    def test_writes_use_clock(self):
        """Writes are stamped with the clock's current time."""
        clock = Clock(start=10.0)
        fs = MemoryFileSystem(clock)
        fs.write_text_atomic("a", "1")
        clock.advance(5)
        fs.write_text_atomic("b", "2")
        assert fs.mtime("a") == 10.0
        assert fs.mtime("b") == 15.0

    def test_touch_restamps(self):
        """touch keeps content and updates the modification time."""
        fs = MemoryFileSystem()
        fs.write_text_atomic("a", "content")
        fs.touch("a", mtime=1.0)
        assert fs.mtime("a") == 1.0
        assert fs.read_text("a") == "content"

    def test_remove_directory_prefix(self):
        """Removing a directory removes everything under it."""
        fs = MemoryFileSystem()
        fs.touch("doc/index.html")
        fs.touch("doc/.stamp")
        fs.touch("docs.txt")
        assert fs.remove("doc") is True
        assert fs.files.keys() == {"docs.txt"}
        assert fs.remove("doc") is False
