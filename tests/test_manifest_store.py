"""Tests for manifest/store.py module."""

import json

import pytest

from incbuild.errors import ManifestCorrupt
from incbuild.graph.fs import MemoryFileSystem
from incbuild.graph.models import Edge
from incbuild.manifest.store import (
    MANIFEST_VERSION,
    Manifest,
    load_manifest,
    manifest_filename,
    publish_manifest,
    read_manifest,
)
from incbuild.types import ManifestKind

LIB = "build/release/libirc.rlib"
PATH = "build/release/lib.deps.json"
KNOWN = {LIB, PATH, "build/release/test-irc"}


@pytest.fixture
def manifest() -> Manifest:
    return Manifest(
        root="lib.rs",
        edges=[Edge(LIB, "lib.rs"), Edge(LIB, "conn.rs"), Edge(PATH, "lib.rs")],
    )


class TestManifestFilename:
    """Tests for manifest_filename function."""

    def test_raw_and_published_names_differ(self):
        """The raw listing and the published manifest never share a name."""
        assert manifest_filename("lib", ManifestKind.RAW) == "lib.d"
        assert manifest_filename("lib", ManifestKind.PUBLISHED) == "lib.deps.json"


class TestManifest:
    """Tests for the Manifest model."""

    def test_targets_and_sources(self, manifest):
        assert manifest.targets() == {LIB, PATH}
        assert manifest.sources_of(LIB) == ["lib.rs", "conn.rs"]

    def test_from_dict_rejects_other_kinds(self, manifest):
        """Only published manifests are accepted."""
        data = manifest.to_dict()
        data["kind"] = "raw"
        with pytest.raises(ValueError, match="unexpected kind"):
            Manifest.from_dict(data)

    def test_from_dict_rejects_bad_edges(self, manifest):
        data = manifest.to_dict()
        data["edges"].append({"target": LIB})
        with pytest.raises(ValueError, match="edge needs"):
            Manifest.from_dict(data)


class TestPublishAndLoad:
    """Tests for publish_manifest, load_manifest and read_manifest."""

    def test_publish_then_load(self, manifest):
        """A published manifest loads back with the same edges."""
        fs = MemoryFileSystem()
        publish_manifest(fs, PATH, manifest)

        data = json.loads(fs.read_text(PATH))
        assert data["version"] == MANIFEST_VERSION
        assert data["kind"] == "published"
        assert data["generated_at"]

        loaded = load_manifest(fs, PATH, root="lib.rs", known_targets=KNOWN)
        assert loaded is not None
        assert loaded.edges == manifest.edges

    def test_missing_manifest(self):
        """A missing manifest loads as None."""
        fs = MemoryFileSystem()
        assert load_manifest(fs, PATH, root="lib.rs", known_targets=KNOWN) is None

    def test_malformed_json(self):
        fs = MemoryFileSystem()
        fs.write_text_atomic(PATH, "{not json")
        with pytest.raises(ManifestCorrupt) as exc_info:
            load_manifest(fs, PATH, root="lib.rs", known_targets=KNOWN)
        assert exc_info.value.code == "manifest_corrupt"

    def test_other_version(self, manifest):
        fs = MemoryFileSystem()
        manifest.version = "0"
        publish_manifest(fs, PATH, manifest)
        with pytest.raises(ManifestCorrupt, match="version 0"):
            load_manifest(fs, PATH, root="lib.rs", known_targets=KNOWN)

    def test_other_root(self, manifest):
        fs = MemoryFileSystem()
        publish_manifest(fs, PATH, manifest)
        with pytest.raises(ManifestCorrupt, match="describes lib.rs"):
            load_manifest(fs, PATH, root="main.rs", known_targets=KNOWN)

    def test_unknown_targets(self, manifest):
        """A manifest may only name targets the current graph defines."""
        fs = MemoryFileSystem()
        manifest.edges.append(Edge("build/release/doc/.stamp", "lib.rs"))
        publish_manifest(fs, PATH, manifest)
        with pytest.raises(ManifestCorrupt, match="unknown targets"):
            load_manifest(fs, PATH, root="lib.rs", known_targets=KNOWN)

    def test_read_manifest_discards_corrupt(self, caplog):
        """read_manifest deletes a corrupt manifest and reports it absent."""
        fs = MemoryFileSystem()
        fs.write_text_atomic(PATH, "[]")
        assert read_manifest(fs, PATH, root="lib.rs", known_targets=KNOWN) is None
        assert not fs.exists(PATH)
        assert "discarding" in caplog.text

    def test_read_manifest_can_keep_corrupt(self, caplog):
        """With discard=False a corrupt manifest is ignored but left on disk."""
        fs = MemoryFileSystem()
        fs.write_text_atomic(PATH, "{bad")
        assert read_manifest(fs, PATH, root="lib.rs", known_targets=KNOWN, discard=False) is None
        assert fs.read_text(PATH) == "{bad"
        assert "ignoring" in caplog.text
