"""Manifest model and persistence.

A manifest is the set of edges discovered for one root source. It is the
only state that survives between invocations, so a manifest on disk is
either complete and consistent with the current build graph, or it is not
used at all.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from incbuild.errors import ManifestCorrupt
from incbuild.graph.fs import FileSystem
from incbuild.graph.models import Edge
from incbuild.types import ManifestKind

logger = logging.getLogger(__name__)

# Bump when the on-disk format changes; older manifests are then regenerated
MANIFEST_VERSION = "1"


def manifest_filename(stem: str, kind: ManifestKind) -> str:
    """Return the file name a manifest of ``kind`` uses for ``stem``.

    RAW listings use the compiler's ``.d`` convention. The PUBLISHED name
    is distinct from it and from every artifact name, so the manifest's own
    rebuild rule can never name the raw listing or an artifact.
    """
    if kind is ManifestKind.RAW:
        return f"{stem}.d"
    return f"{stem}.deps.json"


@dataclass
class Manifest:
    """Edges discovered for one root source.

    Attributes:
        root: Root source file the edges were discovered from.
        edges: Edges, in order.
        version: On-disk format version.
        generated_at: ISO timestamp of generation.
    """

    root: str
    edges: list[Edge] = field(default_factory=list)
    version: str = MANIFEST_VERSION
    generated_at: str | None = None

    def targets(self) -> set[str]:
        return {e.target for e in self.edges}

    def sources_of(self, target: str) -> list[str]:
        return [e.source for e in self.edges if e.target == target]

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "kind": ManifestKind.PUBLISHED.value,
            "root": self.root,
            "generated_at": self.generated_at,
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Manifest:
        """Build a Manifest from its serialized form.

        Raises:
            ValueError: If required fields are missing or mistyped.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        if data.get("kind") != ManifestKind.PUBLISHED.value:
            raise ValueError(f"unexpected kind {data.get('kind')!r}")
        root = data.get("root")
        raw_edges = data.get("edges")
        if not isinstance(root, str) or not isinstance(raw_edges, list):
            raise ValueError("missing 'root' or 'edges'")
        edges: list[Edge] = []
        for item in raw_edges:
            if not isinstance(item, dict):
                raise ValueError("edge is not an object")
            target, source = item.get("target"), item.get("source")
            if not isinstance(target, str) or not isinstance(source, str):
                raise ValueError("edge needs string 'target' and 'source'")
            edges.append(Edge(target, source))
        return cls(
            root=root,
            edges=edges,
            version=str(data.get("version")),
            generated_at=data.get("generated_at"),
        )


def load_manifest(
    fs: FileSystem,
    path: str,
    *,
    root: str,
    known_targets: Iterable[str],
) -> Manifest | None:
    """Load and validate a manifest.

    Args:
        fs: File system.
        path: Manifest path.
        root: Root source the manifest must describe.
        known_targets: Targets the current build graph defines.

    Returns:
        The manifest, or None if there is no manifest file.

    Raises:
        ManifestCorrupt: If the file is malformed, of another version, for
            another root, or names targets the graph does not define.
    """
    try:
        text = fs.read_text(path)
    except FileNotFoundError:
        return None

    try:
        manifest = Manifest.from_dict(json.loads(text))
    except (json.JSONDecodeError, ValueError) as e:
        raise ManifestCorrupt(path, str(e)) from e

    if manifest.version != MANIFEST_VERSION:
        raise ManifestCorrupt(path, f"version {manifest.version}, expected {MANIFEST_VERSION}")
    if manifest.root != root:
        raise ManifestCorrupt(path, f"describes {manifest.root}, expected {root}")
    unknown = manifest.targets() - set(known_targets)
    if unknown:
        raise ManifestCorrupt(path, f"unknown targets {sorted(unknown)}")
    return manifest


def read_manifest(
    fs: FileSystem,
    path: str,
    *,
    root: str,
    known_targets: Iterable[str],
    discard: bool = True,
) -> Manifest | None:
    """Load a manifest, treating an unusable one as absent.

    A corrupt manifest is deleted so the staleness evaluator sees it as
    missing and regenerates it. With ``discard=False`` (dry runs) the file
    is left alone and only this call treats it as absent.
    """
    try:
        return load_manifest(fs, path, root=root, known_targets=known_targets)
    except ManifestCorrupt as e:
        if not discard:
            logger.warning("%s; ignoring it", e)
            return None
        logger.warning("%s; discarding it", e)
        fs.remove(path)
        return None


def publish_manifest(fs: FileSystem, path: str, manifest: Manifest) -> None:
    """Atomically replace the manifest at ``path``."""
    if manifest.generated_at is None:
        manifest.generated_at = datetime.now(timezone.utc).isoformat()
    fs.write_text_atomic(path, json.dumps(manifest.to_dict(), indent=2, sort_keys=True) + "\n")
    logger.info("Wrote manifest %s (%d edges)", path, len(manifest.edges))


__all__ = [
    "MANIFEST_VERSION",
    "Manifest",
    "load_manifest",
    "manifest_filename",
    "publish_manifest",
    "read_manifest",
]
