"""Manifest transformation.

One dependency scan of the root source serves every artifact built from
that root. The transformer copies the primary artifact's edges onto each
derived artifact (documentation, test binary) and adds the manifest's own
rebuild rule, instead of scanning the root again per artifact.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from incbuild.graph.fs import FileSystem
from incbuild.graph.models import Edge
from incbuild.manifest.store import Manifest, publish_manifest

logger = logging.getLogger(__name__)


def transform_edges(
    raw_edges: Iterable[Edge],
    *,
    primary: str,
    derived: Iterable[str],
    manifest_name: str,
    root: str,
) -> list[Edge]:
    """Synthesize the full edge set for one root.

    Args:
        raw_edges: Edges from the generator, owned by ``primary``.
        primary: Primary artifact name.
        derived: Artifacts that share the primary's root source.
        manifest_name: Published manifest path.
        root: Root source file.

    Returns:
        Deduplicated edges: the primary's, a copy per derived artifact, and
        the manifest's own rule (root source plus everything it includes).
    """
    derived_names = [d for d in derived if d != primary]
    result: list[Edge] = []
    seen: set[Edge] = set()

    def emit(edge: Edge) -> None:
        if edge.target == edge.source or edge in seen:
            return
        seen.add(edge)
        result.append(edge)

    primary_sources: list[str] = []
    for edge in raw_edges:
        if edge.target == manifest_name or edge.source == manifest_name:
            logger.debug("Dropping manifest self-reference %s <- %s", edge.target, edge.source)
            continue
        emit(edge)
        if edge.target == primary:
            primary_sources.append(edge.source)
            for name in derived_names:
                emit(Edge(name, edge.source))

    emit(Edge(manifest_name, root))
    for source in primary_sources:
        emit(Edge(manifest_name, source))
    return result


def transform_and_publish(
    fs: FileSystem,
    raw_edges: Iterable[Edge],
    *,
    primary: str,
    derived: Iterable[str],
    manifest_name: str,
    root: str,
) -> Manifest:
    """Transform raw edges and atomically replace the published manifest."""
    manifest = Manifest(
        root=root,
        edges=transform_edges(
            raw_edges,
            primary=primary,
            derived=derived,
            manifest_name=manifest_name,
            root=root,
        ),
    )
    publish_manifest(fs, manifest_name, manifest)
    return manifest


__all__ = ["transform_and_publish", "transform_edges"]
