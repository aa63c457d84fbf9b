"""Manifest generation.

This module handles:
- Running the compiler in dependency-discovery mode for a root source
- Parsing its raw listing into edges owned by the primary artifact
- Refreshing the published manifest without ever leaving a partial one

The raw listing is written to a scratch file next to the manifest. The
scratch file is removed on every exit path, and when generation fails the
previously published manifest is removed too: it is known to be out of
date, and a later run must regenerate rather than trust it.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path

from incbuild.builds.runner import ToolRunner
from incbuild.builds.toolchain import Toolchain
from incbuild.errors import ToolchainFailure
from incbuild.graph.fs import LocalFileSystem
from incbuild.graph.models import Edge
from incbuild.manifest.depfile import DepfileSyntaxError, parse_depfile, relabel_rules
from incbuild.manifest.store import Manifest, manifest_filename
from incbuild.manifest.transformer import transform_and_publish
from incbuild.types import ManifestKind

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def scoped_temp_file(directory: Path, prefix: str, suffix: str = ".tmp") -> Iterator[Path]:
    """Create a temp file that is removed however the block exits.

    Args:
        directory: Directory for the file (created if missing).
        prefix: File name prefix.
        suffix: File name suffix.

    Yields:
        Path to the (empty) temp file.
    """
    directory.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(dir=directory, prefix=prefix, suffix=suffix)
    os.close(fd)
    path = Path(name)
    try:
        yield path
    finally:
        with contextlib.suppress(FileNotFoundError):
            path.unlink()


def generate_raw_edges(
    toolchain: Toolchain,
    runner: ToolRunner,
    *,
    root_source: str,
    primary: str,
    scratch_dir: Path,
    target: str,
) -> list[Edge]:
    """Discover the files the compiler reads to build ``root_source``.

    Args:
        toolchain: Command composer.
        runner: Tool runner.
        root_source: Root source file.
        primary: Primary artifact; owns every discovered edge.
        scratch_dir: Directory for the raw listing.
        target: Target name used in logs and errors.

    Returns:
        Raw edges ``primary <- source``.

    Raises:
        ToolchainFailure: If the compiler fails or its listing is unreadable.
    """
    stem = Path(root_source).stem
    raw_prefix = f".{manifest_filename(stem, ManifestKind.RAW)}."
    with scoped_temp_file(scratch_dir, prefix=raw_prefix) as raw_path:
        cmd = toolchain.dep_info_command(root_source, str(raw_path))
        runner.run(cmd, target=target)
        text = raw_path.read_text(encoding="utf-8")

    try:
        rules = parse_depfile(text)
    except DepfileSyntaxError as e:
        raise ToolchainFailure(
            f"Unreadable dependency listing for {root_source}: {e}",
            target=target,
            output=text,
        ) from e

    edges = relabel_rules(rules, primary)
    logger.debug("Discovered %d dependencies of %s", len(edges), root_source)
    return edges


def refresh_manifest(
    fs: LocalFileSystem,
    toolchain: Toolchain,
    runner: ToolRunner,
    *,
    root_source: str,
    primary: str,
    derived: Iterable[str],
    manifest_name: str,
) -> Manifest:
    """Regenerate and publish the manifest for ``root_source``.

    Raises:
        ToolchainFailure: If generation fails; no manifest is left on disk.
    """
    try:
        raw_edges = generate_raw_edges(
            toolchain,
            runner,
            root_source=root_source,
            primary=primary,
            scratch_dir=fs.resolve(manifest_name).parent,
            target=manifest_name,
        )
    except ToolchainFailure:
        if fs.remove(manifest_name):
            logger.info("Removed out-of-date manifest %s", manifest_name)
        raise

    return transform_and_publish(
        fs,
        raw_edges,
        primary=primary,
        derived=derived,
        manifest_name=manifest_name,
        root=root_source,
    )


__all__ = ["generate_raw_edges", "refresh_manifest", "scoped_temp_file"]
