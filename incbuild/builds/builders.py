"""Artifact builders.

This module handles:
- Locating every artifact of one build configuration (ArtifactLayout)
- Building the library, example binary, documentation and test binary
- Running the test binary

Builders write to a temp name and rename into place, so a failed build
never leaves something that looks like a finished artifact.
"""

from __future__ import annotations

import contextlib
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from incbuild.builds.runner import ToolRunner
from incbuild.builds.toolchain import TEST_THREADS_ENV, Toolchain
from incbuild.errors import MISSING_OUTPUT, ToolchainFailure
from incbuild.manifest.store import manifest_filename
from incbuild.project.schema import ProjectSchema
from incbuild.types import ManifestKind

logger = logging.getLogger(__name__)

DOCS_MARKER = ".stamp"


@dataclass(frozen=True)
class ArtifactLayout:
    """Paths (relative to the working root) of one configuration's outputs."""

    output_dir: str
    library: str
    test_binary: str
    manifest: str
    build_log: str
    example: str | None = None
    docs_dir: str | None = None
    docs_marker: str | None = None

    @classmethod
    def create(
        cls,
        project: ProjectSchema,
        output_dir: str,
        library_name: str,
    ) -> ArtifactLayout:
        """Lay out the artifacts of ``project`` under ``output_dir``."""
        stem = PurePosixPath(project.root_source).stem
        docs_dir = f"{output_dir}/doc" if project.docs else None
        return cls(
            output_dir=output_dir,
            library=f"{output_dir}/{library_name}",
            test_binary=f"{output_dir}/{project.effective_test_binary}",
            manifest=f"{output_dir}/{manifest_filename(stem, ManifestKind.PUBLISHED)}",
            build_log=f"{output_dir}/build.log",
            example=f"{output_dir}/{project.example.output}" if project.example else None,
            docs_dir=docs_dir,
            docs_marker=f"{docs_dir}/{DOCS_MARKER}" if docs_dir else None,
        )

    def derived(self) -> list[str]:
        """Artifacts built from the same root source as the library."""
        names = [self.test_binary]
        if self.docs_marker:
            names.insert(0, self.docs_marker)
        return names


@contextlib.contextmanager
def atomic_output(final: Path, target: str) -> Iterator[Path]:
    """Yield a temp path that is renamed to ``final`` if the block succeeds.

    Raises:
        ToolchainFailure: If the block succeeded but produced nothing.
    """
    final.parent.mkdir(parents=True, exist_ok=True)
    tmp = final.with_name(f".{final.name}.tmp")
    try:
        yield tmp
        if not tmp.exists():
            raise ToolchainFailure(
                f"Building {target} reported success but produced no output",
                target=target,
                code=MISSING_OUTPUT,
            )
        os.replace(tmp, final)
    finally:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()


def query_library_filename(
    toolchain: Toolchain,
    runner: ToolRunner,
    root_source: str,
) -> str:
    """Ask the compiler for the library artifact's file name.

    Raises:
        ToolchainFailure: If the compiler fails or prints nothing.
    """
    result = runner.run(toolchain.file_names_command(root_source), target=root_source)
    names = [line.strip() for line in result.output.splitlines() if line.strip()]
    if not names:
        raise ToolchainFailure(
            f"{toolchain.compiler} printed no file name for {root_source}",
            target=root_source,
            command=result.command,
            code=MISSING_OUTPUT,
        )
    return names[0]


class ArtifactBuilders:
    """Build actions for every artifact of one project and configuration."""

    def __init__(
        self,
        project: ProjectSchema,
        layout: ArtifactLayout,
        toolchain: Toolchain,
        runner: ToolRunner,
        root: Path,
        test_threads: int = 1,
    ) -> None:
        self.project = project
        self.layout = layout
        self.toolchain = toolchain
        self.runner = runner
        self.root = root
        self.test_threads = test_threads

    def _path(self, name: str) -> Path:
        return self.root / name

    def _rel(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def build_library(self) -> None:
        target = self.layout.library
        with atomic_output(self._path(target), target) as tmp:
            cmd = self.toolchain.library_command(self.project.root_source, self._rel(tmp))
            self.runner.run(cmd, target=target)

    def build_example(self) -> None:
        if self.project.example is None or self.layout.example is None:
            raise ValueError("project has no example")
        target = self.layout.example
        with atomic_output(self._path(target), target) as tmp:
            cmd = self.toolchain.example_command(
                self.project.example.source,
                self._rel(tmp),
                library_dir=self.layout.output_dir,
            )
            self.runner.run(cmd, target=target)

    def build_test_binary(self) -> None:
        target = self.layout.test_binary
        with atomic_output(self._path(target), target) as tmp:
            cmd = self.toolchain.test_command(self.project.root_source, self._rel(tmp))
            self.runner.run(cmd, target=target)

    def build_docs(self) -> None:
        if self.layout.docs_dir is None or self.layout.docs_marker is None:
            raise ValueError("documentation is disabled for this project")
        marker = self.layout.docs_marker
        cmd = self.toolchain.doc_command(self.project.root_source, self.layout.docs_dir)
        self.runner.run(cmd, target=marker)
        # The marker's mtime is what says "docs are current"; only touch it on success
        with atomic_output(self._path(marker), marker) as tmp:
            tmp.write_text(f"{self.project.root_source}\n", encoding="utf-8")

    def run_tests(self, name: str | None = None) -> int:
        """Run the test binary and return its exit status."""
        binary = str(self._path(self.layout.test_binary))
        cmd = self.toolchain.test_run_command(binary, name)
        result = self.runner.run(
            cmd,
            target=self.layout.test_binary,
            env_override={TEST_THREADS_ENV: str(self.test_threads)},
            check=False,
            capture=False,
        )
        if result.success:
            logger.info("Tests passed")
        else:
            logger.error("Tests failed with exit code %d", result.exit_code)
        return result.exit_code


__all__ = [
    "DOCS_MARKER",
    "ArtifactBuilders",
    "ArtifactLayout",
    "atomic_output",
    "query_library_filename",
]
