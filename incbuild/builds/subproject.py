"""Nested sub-project coordination.

Re-evaluating the sub-project's whole graph on every parent build would be
correct but wasteful. Instead a query-only probe decides whether anything
there is stale; only then is a full recursive build registered, as an
always-run prerequisite of the parent's manifest and of every target
compiled against the parent's root source.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path

from incbuild.builds.runner import ToolRunner
from incbuild.errors import SUBPROJECT_MISSING, ToolchainFailure
from incbuild.graph.models import BuildGraph, Target
from incbuild.project.schema import SubprojectSchema
from incbuild.types import ProbeResult, TargetKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubprojectReference:
    """Where the sub-project lives and what the parent expects from it.

    Attributes:
        path: Sub-project directory, relative to the working root.
        artifact: Artifact file name, relative to ``path``.
        probe_command: Query-only staleness probe.
        build_command: Full build entry point.
        clean_command: Clean entry point.
    """

    path: str
    artifact: str
    probe_command: tuple[str, ...] = ("make", "-q")
    build_command: tuple[str, ...] = ("make",)
    clean_command: tuple[str, ...] = ("make", "clean")

    @property
    def artifact_path(self) -> str:
        return f"{self.path}/{self.artifact}"

    @property
    def target_name(self) -> str:
        return f"subproject:{self.path}"

    @classmethod
    def from_schema(cls, schema: SubprojectSchema) -> SubprojectReference:
        return cls(
            path=schema.path,
            artifact=schema.artifact,
            probe_command=tuple(schema.probe_command),
            build_command=tuple(schema.build_command),
            clean_command=tuple(schema.clean_command),
        )


class SubprojectCoordinator:
    """Probes, builds and cleans one sub-project.

    Args:
        ref: Sub-project reference.
        runner: Tool runner.
        root: Working root of the parent project.
        probe_timeout: Timeout for the probe, in seconds.
    """

    def __init__(
        self,
        ref: SubprojectReference,
        runner: ToolRunner,
        root: Path,
        probe_timeout: int | None = None,
    ) -> None:
        self.ref = ref
        self.runner = runner
        self.root = root
        self.probe_timeout = probe_timeout

    @property
    def directory(self) -> Path:
        return self.root / self.ref.path

    def probe(self) -> ProbeResult:
        """Ask the sub-project whether it would rebuild anything.

        A missing directory or artifact counts as stale without running the
        probe. Any non-zero probe exit, including probe errors, is stale.
        """
        if not self.directory.is_dir():
            logger.info("Sub-project %s is absent", self.ref.path)
            return ProbeResult.STALE
        if not (self.root / self.ref.artifact_path).exists():
            logger.info("Sub-project artifact %s is missing", self.ref.artifact_path)
            return ProbeResult.STALE

        try:
            result = self.runner.run(
                list(self.ref.probe_command),
                target=self.ref.target_name,
                cwd=self.directory,
                timeout=self.probe_timeout,
                check=False,
            )
        except ToolchainFailure as e:
            logger.warning("Sub-project probe failed (%s); assuming stale", e)
            return ProbeResult.STALE

        status = ProbeResult.CURRENT if result.success else ProbeResult.STALE
        logger.info("Sub-project %s is %s", self.ref.path, status.value)
        return status

    def build(self) -> None:
        """Run the sub-project's full build.

        Raises:
            ToolchainFailure: If the sub-project directory is missing or the
                build fails.
        """
        if not self.directory.is_dir():
            raise ToolchainFailure(
                f"Sub-project directory {self.ref.path} does not exist; "
                f"cannot build {self.ref.artifact_path}",
                target=self.ref.target_name,
                command=shlex.join(self.ref.build_command),
                code=SUBPROJECT_MISSING,
            )
        self.runner.run(
            list(self.ref.build_command),
            target=self.ref.target_name,
            cwd=self.directory,
        )

    def register(self, graph: BuildGraph, dependents: list[str]) -> Target | None:
        """Probe, and when stale add an always-run build rule to ``graph``.

        Args:
            graph: Build graph of the parent.
            dependents: Targets that must wait for the sub-project build.

        Returns:
            The registered target, or None if the sub-project is current.
        """
        if self.probe() is ProbeResult.CURRENT:
            return None
        target = Target(
            name=self.ref.target_name,
            kind=TargetKind.SUBPROJECT,
            action=self.build,
            phony=True,
        )
        attach(graph, target, dependents)
        return target

    def clean(self) -> bool:
        """Run the sub-project's clean; failures are logged and ignored."""
        if not self.directory.is_dir():
            return False
        try:
            self.runner.run(
                list(self.ref.clean_command),
                target=self.ref.target_name,
                cwd=self.directory,
            )
        except ToolchainFailure as e:
            logger.warning("Ignoring sub-project clean failure: %s", e)
            return False
        return True


def attach(graph: BuildGraph, target: Target, dependents: list[str]) -> None:
    """Add ``target`` to ``graph`` as a prerequisite of each dependent."""
    graph.add(target)
    for name in dependents:
        dependent = graph.get(name)
        if dependent is not None:
            dependent.add_prerequisite(target.name)


__all__ = [
    "SubprojectCoordinator",
    "SubprojectReference",
    "attach",
]
