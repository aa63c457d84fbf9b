"""Build service module.

This module provides the high-level build API:
- Orchestrator.build(): bring a goal up to date
- Orchestrator.run_tests(): build and run the test binary
- Orchestrator.clean(): remove everything the builds produced

Every invocation runs in two passes over the same executor. The first pass
brings the manifest up to date (after the sub-project, if it had to be
rebuilt); the second loads the fresh manifest into the graph and builds the
requested goal.
"""

from __future__ import annotations

import logging
from pathlib import Path

from incbuild.builds.builders import ArtifactBuilders, ArtifactLayout, query_library_filename
from incbuild.builds.runner import ToolRunner
from incbuild.builds.subproject import SubprojectCoordinator, SubprojectReference, attach
from incbuild.builds.toolchain import Toolchain
from incbuild.config import BuildConfiguration, Settings
from incbuild.errors import UnknownTargetError
from incbuild.graph.executor import Executor
from incbuild.graph.fs import LocalFileSystem
from incbuild.graph.models import BuildGraph, Target
from incbuild.graph.staleness import StalenessEvaluator
from incbuild.manifest.generator import refresh_manifest
from incbuild.manifest.store import Manifest, read_manifest
from incbuild.project.schema import ProjectSchema
from incbuild.types import BuildReport, Goal, TargetKind

logger = logging.getLogger(__name__)

TARGET_HELP: dict[str, str] = {
    "all": "Build the library, example, documentation and test binary",
    "lib": "Build the library only",
    "example": "Build the library and the example binary",
    "doc": "Generate documentation",
    "test": "Build and run the test binary (optional NAME filter)",
    "clean": "Remove all produced artifacts, including the sub-project's",
    "help": "List targets",
}


class Orchestrator:
    """Incremental builds for one project, rooted at an explicit directory.

    Args:
        settings: Effective settings (``settings.root`` is the working root).
        project: Project description.
        fs: File system; defaults to the local disk under the root.
        runner: Tool runner; defaults to one logging into the build log.
    """

    def __init__(
        self,
        settings: Settings,
        project: ProjectSchema,
        *,
        fs: LocalFileSystem | None = None,
        runner: ToolRunner | None = None,
    ) -> None:
        self.settings = settings
        self.project = project
        self.root = Path(settings.root)
        self.config = BuildConfiguration.from_settings(
            settings, project.effective_search_paths
        )
        self.output_dir = self.config.output_dir(settings.build_dir)
        self.fs = fs or LocalFileSystem(self.root)
        self.runner = runner or ToolRunner(
            self.root,
            log_path=self.root / self.output_dir / "build.log",
            timeout=settings.build_timeout,
        )
        self.toolchain = Toolchain(
            config=self.config,
            compiler=settings.compiler,
            doc_tool=settings.doc_tool,
            crate_name=project.crate_name,
        )
        self.subproject: SubprojectCoordinator | None = None
        if project.subproject is not None:
            self.subproject = SubprojectCoordinator(
                SubprojectReference.from_schema(project.subproject),
                self.runner,
                self.root,
                probe_timeout=settings.probe_timeout,
            )
        self._layout: ArtifactLayout | None = None

    @property
    def layout(self) -> ArtifactLayout:
        if self._layout is None:
            library = self.project.library or query_library_filename(
                self.toolchain, self.runner, self.project.root_source
            )
            self._layout = ArtifactLayout.create(self.project, self.output_dir, library)
        return self._layout

    @property
    def builders(self) -> ArtifactBuilders:
        return ArtifactBuilders(
            self.project,
            self.layout,
            self.toolchain,
            self.runner,
            self.root,
            test_threads=self.settings.test_threads,
        )

    def goal_targets(self, goal: Goal) -> list[str]:
        """Targets a goal asks for.

        Raises:
            UnknownTargetError: If the project does not define the goal.
        """
        layout = self.layout
        if goal is Goal.LIB:
            return [layout.library]
        if goal is Goal.EXAMPLE:
            if layout.example is None:
                raise UnknownTargetError("example")
            return [layout.example]
        if goal is Goal.DOC:
            if layout.docs_marker is None:
                raise UnknownTargetError("doc")
            return [layout.docs_marker]
        if goal is Goal.TEST:
            return [layout.test_binary]
        targets = [layout.library]
        if layout.example:
            targets.append(layout.example)
        if layout.docs_marker:
            targets.append(layout.docs_marker)
        targets.append(layout.test_binary)
        return targets

    def build_graph(self, manifest: Manifest | None = None) -> BuildGraph:
        """The fixed targets, plus the edges a manifest contributes."""
        layout = self.layout
        builders = self.builders
        root_source = self.project.root_source
        graph = BuildGraph()

        graph.add(
            Target(
                layout.manifest,
                TargetKind.MANIFEST,
                prerequisites=[root_source],
                action=self._refresh_manifest,
            )
        )
        graph.add(
            Target(
                layout.library,
                TargetKind.LIBRARY,
                prerequisites=[root_source],
                action=builders.build_library,
            )
        )
        if layout.example and self.project.example:
            graph.add(
                Target(
                    layout.example,
                    TargetKind.EXAMPLE,
                    prerequisites=[self.project.example.source, layout.library],
                    action=builders.build_example,
                )
            )
        if layout.docs_marker:
            graph.add(
                Target(
                    layout.docs_marker,
                    TargetKind.DOCS,
                    prerequisites=[root_source],
                    action=builders.build_docs,
                )
            )
        graph.add(
            Target(
                layout.test_binary,
                TargetKind.TEST,
                prerequisites=[root_source],
                action=builders.build_test_binary,
            )
        )
        # Everything compiled against the root links the sub-project crate
        if self.subproject is not None:
            for name in self._linked_targets():
                graph.get(name).add_prerequisite(self.subproject.ref.artifact_path)

        if manifest is not None:
            graph.add_edges(manifest.edges)
        return graph

    def _linked_targets(self) -> list[str]:
        """Targets whose tool invocation reads the root source with the search paths."""
        layout = self.layout
        names = [layout.library, layout.test_binary]
        if layout.docs_marker:
            names.append(layout.docs_marker)
        return names

    def _refresh_manifest(self) -> None:
        layout = self.layout
        refresh_manifest(
            self.fs,
            self.toolchain,
            self.runner,
            root_source=self.project.root_source,
            primary=layout.library,
            derived=layout.derived(),
            manifest_name=layout.manifest,
        )

    def _load_manifest(self, known_targets: set[str], *, discard: bool = True) -> Manifest | None:
        return read_manifest(
            self.fs,
            self.layout.manifest,
            root=self.project.root_source,
            known_targets=known_targets,
            discard=discard,
        )

    def build(self, goal: Goal | str, *, dry_run: bool = False) -> BuildReport:
        """Bring ``goal`` up to date.

        Args:
            goal: Goal to build.
            dry_run: Only report what would be built.

        Returns:
            BuildReport for the invocation.

        Raises:
            ToolchainFailure: If any tool fails; nothing after it runs.
            UnknownTargetError: If the project does not define the goal.
        """
        goal = Goal(goal)
        layout = self.layout
        goals = self.goal_targets(goal)
        report = BuildReport(goal=goal.value, dry_run=dry_run)
        executor = Executor(self.fs, dry_run=dry_run)

        known = self.build_graph().names()
        manifest = self._load_manifest(known, discard=not dry_run)
        graph = self.build_graph(manifest)
        if manifest is None and dry_run and self.fs.exists(layout.manifest):
            # Left on disk by the dry run, but would be regenerated
            graph.get(layout.manifest).phony = True

        dependents = [layout.manifest, *self._linked_targets()]
        sub_target: Target | None = None
        if self.subproject is not None:
            sub_target = self.subproject.register(graph, dependents)

        # Pass 1: sub-project (if stale), then the manifest
        executor.run(graph, StalenessEvaluator(graph, self.fs).plan([layout.manifest]), report)

        # Pass 2: the goal, against the manifest as it is now
        if layout.manifest in report.built and not dry_run:
            graph = self.build_graph(self._load_manifest(known))
            if sub_target is not None:
                attach(graph, sub_target, dependents)
        executor.run(graph, StalenessEvaluator(graph, self.fs).plan(goals), report)

        if report.built:
            logger.info("%s: %d target(s) rebuilt", goal.value, report.actions)
        else:
            logger.info("%s: everything is up to date", goal.value)
        return report

    def run_tests(self, name: str | None = None, *, dry_run: bool = False) -> tuple[BuildReport, int]:
        """Build the test binary, then run it.

        Returns:
            The build report and the test binary's exit status (0 for dry runs).
        """
        report = self.build(Goal.TEST, dry_run=dry_run)
        if dry_run:
            return report, 0
        return report, self.builders.run_tests(name)

    def clean(self) -> list[str]:
        """Remove every configuration's outputs and clean the sub-project.

        Missing files are not an error.

        Returns:
            Paths that were removed.
        """
        removed: list[str] = []
        # Sub-project first: its clean command is logged into our output dir
        if self.subproject is not None and self.subproject.clean():
            removed.append(self.subproject.ref.target_name)
        for config in (BuildConfiguration(debug=False), BuildConfiguration(debug=True)):
            output_dir = config.output_dir(self.settings.build_dir)
            if self.fs.remove(output_dir):
                removed.append(output_dir)
        build_dir = self.root / self.settings.build_dir
        if build_dir.is_dir() and not any(build_dir.iterdir()):
            build_dir.rmdir()
        logger.info("Removed %d item(s)", len(removed))
        return removed

    def describe_targets(self) -> list[tuple[str, str]]:
        """Targets for ``help``, skipping the ones this project lacks."""
        skipped = set()
        if self.project.example is None:
            skipped.add("example")
        if not self.project.docs:
            skipped.add("doc")
        return [(name, text) for name, text in TARGET_HELP.items() if name not in skipped]


__all__ = ["TARGET_HELP", "Orchestrator"]
