"""Plan execution.

Runs the actions of a BuildPlan in order. The first failing action stops
the run: nothing after it (dependent or not) is started, and the error
propagates to the caller unchanged.
"""

from __future__ import annotations

import logging

from incbuild.graph.fs import FileSystem
from incbuild.graph.models import BuildGraph, Target
from incbuild.graph.staleness import BuildPlan
from incbuild.types import BuildReport

logger = logging.getLogger(__name__)


class Executor:
    """Runs build plans, remembering what already ran in this invocation.

    One executor can run several plans (for example the manifest refresh
    and then the real build); a target completed by an earlier plan is not
    run again even if a later plan still lists it.
    """

    def __init__(self, fs: FileSystem, *, dry_run: bool = False) -> None:
        self.fs = fs
        self.dry_run = dry_run
        self.completed: set[str] = set()

    def run(self, graph: BuildGraph, plan: BuildPlan, report: BuildReport) -> BuildReport:
        """Execute ``plan`` against ``graph``, recording into ``report``."""
        pending = [name for name in plan.to_build if name not in self.completed]
        for index, name in enumerate(pending):
            target = graph.targets[name]
            if self.dry_run:
                logger.info("Would build %s", name)
            else:
                logger.info("Building %s (%s)", name, target.kind.value)
                if target.action is not None:
                    target.action()
            self.completed.add(name)
            report.built.append(name)
            if not self.dry_run:
                self._remove_intermediates(graph, target, pending[index + 1 :], report)

        for name in plan.up_to_date:
            if name not in report.up_to_date and name not in report.built:
                report.up_to_date.append(name)
        return report

    def _remove_intermediates(
        self,
        graph: BuildGraph,
        built: Target,
        remaining: list[str],
        report: BuildReport,
    ) -> None:
        for prereq in built.prerequisites:
            node = graph.get(prereq)
            if node is None or not node.intermediate:
                continue
            if any(prereq in graph.targets[r].prerequisites for r in remaining):
                continue
            if self.fs.remove(prereq):
                logger.debug("Removed intermediate %s", prereq)
                report.removed_intermediates.append(prereq)


__all__ = ["Executor"]
