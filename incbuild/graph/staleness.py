"""Timestamp-based staleness evaluation.

A target is stale if it does not exist, if any prerequisite is stale, or if
any prerequisite's modification time is strictly newer than its own. Equal
timestamps are not stale: filesystems with coarse clocks routinely give a
target and its freshly written input the same mtime, and treating that as
stale would rebuild forever.

Phony targets are always stale. A missing intermediate target does not
force its dependents to rebuild as long as none of the intermediate's own
prerequisites is newer than the dependent.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from incbuild.errors import DependencyCycleError, UnknownTargetError
from incbuild.graph.fs import FileSystem
from incbuild.graph.models import BuildGraph

logger = logging.getLogger(__name__)


@dataclass
class BuildPlan:
    """Ordered evaluation result.

    Attributes:
        to_build: Stale targets, prerequisites before dependents.
        up_to_date: Targets found current.
    """

    to_build: list[str] = field(default_factory=list)
    up_to_date: list[str] = field(default_factory=list)


class StalenessEvaluator:
    """Memoized staleness queries over one BuildGraph.

    The memo reflects the file system at evaluation time; create a new
    evaluator after the graph or the files change.
    """

    def __init__(self, graph: BuildGraph, fs: FileSystem) -> None:
        self.graph = graph
        self.fs = fs
        self._memo: dict[str, bool] = {}
        self._visiting: list[str] = []

    def is_stale(self, name: str) -> bool:
        """Return whether ``name`` needs rebuilding.

        Raw files (names with no target) are never stale themselves.

        Raises:
            DependencyCycleError: If ``name`` transitively depends on itself.
        """
        if name in self._memo:
            return self._memo[name]
        target = self.graph.get(name)
        if target is None:
            return False
        if name in self._visiting:
            start = self._visiting.index(name)
            raise DependencyCycleError([*self._visiting[start:], name])

        self._visiting.append(name)
        try:
            if target.phony:
                # Still walk prerequisites so cycles through phony rules surface.
                for prereq in target.prerequisites:
                    self.is_stale(prereq)
                stale = True
            else:
                own = self.fs.mtime(name)
                if own is None:
                    logger.debug("%s does not exist", name)
                    stale = True
                else:
                    stale = self._outdated(target.prerequisites, own, name)
        finally:
            self._visiting.pop()

        self._memo[name] = stale
        return stale

    def _outdated(self, prerequisites: list[str], reference: float, owner: str) -> bool:
        for prereq in prerequisites:
            node = self.graph.get(prereq)
            if node is not None and node.intermediate and not self.fs.exists(prereq):
                if self._outdated(node.prerequisites, reference, owner):
                    return True
                continue
            if self.is_stale(prereq):
                logger.debug("%s is stale: prerequisite %s is stale", owner, prereq)
                return True
            mtime = self.fs.mtime(prereq)
            if mtime is None:
                if node is None:
                    logger.warning(
                        "%s: prerequisite %s does not exist and no rule makes it",
                        owner,
                        prereq,
                    )
                return True
            if mtime > reference:
                logger.debug("%s is stale: %s is newer", owner, prereq)
                return True
        return False

    def plan(self, goals: Iterable[str]) -> BuildPlan:
        """Order the targets reachable from ``goals`` and split them.

        Intermediate targets are only scheduled when a scheduled dependent
        needs them.

        Raises:
            UnknownTargetError: If a goal is not a target.
            DependencyCycleError: If the graph has a cycle.
        """
        order: list[str] = []
        seen: set[str] = set()

        def visit(name: str) -> None:
            if name in seen:
                return
            seen.add(name)
            node = self.graph.get(name)
            if node is None:
                return
            for prereq in node.prerequisites:
                visit(prereq)
            order.append(name)

        goal_names = list(goals)
        for goal in goal_names:
            if goal not in self.graph:
                raise UnknownTargetError(goal)
            visit(goal)

        needed: set[str] = set()
        for name in reversed(order):
            if not self.is_stale(name):
                continue
            node = self.graph.targets[name]
            if (
                node.intermediate
                and name not in goal_names
                and not any(
                    name in self.graph.targets[d].prerequisites for d in needed
                )
            ):
                continue
            needed.add(name)

        plan = BuildPlan()
        for name in order:
            (plan.to_build if name in needed else plan.up_to_date).append(name)
        return plan


__all__ = ["BuildPlan", "StalenessEvaluator"]
