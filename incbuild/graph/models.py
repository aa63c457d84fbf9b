"""Build graph data model.

Targets are named by their path relative to the working root. Anything a
target lists as a prerequisite that is not itself a target is a raw file.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from incbuild.errors import UnknownTargetError
from incbuild.types import TargetKind

Action = Callable[[], None]


@dataclass(frozen=True)
class Edge:
    """A directed relation: ``target`` depends on ``source``."""

    target: str
    source: str

    def to_dict(self) -> dict[str, str]:
        return {"target": self.target, "source": self.source}


@dataclass
class Target:
    """A named build output tracked for staleness.

    Attributes:
        name: Path relative to the working root (or a label for phony targets).
        kind: What the target is.
        prerequisites: Targets or raw files this target depends on, in order.
        action: Builds the target; None for targets with nothing to run.
        intermediate: Deleted once every dependent has been built.
        phony: Not a file; always considered stale (an always-run rule).
    """

    name: str
    kind: TargetKind
    prerequisites: list[str] = field(default_factory=list)
    action: Action | None = None
    intermediate: bool = False
    phony: bool = False

    def add_prerequisite(self, name: str) -> None:
        if name != self.name and name not in self.prerequisites:
            self.prerequisites.append(name)


class BuildGraph:
    """The set of targets for one invocation."""

    def __init__(self) -> None:
        self.targets: dict[str, Target] = {}

    def __contains__(self, name: object) -> bool:
        return name in self.targets

    def add(self, target: Target) -> Target:
        self.targets[target.name] = target
        return target

    def get(self, name: str) -> Target | None:
        return self.targets.get(name)

    def names(self) -> set[str]:
        return set(self.targets)

    def add_edges(self, edges: Iterable[Edge]) -> None:
        """Attach edges to their targets.

        Raises:
            UnknownTargetError: If an edge names a target the graph lacks.
        """
        for edge in edges:
            target = self.targets.get(edge.target)
            if target is None:
                raise UnknownTargetError(edge.target)
            target.add_prerequisite(edge.source)

    def dependents(self, name: str) -> list[str]:
        return [t.name for t in self.targets.values() if name in t.prerequisites]


__all__ = ["Action", "BuildGraph", "Edge", "Target"]
