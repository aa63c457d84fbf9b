"""Shared type definitions for incbuild.

This module contains enums and dataclasses shared across subpackages to
avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum


class Goal(str, Enum):
    """Build goal requested on the command line."""

    ALL = "all"
    LIB = "lib"
    EXAMPLE = "example"
    DOC = "doc"
    TEST = "test"


class TargetKind(str, Enum):
    """Kind of a target in the build graph."""

    LIBRARY = "lib"
    EXAMPLE = "example"
    DOCS = "doc"
    TEST = "test"
    MANIFEST = "manifest"
    SUBPROJECT = "subproject"


class ManifestKind(str, Enum):
    """Which naming convention a dependency listing uses.

    RAW listings come straight from the compiler and are labeled with the
    compiler's own output name. PUBLISHED manifests are the transformed,
    persisted form the build graph loads.
    """

    RAW = "raw"
    PUBLISHED = "published"


class ProbeResult(str, Enum):
    """Outcome of a sub-project staleness probe."""

    CURRENT = "current"
    STALE = "stale"


@dataclass
class BuildReport:
    """What a single invocation did.

    Attributes:
        goal: The requested goal.
        built: Targets whose build action ran, in order.
        up_to_date: Targets that were evaluated and found current.
        removed_intermediates: Intermediate targets deleted after use.
        dry_run: Whether actions were only reported, not run.
    """

    goal: str
    built: list[str] = field(default_factory=list)
    up_to_date: list[str] = field(default_factory=list)
    removed_intermediates: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def actions(self) -> int:
        """Number of rebuild actions performed (or planned, for dry runs)."""
        return len(self.built)


__all__ = [
    "BuildReport",
    "Goal",
    "ManifestKind",
    "ProbeResult",
    "TargetKind",
]
