"""Error definitions for incbuild.

Errors carry a stable ``code`` that the CLI and tests can match on
without parsing messages.
"""

from __future__ import annotations

# Error code constants
TOOLCHAIN_FAILURE = "toolchain_failure"
TOOL_TIMEOUT = "tool_timeout"
EXECUTION_ERROR = "execution_error"
MISSING_OUTPUT = "missing_output"
MANIFEST_CORRUPT = "manifest_corrupt"
PROJECT_NOT_FOUND = "project_not_found"
PROJECT_INVALID = "project_invalid"
DEPENDENCY_CYCLE = "dependency_cycle"
UNKNOWN_TARGET = "unknown_target"
SUBPROJECT_MISSING = "subproject_missing"


class IncbuildError(Exception):
    """Base error for incbuild operations."""

    def __init__(self, message: str, code: str = "incbuild_error") -> None:
        super().__init__(message)
        self.code = code


class ToolchainFailure(IncbuildError):
    """Raised when the compiler, doc generator or a sub-build exits non-zero.

    Attributes:
        target: Name of the target that was being built.
        command: The command line that failed.
        exit_code: Process exit code (None if the process never started).
        output: Captured diagnostic output of the tool, verbatim.
    """

    def __init__(
        self,
        message: str,
        *,
        target: str | None = None,
        command: str | None = None,
        exit_code: int | None = None,
        output: str = "",
        code: str = TOOLCHAIN_FAILURE,
    ) -> None:
        super().__init__(message, code=code)
        self.target = target
        self.command = command
        self.exit_code = exit_code
        self.output = output


class ManifestCorrupt(IncbuildError):
    """Raised when a persisted manifest cannot be trusted.

    Never fatal: callers treat the manifest as absent and regenerate it.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Manifest {path} is unusable: {reason}", code=MANIFEST_CORRUPT)
        self.path = path
        self.reason = reason


class ProjectLoadError(IncbuildError):
    """Raised when the project description cannot be loaded."""

    def __init__(self, message: str, code: str = PROJECT_INVALID) -> None:
        super().__init__(message, code=code)


class DependencyCycleError(IncbuildError):
    """Raised when the build graph contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        super().__init__(
            "Dependency cycle: " + " -> ".join(cycle), code=DEPENDENCY_CYCLE
        )
        self.cycle = cycle


class UnknownTargetError(IncbuildError):
    """Raised when a goal names a target the build graph does not define."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No rule to make target: {name}", code=UNKNOWN_TARGET)
        self.name = name


__all__ = [
    "DEPENDENCY_CYCLE",
    "EXECUTION_ERROR",
    "MANIFEST_CORRUPT",
    "MISSING_OUTPUT",
    "PROJECT_INVALID",
    "PROJECT_NOT_FOUND",
    "SUBPROJECT_MISSING",
    "TOOLCHAIN_FAILURE",
    "TOOL_TIMEOUT",
    "UNKNOWN_TARGET",
    "DependencyCycleError",
    "IncbuildError",
    "ManifestCorrupt",
    "ProjectLoadError",
    "ToolchainFailure",
    "UnknownTargetError",
]
