"""Pydantic models for the project description.

A project is one library built from a single root source file, plus the
fixed set of artifacts derived from it and an optional nested sub-project
the library links against.
"""

import re
from pathlib import PurePosixPath
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\-]+$")


def _validate_relative(v: str) -> str:
    path = PurePosixPath(v)
    if path.is_absolute():
        raise ValueError(f"path must be relative to the working root, got '{v}'")
    if ".." in path.parts:
        raise ValueError(f"path must not leave the working root, got '{v}'")
    return path.as_posix()


class ExampleSchema(BaseModel):
    """Schema for the example (consumer) binary.

    Attributes:
        source: Source file of the example, relative to the working root.
        output: Binary path, relative to the configuration's output directory.
    """

    model_config = ConfigDict(extra="forbid")

    source: str = Field(description="Example source file")
    output: str = Field(description="Example binary path inside the output directory")

    @field_validator("source", "output")
    @classmethod
    def validate_paths(cls, v: str) -> str:
        """Validate paths stay inside the working root."""
        return _validate_relative(v)


class SubprojectSchema(BaseModel):
    """Schema for the nested sub-project.

    Attributes:
        path: Sub-project directory, relative to the working root.
        artifact: Artifact the sub-project produces, relative to its directory.
        probe_command: Query-only staleness probe; exit 0 means current.
        build_command: Full build entry point.
        clean_command: Clean entry point.
    """

    model_config = ConfigDict(extra="forbid")

    path: str = Field(description="Sub-project directory")
    artifact: str = Field(description="Artifact produced by the sub-project")
    probe_command: list[str] = Field(
        default_factory=lambda: ["make", "-q"],
        min_length=1,
        description="Staleness probe command",
    )
    build_command: list[str] = Field(
        default_factory=lambda: ["make"],
        min_length=1,
        description="Build command",
    )
    clean_command: list[str] = Field(
        default_factory=lambda: ["make", "clean"],
        min_length=1,
        description="Clean command",
    )

    @field_validator("path", "artifact")
    @classmethod
    def validate_paths(cls, v: str) -> str:
        """Validate paths stay inside the working root."""
        return _validate_relative(v)


class ProjectSchema(BaseModel):
    """Complete project schema.

    Attributes:
        name: Project name, used for default artifact names.
        root_source: Root source file of the library.
        crate_name: Optional crate name passed to the compiler.
        library: Library artifact file name; queried from the compiler
            when not given.
        example: Optional example binary.
        docs: Whether documentation is generated.
        test_binary: Test binary file name (default ``test-<name>``).
        subproject: Optional nested sub-project.
        search_paths: Extra library search paths.
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[
        str, Field(description="Project name", min_length=1, max_length=255)
    ]
    root_source: str = Field(default="lib.rs", description="Root source file")
    crate_name: str | None = Field(default=None, description="Crate name")
    library: str | None = Field(default=None, description="Library artifact name")
    example: ExampleSchema | None = Field(default=None, description="Example binary")
    docs: bool = Field(default=True, description="Generate documentation")
    test_binary: str | None = Field(default=None, description="Test binary name")
    subproject: SubprojectSchema | None = Field(
        default=None, description="Nested sub-project"
    )
    search_paths: list[str] = Field(
        default_factory=list, description="Extra library search paths"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name matches safe pattern."""
        if not PROJECT_NAME_PATTERN.match(v):
            raise ValueError(
                f"name must contain only alphanumeric characters, "
                f"underscores and hyphens, got '{v}'"
            )
        return v

    @field_validator("root_source")
    @classmethod
    def validate_root_source(cls, v: str) -> str:
        """Validate the root source stays inside the working root."""
        return _validate_relative(v)

    @field_validator("library", "test_binary")
    @classmethod
    def validate_file_name(cls, v: str | None) -> str | None:
        """Validate artifact names are plain file names."""
        if v is not None and (not v or "/" in v):
            raise ValueError(f"must be a plain file name, got '{v}'")
        return v

    @property
    def effective_test_binary(self) -> str:
        return self.test_binary or f"test-{self.name}"

    @property
    def effective_search_paths(self) -> list[str]:
        """Project search paths, plus the sub-project directory."""
        paths = list(self.search_paths)
        if self.subproject and self.subproject.path not in paths:
            paths.append(self.subproject.path)
        return paths


__all__ = [
    "PROJECT_NAME_PATTERN",
    "ExampleSchema",
    "ProjectSchema",
    "SubprojectSchema",
]
