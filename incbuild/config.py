"""Configuration settings for incbuild.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the INCBUILD_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="INCBUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    root: Path = Field(
        default_factory=Path.cwd,
        description="Working root of the project",
    )
    project_file: str = Field(
        default="incbuild.yaml",
        description="Project description file, relative to the working root",
    )
    build_dir: str = Field(
        default="build",
        description="Output directory, relative to the working root",
    )

    # Toolchain
    compiler: str = Field(default="rustc", description="Compiler executable")
    doc_tool: str = Field(default="rustdoc", description="Documentation generator")
    debug: bool = Field(
        default=False,
        description="Build the debug configuration instead of release",
    )
    search_paths: list[str] = Field(
        default_factory=list,
        description="Extra library search paths passed to the compiler",
    )

    # Tests
    test_threads: int = Field(
        default=1,
        ge=1,
        description="Thread count exported to the test binary",
    )
    test_name: str | None = Field(
        default=None,
        description="Default test name filter",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Timeouts (in seconds)
    build_timeout: int = Field(
        default=3600,
        ge=1,
        description="Timeout for each compiler or sub-build invocation",
    )
    probe_timeout: int = Field(
        default=120,
        ge=1,
        description="Timeout for the sub-project staleness probe",
    )


@dataclass(frozen=True)
class BuildConfiguration:
    """Flags fixed for a whole invocation.

    The same instance feeds the dependency scan and the real builds, so
    the edges in the manifest always describe what actually gets compiled.
    Debug and release outputs live in separate directories, which makes the
    configuration part of every artifact's identity.
    """

    debug: bool = False
    search_paths: tuple[str, ...] = ()

    @property
    def profile(self) -> str:
        return "debug" if self.debug else "release"

    def search_args(self) -> list[str]:
        args: list[str] = []
        for path in self.search_paths:
            args.extend(["-L", path])
        return args

    def compiler_flags(self) -> list[str]:
        """Flags shared by every compiler invocation."""
        flags = ["-g", "--cfg", "debug"] if self.debug else ["-O"]
        return flags + self.search_args()

    def doc_flags(self) -> list[str]:
        """Flags for the documentation generator (no codegen options)."""
        flags = ["--cfg", "debug"] if self.debug else []
        return flags + self.search_args()

    def output_dir(self, build_dir: str) -> str:
        return f"{build_dir}/{self.profile}"

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        extra_search_paths: list[str] | None = None,
    ) -> BuildConfiguration:
        """Freeze the configuration for one invocation.

        Args:
            settings: Effective settings.
            extra_search_paths: Search paths contributed by the project.

        Returns:
            BuildConfiguration instance.
        """
        paths: list[str] = []
        for path in [*settings.search_paths, *(extra_search_paths or [])]:
            if path not in paths:
                paths.append(path)
        return cls(debug=settings.debug, search_paths=tuple(paths))


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["BuildConfiguration", "Settings", "get_settings", "print_settings_json"]
