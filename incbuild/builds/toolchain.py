"""Command composition for the compiler and documentation generator.

Every command is derived from the same frozen BuildConfiguration, so the
dependency scan sees exactly the flags the real builds use.
"""

from __future__ import annotations

from dataclasses import dataclass

from incbuild.config import BuildConfiguration

TEST_THREADS_ENV = "RUST_TEST_THREADS"


@dataclass(frozen=True)
class Toolchain:
    """Composes command lines for one invocation.

    Attributes:
        config: Build configuration.
        compiler: Compiler executable.
        doc_tool: Documentation generator executable.
        crate_name: Optional explicit crate name.
    """

    config: BuildConfiguration
    compiler: str = "rustc"
    doc_tool: str = "rustdoc"
    crate_name: str | None = None

    def _crate_args(self) -> list[str]:
        return ["--crate-name", self.crate_name] if self.crate_name else []

    def file_names_command(self, root: str) -> list[str]:
        """Ask the compiler what the library artifact will be called."""
        return [
            self.compiler,
            *self._crate_args(),
            "--crate-type",
            "lib",
            "--print",
            "file-names",
            root,
        ]

    def dep_info_command(self, root: str, output: str) -> list[str]:
        """Dependency discovery only: no code generation."""
        return [
            self.compiler,
            *self.config.compiler_flags(),
            *self._crate_args(),
            "--crate-type",
            "lib",
            "--emit",
            f"dep-info={output}",
            root,
        ]

    def library_command(self, root: str, output: str) -> list[str]:
        return [
            self.compiler,
            *self.config.compiler_flags(),
            *self._crate_args(),
            "--crate-type",
            "lib",
            "-o",
            output,
            root,
        ]

    def example_command(self, source: str, output: str, library_dir: str) -> list[str]:
        return [
            self.compiler,
            *self.config.compiler_flags(),
            "-L",
            library_dir,
            "-o",
            output,
            source,
        ]

    def test_command(self, root: str, output: str) -> list[str]:
        return [
            self.compiler,
            *self.config.compiler_flags(),
            *self._crate_args(),
            "--test",
            "-o",
            output,
            root,
        ]

    def doc_command(self, root: str, output_dir: str) -> list[str]:
        return [
            self.doc_tool,
            *self.config.doc_flags(),
            *self._crate_args(),
            "-o",
            output_dir,
            root,
        ]

    def test_run_command(self, binary: str, name: str | None = None) -> list[str]:
        cmd = [binary]
        if name:
            cmd.append(name)
        return cmd


__all__ = ["TEST_THREADS_ENV", "Toolchain"]
