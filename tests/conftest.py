"""Shared fixtures for incbuild tests.

FakeToolchain stands in for rustc, rustdoc, make and the test binary by
replacing subprocess.run in the tool runner. It writes the outputs the real
tools would write, so builds can run end to end in a temp directory.
"""

import os
import subprocess
import time
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from incbuild.config import Settings

SOURCES = {
    "lib.rs": "pub mod conn;\nmod handlers;\n",
    "conn.rs": "pub struct Conn;\n",
    "handlers.rs": "fn handle() {}\n",
    "example/example.rs": "extern crate irc;\nfn main() {}\n",
}
INCLUDES = ["lib.rs", "conn.rs", "handlers.rs"]
SUBPROJECT_DIR = "deps/sub"
SUBPROJECT_ARTIFACT = "libsub.rlib"


class FakeToolchain:
    """Callable replacement for subprocess.run.

    Attributes:
        calls: Every command, in order.
        fail: Command kinds that should exit non-zero.
        depfile_text: Listing to write instead of one built from includes.
        probe_exit: Exit status of the sub-project probe.
        tests: Test name -> exit status of that test.
        test_runs: (filter, RUST_TEST_THREADS) of every test binary run.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.includes = list(INCLUDES)
        self.depfile_text: str | None = None
        self.calls: list[list[str]] = []
        self.fail: set[str] = set()
        self.probe_exit = 0
        self.tests: dict[str, int] = {"parse_user": 0, "conn_send": 0}
        self.test_runs: list[tuple[str | None, str | None]] = []

    @staticmethod
    def classify(cmd: list[str]) -> str:
        tool = Path(cmd[0]).name
        if tool == "rustc":
            if "--print" in cmd:
                return "file-names"
            if "--emit" in cmd:
                return "dep-info"
            if "--test" in cmd:
                return "test"
            if "--crate-type" in cmd:
                return "lib"
            return "example"
        if tool == "rustdoc":
            return "doc"
        if tool == "make":
            if "-q" in cmd:
                return "probe"
            if "clean" in cmd:
                return "sub-clean"
            return "sub-build"
        return "run-tests"

    def kinds(self) -> list[str]:
        return [self.classify(c) for c in self.calls]

    def count(self, kind: str) -> int:
        return self.kinds().count(kind)

    def reset(self) -> None:
        self.calls.clear()
        self.test_runs.clear()

    def __call__(self, cmd, cwd=None, env=None, **kwargs):
        cmd = list(cmd)
        self.calls.append(cmd)
        kind = self.classify(cmd)
        workdir = Path(cwd) if cwd else self.root

        if kind in self.fail:
            return subprocess.CompletedProcess(
                cmd, 1, stdout=f"error: simulated {kind} failure\n"
            )

        if kind == "file-names":
            return subprocess.CompletedProcess(cmd, 0, stdout="libirc.rlib\n")
        if kind == "dep-info":
            out = cmd[cmd.index("--emit") + 1].removeprefix("dep-info=")
            lines = [f"{out}: {' '.join(self.includes)}", ""]
            lines += [f"{name}:" for name in self.includes]
            text = self.depfile_text or "\n".join(lines) + "\n"
            (workdir / out).write_text(text)
        elif kind in ("lib", "test", "example"):
            out = workdir / cmd[cmd.index("-o") + 1]
            out.write_text(f"{kind}: {' '.join(cmd[1:])}\n")
        elif kind == "doc":
            out = workdir / cmd[cmd.index("-o") + 1]
            out.mkdir(parents=True, exist_ok=True)
            (out / "index.html").write_text("<html></html>\n")
        elif kind == "probe":
            return subprocess.CompletedProcess(cmd, self.probe_exit, stdout="")
        elif kind == "sub-build":
            (workdir / SUBPROJECT_ARTIFACT).write_text("sub\n")
            self.probe_exit = 0
        elif kind == "sub-clean":
            (workdir / SUBPROJECT_ARTIFACT).unlink(missing_ok=True)
        elif kind == "run-tests":
            name = cmd[1] if len(cmd) > 1 else None
            self.test_runs.append((name, (env or {}).get("RUST_TEST_THREADS")))
            selected = [rc for t, rc in self.tests.items() if name is None or name in t]
            return subprocess.CompletedProcess(cmd, max(selected, default=0), stdout=None)

        return subprocess.CompletedProcess(cmd, 0, stdout="")


def set_mtime(path: Path, mtime: float) -> None:
    os.utime(path, (mtime, mtime))


def age_tree(directory: Path, seconds: float) -> None:
    """Move every file under ``directory`` ``seconds`` into the past."""
    for path in directory.rglob("*"):
        if path.is_file():
            stamp = path.stat().st_mtime - seconds
            set_mtime(path, stamp)


def write_project(root: Path, *, subproject: bool = False, **overrides) -> Path:
    data: dict = {
        "name": "irc",
        "root_source": "lib.rs",
        "crate_name": "irc",
        "example": {"source": "example/example.rs", "output": "example/ircbot"},
    }
    if subproject:
        data["subproject"] = {"path": SUBPROJECT_DIR, "artifact": SUBPROJECT_ARTIFACT}
    data.update(overrides)
    path = root / "incbuild.yaml"
    path.write_text(yaml.safe_dump(data, sort_keys=False))
    return path


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """A library checkout whose sources are well in the past."""
    root = tmp_path / "irc"
    past = time.time() - 1000
    for name, content in SOURCES.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        set_mtime(path, past)
    write_project(root)
    return root


@pytest.fixture
def subproject_root(project_root: Path) -> Path:
    """project_root with a current sub-project."""
    sub = project_root / SUBPROJECT_DIR
    sub.mkdir(parents=True)
    (sub / "Makefile").write_text("all:\n")
    (sub / SUBPROJECT_ARTIFACT).write_text("sub\n")
    past = time.time() - 1000
    set_mtime(sub / "Makefile", past)
    set_mtime(sub / SUBPROJECT_ARTIFACT, past)
    write_project(project_root, subproject=True)
    return project_root


@pytest.fixture
def fake_toolchain(project_root: Path):
    """Patch subprocess.run in the tool runner with a FakeToolchain."""
    fake = FakeToolchain(project_root)
    with patch("incbuild.builds.runner.subprocess.run", side_effect=fake):
        yield fake


@pytest.fixture
def settings(project_root: Path) -> Settings:
    return Settings(root=project_root)
