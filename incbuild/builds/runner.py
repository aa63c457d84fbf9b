"""Tool runner for executing compiler, doc generator and sub-build commands.

This module handles:
- Executing external tools with subprocess
- Capturing diagnostic output for error reports
- Appending every invocation to the build log
- Enforcing timeouts
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from incbuild.errors import EXECUTION_ERROR, TOOL_TIMEOUT, ToolchainFailure

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Result of a tool execution.

    Attributes:
        command: The command that was executed.
        exit_code: Process exit code.
        output: Captured stdout/stderr (empty when not captured).
        started_at: Start time.
        finished_at: Finish time.
    """

    command: str
    exit_code: int
    output: str
    started_at: datetime
    finished_at: datetime

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class ToolRunner:
    """Runs external tools from the working root.

    Args:
        cwd: Default working directory (the working root).
        log_path: Optional build log that every invocation is appended to.
        timeout: Default timeout in seconds (None = no timeout).
    """

    def __init__(
        self,
        cwd: Path,
        log_path: Path | None = None,
        timeout: int | None = None,
    ) -> None:
        self.cwd = cwd
        self.log_path = log_path
        self.timeout = timeout

    def run(
        self,
        cmd: list[str],
        *,
        target: str,
        cwd: Path | None = None,
        env_override: dict[str, str] | None = None,
        timeout: int | None = None,
        check: bool = True,
        capture: bool = True,
    ) -> ToolResult:
        """Execute a tool.

        Args:
            cmd: Command as a list of strings.
            target: Target the command works on, for logs and errors.
            cwd: Working directory (defaults to the runner's).
            env_override: Environment variables added to the inherited ones.
            timeout: Timeout in seconds, overriding the runner's default.
            check: Raise ToolchainFailure on a non-zero exit.
            capture: Capture output; when False the tool writes straight to
                the terminal.

        Returns:
            ToolResult with execution details.

        Raises:
            ToolchainFailure: If the tool cannot start, times out, or (with
                ``check``) exits non-zero.
        """
        cmd_str = shlex.join(cmd)
        workdir = cwd or self.cwd
        effective_timeout = timeout if timeout is not None else self.timeout
        logger.info("[%s] %s", target, cmd_str)
        logger.debug("Working directory: %s", workdir)

        env: dict[str, str] | None = None
        if env_override:
            env = dict(os.environ)
            env.update(env_override)

        started_at = datetime.now(timezone.utc)
        try:
            result = subprocess.run(
                cmd,
                cwd=workdir,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.STDOUT if capture else None,
                text=True,
                timeout=effective_timeout,
                env=env,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            message = f"{cmd[0]} timed out after {effective_timeout} seconds"
            logger.error("[%s] %s", target, message)
            output = e.output if isinstance(e.output, str) else ""
            self._append_log(cmd_str, workdir, started_at, output, None)
            raise ToolchainFailure(
                message,
                target=target,
                command=cmd_str,
                exit_code=-1,
                output=output,
                code=TOOL_TIMEOUT,
            ) from e
        except OSError as e:
            message = f"Failed to execute {cmd[0]}: {e}"
            logger.error("[%s] %s", target, message)
            raise ToolchainFailure(
                message,
                target=target,
                command=cmd_str,
                exit_code=None,
                code=EXECUTION_ERROR,
            ) from e

        finished_at = datetime.now(timezone.utc)
        output = result.stdout or ""
        self._append_log(cmd_str, workdir, started_at, output, result.returncode)

        if check and result.returncode != 0:
            logger.error("[%s] %s exited with code %d", target, cmd[0], result.returncode)
            raise ToolchainFailure(
                f"Building {target} failed: `{cmd_str}` exited with code {result.returncode}",
                target=target,
                command=cmd_str,
                exit_code=result.returncode,
                output=output,
            )

        return ToolResult(
            command=cmd_str,
            exit_code=result.returncode,
            output=output,
            started_at=started_at,
            finished_at=finished_at,
        )

    def _append_log(
        self,
        cmd_str: str,
        workdir: Path,
        started_at: datetime,
        output: str,
        exit_code: int | None,
    ) -> None:
        if self.log_path is None:
            return
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        finished_at = datetime.now(timezone.utc)
        with self.log_path.open("a", encoding="utf-8") as log_file:
            log_file.write(f"# Command: {cmd_str}\n")
            log_file.write(f"# Started: {started_at.isoformat()}\n")
            log_file.write(f"# CWD: {workdir}\n")
            if output:
                log_file.write(output if output.endswith("\n") else output + "\n")
            if exit_code is None:
                log_file.write("# TIMEOUT\n")
            else:
                log_file.write(f"# Exit code: {exit_code}\n")
            duration = (finished_at - started_at).total_seconds()
            log_file.write(f"# Duration: {duration:.1f}s\n\n")


__all__ = ["ToolResult", "ToolRunner"]
