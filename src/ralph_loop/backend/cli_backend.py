"""Subprocess-based runner for agent CLIs."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from ralph_loop.backend.base import OutputSink, ToolRunRequest, ToolRunResult
from ralph_loop.progress import ProgressLog

logger = logging.getLogger(__name__)


class ToolExecutionError(RuntimeError):
    """Agent process finished with a non-zero exit code."""

    def __init__(self, exit_code: int, output: str) -> None:
        super().__init__(f"Agent process exited with code {exit_code}")
        self.exit_code = exit_code
        self.output = output


class CliToolBackend:
    """Run one agent CLI invocation to completion, teeing its output.

    stdout and stderr are merged into one stream. Each line goes to the
    console sink as-is and to the progress log framed as ``[Tool] line``.
    """

    def __init__(
        self,
        *,
        progress_log: ProgressLog,
        echo: OutputSink | None = None,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self.progress_log = progress_log
        self.echo = echo
        self.cwd = cwd
        self.env = env
        self._progress_write_failed = False

    def run(self, request: ToolRunRequest) -> ToolRunResult:
        spec = request.tool.spec
        run_args = spec.build_args(prompt=request.prompt, model=request.model)
        captured: list[str] = []
        logger.debug("Running %s with %d argument(s)", spec.executable, len(run_args) - 1)

        try:
            exit_code = self._execute(run_args, display_name=spec.display_name, captured=captured)
        except ToolExecutionError as error:
            return self._failure(
                captured,
                display_name=spec.display_name,
                message=f"{spec.display_name} exited with code {error.exit_code}",
                exit_code=error.exit_code,
            )
        except FileNotFoundError:
            return self._failure(
                captured,
                display_name=spec.display_name,
                message=f"{spec.display_name} executable not found: {spec.executable}",
                exit_code=None,
            )
        except OSError as error:
            return self._failure(
                captured,
                display_name=spec.display_name,
                message=f"{spec.display_name} failed to start: {error}",
                exit_code=None,
            )

        return ToolRunResult(output="\n".join(captured), exit_code=exit_code)

    def _execute(self, run_args: list[str], *, display_name: str, captured: list[str]) -> int:
        env = os.environ.copy()
        if self.env:
            env.update(self.env)
        with subprocess.Popen(  # noqa: S603
            run_args,
            cwd=self.cwd,
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        ) as process:
            for raw_line in process.stdout:
                line = raw_line.rstrip("\r\n")
                captured.append(line)
                self._relay(display_name, line)
            returncode = process.wait()

        if returncode != 0:
            raise ToolExecutionError(returncode, "\n".join(captured))
        return returncode

    def _failure(
        self,
        captured: list[str],
        *,
        display_name: str,
        message: str,
        exit_code: int | None,
    ) -> ToolRunResult:
        logger.warning("%s", message)
        self._relay(display_name, f"ERROR: {message}")
        output = "\n".join([*captured, f"ERROR: {message}"])
        return ToolRunResult(output=output, exit_code=exit_code, error=message)

    def _relay(self, display_name: str, line: str) -> None:
        if self.echo is not None:
            self.echo(line)
        try:
            self.progress_log.append(f"[{display_name}] {line}")
        except OSError as error:
            if not self._progress_write_failed:
                logger.warning(
                    "Cannot append agent output to %s: %s",
                    self.progress_log.path,
                    error,
                )
            self._progress_write_failed = True
