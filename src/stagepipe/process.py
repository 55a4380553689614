"""External command execution shared by every pipeline step."""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from stagepipe.errors import StagingError, StepExecutionError
from stagepipe.observability import StructuredLogger

TIMEOUT_RETURNCODE = 124


@dataclass(frozen=True, slots=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return shlex.join(self.argv)


class CommandRunner(Protocol):
    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        capture: bool = True,
        step: str | None = None,
    ) -> CommandResult:
        """Run a command to completion without raising on non-zero exit."""


@dataclass(slots=True)
class SubprocessRunner:
    logger: StructuredLogger | None = None

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        capture: bool = True,
        step: str | None = None,
    ) -> CommandResult:
        command = tuple(str(arg) for arg in argv)
        if self.logger is not None:
            extra = {"cwd": str(cwd)} if cwd is not None else None
            self.logger.log(
                operation="exec",
                step=step,
                message=shlex.join(command),
                extra=extra,
            )
        try:
            completed = subprocess.run(
                command,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                timeout=timeout,
                check=False,
                text=True,
                capture_output=capture,
            )
        except subprocess.TimeoutExpired as exc:
            return CommandResult(
                argv=command,
                returncode=TIMEOUT_RETURNCODE,
                stdout=_decode(exc.stdout),
                stderr=_decode(exc.stderr),
                timed_out=True,
            )
        except FileNotFoundError:
            return CommandResult(
                argv=command,
                returncode=127,
                stderr=f"{command[0]}: command not found",
            )
        return CommandResult(
            argv=command,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def run_checked(
    runner: CommandRunner,
    argv: Sequence[str],
    *,
    operation: str,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    capture: bool = True,
    error: type[StagingError] = StepExecutionError,
    message: str | None = None,
    hint: str | None = None,
) -> CommandResult:
    """Run *argv* and raise *error* when it does not exit cleanly."""
    result = runner.run(argv, cwd=cwd, env=env, timeout=timeout, capture=capture, step=operation)
    if result.ok:
        return result

    context = {
        "operation": operation,
        "command": result.command,
        "returncode": str(result.returncode),
        "stderr": result.stderr.strip()[:2000],
    }
    if cwd is not None:
        context["cwd"] = str(cwd)
    if result.timed_out:
        context["timeout_s"] = str(timeout)
    text = message or (
        f"Command timed out: {result.command}"
        if result.timed_out
        else f"Command failed: {result.command}"
    )
    raise error(text, hint=hint, context=context, returncode=result.returncode)


def _decode(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
