"""Test doubles and fixture builders shared across test modules."""

from __future__ import annotations

import io
import subprocess
import tarfile
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from stagepipe.process import CommandResult, SubprocessRunner


@dataclass(frozen=True, slots=True)
class RecordedCall:
    argv: tuple[str, ...]
    cwd: Path | None
    env: Mapping[str, str] | None
    timeout: float | None


@dataclass(slots=True)
class FakeRunner:
    """Records commands and answers them from canned responses.

    Responses are keyed by an argv prefix whose first element is compared by
    basename, so ``/abs/roc_nightly/roc version`` matches ``("roc", "version")``.
    Programs listed in ``passthrough`` run for real.
    """

    responses: dict[tuple[str, ...], CommandResult] = field(default_factory=dict)
    passthrough: tuple[str, ...] = ("git",)
    calls: list[RecordedCall] = field(default_factory=list)

    def respond(
        self,
        *prefix: str,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        timed_out: bool = False,
    ) -> None:
        self.responses[prefix] = CommandResult(
            argv=prefix,
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            timed_out=timed_out,
        )

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
        self.calls.append(
            RecordedCall(
                argv=command,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                timeout=timeout,
            )
        )
        if command[0] in self.passthrough:
            return SubprocessRunner().run(command, cwd=cwd, env=env, timeout=timeout)

        key = (Path(command[0]).name, *command[1:])
        best: CommandResult | None = None
        best_len = -1
        for prefix, response in self.responses.items():
            if key[: len(prefix)] == prefix and len(prefix) > best_len:
                best, best_len = response, len(prefix)
        if best is None:
            return CommandResult(argv=command, returncode=0)
        return CommandResult(
            argv=command,
            returncode=best.returncode,
            stdout=best.stdout,
            stderr=best.stderr,
            timed_out=best.timed_out,
        )

    def commands(self, program: str | None = None) -> list[tuple[str, ...]]:
        return [
            call.argv
            for call in self.calls
            if program is None or Path(call.argv[0]).name == program
        ]


def run_git(argv: list[str], *, cwd: Path) -> str:
    completed = subprocess.run(
        ["git", *argv],
        cwd=cwd,
        check=False,
        text=True,
        capture_output=True,
    )
    if completed.returncode != 0:
        raise RuntimeError(f"git {' '.join(argv)} failed: {completed.stderr.strip()}")
    return completed.stdout.strip()


def make_nightly_archive(
    directory: Path,
    name: str,
    *,
    top_level: str | None = "roc_nightly-linux_x86_64-2024-05-01-abc1234",
) -> Path:
    """Write a gzip tarball that looks like a nightly compiler release."""
    directory.mkdir(parents=True, exist_ok=True)
    archive = directory / name
    prefix = f"{top_level}/" if top_level else ""
    files = {
        f"{prefix}roc": b"#!/bin/sh\necho 'roc nightly pre-release, built from commit abc1234'\n",
        f"{prefix}lib/str.roc": b"interface Str\n",
    }
    with tarfile.open(archive, mode="w:gz") as tar:
        if top_level:
            info = tarfile.TarInfo(top_level)
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            tar.addfile(info)
        for member_name, payload in files.items():
            info = tarfile.TarInfo(member_name)
            info.size = len(payload)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(payload))
    return archive
