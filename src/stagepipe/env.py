"""Search-path export and staged toolchain verification."""

from __future__ import annotations

import os
from collections.abc import MutableMapping
from pathlib import Path

from stagepipe.process import CommandRunner, SubprocessRunner, run_checked


def prepend_search_path(
    directory: str | Path,
    environ: MutableMapping[str, str] | None = None,
) -> str:
    """Put the absolute *directory* first on ``PATH`` and return the new value.

    Defaults to ``os.environ``, which scopes the change to this process and
    the children it spawns.
    """
    env = os.environ if environ is None else environ
    entry = str(Path(directory).resolve())
    current = [item for item in env.get("PATH", "").split(os.pathsep) if item]
    remaining = [item for item in current if item != entry]
    env["PATH"] = os.pathsep.join([entry, *remaining])
    return env["PATH"]


def verify_toolchain(
    executable: str | Path,
    *,
    runner: CommandRunner | None = None,
    env: MutableMapping[str, str] | None = None,
) -> str:
    """Run ``<executable> version`` and return its trimmed output."""
    runner = runner or SubprocessRunner()
    result = run_checked(
        runner,
        [str(executable), "version"],
        operation="verify_toolchain",
        env=env,
        message="Staged toolchain failed to report its version.",
        hint="The nightly archive may not match this platform.",
    )
    return result.stdout.strip()
