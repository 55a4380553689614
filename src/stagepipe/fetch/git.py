"""Git checkout of the companion repository pinned to a release tag."""

from __future__ import annotations

from pathlib import Path

from stagepipe.errors import CheckoutError, ValidationError
from stagepipe.models import CheckoutResult
from stagepipe.process import CommandRunner, SubprocessRunner, run_checked

_OPERATION = "checkout"


def checkout_tag(
    repo: str,
    *,
    tag: str,
    dest: str | Path,
    runner: CommandRunner | None = None,
) -> CheckoutResult:
    """Clone *repo* into *dest* (or reuse an existing clone) and check out *tag*.

    The working tree is forced to the tagged revision, so local edits from a
    previous run are discarded and re-running yields the same content.
    """
    if not tag:
        raise ValidationError("checkout_tag() requires a tag.")
    runner = runner or SubprocessRunner()
    dest_path = Path(dest).resolve()

    if (dest_path / ".git").exists():
        _run_git(runner, ["fetch", "--quiet", "--tags", "origin"], cwd=dest_path)
    elif dest_path.exists() and any(dest_path.iterdir()):
        raise CheckoutError(
            "Checkout destination exists and is not a git repository.",
            hint="Remove the directory or choose another workspace.",
            context={"operation": _OPERATION, "path": str(dest_path)},
        )
    else:
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        _run_git(
            runner,
            ["clone", "--quiet", repo, str(dest_path)],
            cwd=dest_path.parent,
            hint="Ensure the repository URL is valid and reachable.",
        )

    commit = _resolve_tag(runner, tag=tag, cwd=dest_path, repo=repo)
    _run_git(
        runner,
        ["-c", "advice.detachedHead=false", "checkout", "--quiet", "--force", commit],
        cwd=dest_path,
    )
    head = _run_git(runner, ["rev-parse", "HEAD"], cwd=dest_path)
    return CheckoutResult(path=dest_path, tag=tag, commit=head)


def _resolve_tag(runner: CommandRunner, *, tag: str, cwd: Path, repo: str) -> str:
    result = runner.run(
        ["git", "rev-parse", "--verify", "--quiet", f"{tag}^{{commit}}"],
        cwd=cwd,
        step=_OPERATION,
    )
    commit = result.stdout.strip()
    if not result.ok or not commit:
        raise CheckoutError(
            "Release tag does not name a ref in the repository.",
            hint="Check the RELEASE_TAG value against the repository's tags.",
            context={"operation": _OPERATION, "repo": repo, "tag": tag},
        )
    return commit


def _run_git(
    runner: CommandRunner,
    argv: list[str],
    *,
    cwd: Path,
    hint: str = "Inspect repository/tag inputs and git installation.",
) -> str:
    result = run_checked(
        runner,
        ["git", *argv],
        operation=_OPERATION,
        cwd=cwd,
        error=CheckoutError,
        message="Git command failed.",
        hint=hint,
    )
    return result.stdout.strip()
