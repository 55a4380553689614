"""Nightly artifact selection and unpacking into the canonical toolchain directory."""

from __future__ import annotations

import re
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path

from stagepipe.config import ARTIFACT_PATTERN
from stagepipe.errors import ArtifactSelectionError, ValidationError
from stagepipe.models import SelectionStatus, StagedToolchain

_OPERATION = "stage_toolchain"
DEFAULT_TOOLCHAIN_NAME = "roc_nightly"


@dataclass(frozen=True, slots=True)
class ArtifactSelection:
    """Outcome of filtering an artifact directory; exactly one candidate is a match."""

    directory: Path
    match: str
    candidates: tuple[Path, ...]

    @property
    def status(self) -> SelectionStatus:
        if not self.candidates:
            return "no_match"
        if len(self.candidates) > 1:
            return "ambiguous"
        return "matched"

    @property
    def path(self) -> Path | None:
        return self.candidates[0] if self.status == "matched" else None

    def require(self) -> Path:
        if self.status == "matched":
            return self.candidates[0]
        context = {
            "operation": _OPERATION,
            "directory": str(self.directory),
            "match": self.match,
        }
        if self.status == "no_match":
            raise ArtifactSelectionError(
                "No nightly artifact matches the requested pattern.",
                hint="Check that the earlier stage uploaded an archive for this platform.",
                context=context,
            )
        context["candidates"] = ", ".join(path.name for path in self.candidates)
        raise ArtifactSelectionError(
            "More than one nightly artifact matches the requested pattern.",
            hint="Pass a more specific match substring.",
            context=context,
        )


def find_artifact(
    directory: str | Path,
    match: str,
    *,
    pattern: str = ARTIFACT_PATTERN,
) -> ArtifactSelection:
    """Return files in *directory* whose name matches *pattern* and contains *match*."""
    root = Path(directory)
    if not root.is_dir():
        raise ArtifactSelectionError(
            "Artifact directory does not exist.",
            hint="Download the nightly artifacts before staging.",
            context={"operation": _OPERATION, "directory": str(root)},
        )
    structural = re.compile(pattern)
    candidates = tuple(
        sorted(
            entry
            for entry in root.iterdir()
            if entry.is_file() and structural.search(entry.name) and match in entry.name
        )
    )
    return ArtifactSelection(directory=root, match=match, candidates=candidates)


def unpack_artifact(
    archive: str | Path,
    workspace: str | Path,
    *,
    name: str = DEFAULT_TOOLCHAIN_NAME,
) -> StagedToolchain:
    """Move *archive* into *workspace*, extract it, and rename the result to *name*.

    The compressed file is removed only once extraction succeeds; on any
    failure it is left in (or moved back to) its original location. A
    previously staged directory with the same name is replaced.
    """
    source = Path(archive)
    workspace_path = Path(workspace).resolve()
    workspace_path.mkdir(parents=True, exist_ok=True)
    target = workspace_path / name
    staged_archive = workspace_path / f"{name}.tar.gz"

    try:
        with tarfile.open(source, mode="r:gz") as tar:
            top_level = _top_level_entries(tar)
            nested = len(top_level) == 1 and _is_directory(tar, top_level[0])
    except (tarfile.TarError, EOFError) as exc:
        raise _unreadable(source, exc) from exc

    extracted = workspace_path / top_level[0] if nested else target
    if extracted != target and extracted.exists():
        raise ValidationError(
            "Extraction target already exists in the workspace.",
            hint="Remove stale toolchain directories before staging.",
            context={"operation": _OPERATION, "path": str(extracted)},
        )

    if target.exists():
        shutil.rmtree(target)
    shutil.move(str(source), staged_archive)

    try:
        with tarfile.open(staged_archive, mode="r:gz") as tar:
            if nested:
                tar.extractall(workspace_path, filter="data")
            else:
                target.mkdir()
                tar.extractall(target, filter="data")
        if extracted != target:
            extracted.rename(target)
    except (tarfile.TarError, EOFError) as exc:
        _restore(staged_archive, source, extracted, target)
        raise _unreadable(source, exc) from exc
    except OSError:
        _restore(staged_archive, source, extracted, target)
        raise

    staged_archive.unlink()
    return StagedToolchain(root=target, archive_name=source.name)


def stage_toolchain(
    directory: str | Path,
    match: str,
    workspace: str | Path,
    *,
    name: str = DEFAULT_TOOLCHAIN_NAME,
) -> StagedToolchain:
    archive = find_artifact(directory, match).require()
    return unpack_artifact(archive, workspace, name=name)


def _top_level_entries(tar: tarfile.TarFile) -> list[str]:
    names: list[str] = []
    for member in tar.getmembers():
        head = _member_path(member.name).split("/", 1)[0]
        if head not in ("", ".") and head not in names:
            names.append(head)
    return names


def _is_directory(tar: tarfile.TarFile, name: str) -> bool:
    for member in tar.getmembers():
        stripped = _member_path(member.name)
        if stripped == name:
            return member.isdir()
        if stripped.startswith(f"{name}/"):
            return True
    return False


def _member_path(name: str) -> str:
    while name.startswith("./"):
        name = name[2:]
    return name.lstrip("/")


def _unreadable(source: Path, exc: BaseException) -> ArtifactSelectionError:
    return ArtifactSelectionError(
        "Nightly artifact is not a readable gzip tarball.",
        hint=str(exc),
        context={"operation": _OPERATION, "archive": str(source)},
    )


def _restore(staged_archive: Path, source: Path, *partial: Path) -> None:
    for path in partial:
        if path.is_dir():
            shutil.rmtree(path)
    shutil.move(str(staged_archive), source)
