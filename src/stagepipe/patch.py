"""In-place literal substitution for the checkout's build descriptors."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from stagepipe.errors import ValidationError
from stagepipe.models import PatchResult

DESCRIPTOR_FILES = ("jump-start.sh", "build.roc")


def substitute_literal(path: str | Path, old: str, new: str) -> PatchResult:
    """Replace every *old* with *new* in *path*; a file without *old* is left untouched.

    Occurrences already rewritten to *new* are kept as-is, so repeated calls
    produce the same content even when *new* contains *old*.
    """
    file_path = Path(path)
    if not old:
        raise ValidationError("substitute_literal() requires a non-empty fragment.")
    text = file_path.read_text(encoding="utf-8")

    if old in new:
        pieces = text.split(new)
        count = sum(piece.count(old) for piece in pieces)
        patched = new.join(piece.replace(old, new) for piece in pieces)
    else:
        count = text.count(old)
        patched = text.replace(old, new)

    if count:
        file_path.write_text(patched, encoding="utf-8")
    return PatchResult(path=file_path, replacements=count)


def musl_output_fragment(triple: str, *, fragment: str = "target/release") -> str:
    """``target/release`` -> ``target/<triple>/release``."""
    head, _, tail = fragment.rpartition("/")
    if not head:
        return f"{triple}/{fragment}"
    return f"{head}/{triple}/{tail}"


def patch_build_descriptors(
    checkout: str | Path,
    triple: str,
    *,
    files: Iterable[str] = DESCRIPTOR_FILES,
    fragment: str = "target/release",
) -> tuple[PatchResult, ...]:
    root = Path(checkout)
    replacement = musl_output_fragment(triple, fragment=fragment)
    targets = [root / name for name in files]
    missing = [str(path) for path in targets if not path.is_file()]
    if missing:
        raise ValidationError(
            "Build descriptor files are missing from the checkout.",
            hint="The release tag may predate the expected repository layout.",
            context={"operation": "patch", "missing": ", ".join(missing)},
        )
    return tuple(substitute_literal(path, fragment, replacement) for path in targets)
