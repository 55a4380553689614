"""Pipeline configuration and environment loading."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from stagepipe.errors import ValidationError
from stagepipe.models import UnsupportedArchPolicy

DEFAULT_REPO_URL = "https://github.com/roc-lang/basic-cli.git"
RELEASE_TAG_ENV = "RELEASE_TAG"
ARTIFACT_PATTERN = r"roc_nightly.*tar\.gz"


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    release_tag: str
    match: str
    workspace: Path
    repo_url: str = DEFAULT_REPO_URL
    artifact_dir: Path | None = None
    checkout_name: str = "basic-cli"
    toolchain_name: str = "roc_nightly"
    system_package: str = "musl-tools"
    install_timeout: float = 300.0
    unsupported_arch: UnsupportedArchPolicy = "error"
    descriptor_files: tuple[str, ...] = ("jump-start.sh", "build.roc")
    output_fragment: str = "target/release"

    def __post_init__(self) -> None:
        if not self.release_tag:
            raise ValidationError(
                "A release tag is required.",
                hint=f"Set the {RELEASE_TAG_ENV} environment variable or pass --tag.",
            )
        if not self.match:
            raise ValidationError(
                "An artifact match substring is required.",
                hint="Pass the platform substring, e.g. `linux-x86_64`.",
            )
        if self.install_timeout <= 0:
            raise ValidationError(
                "install_timeout must be positive.",
                context={"install_timeout": str(self.install_timeout)},
            )
        if self.unsupported_arch not in ("error", "skip"):
            raise ValidationError(
                f"Unsupported unsupported_arch value: {self.unsupported_arch}",
                hint="Use 'error' or 'skip'.",
            )
        object.__setattr__(self, "workspace", Path(self.workspace).resolve())
        if self.artifact_dir is not None:
            object.__setattr__(self, "artifact_dir", Path(self.artifact_dir).resolve())

    @property
    def artifacts_path(self) -> Path:
        return self.artifact_dir if self.artifact_dir is not None else self.workspace / "artifact"

    @property
    def checkout_path(self) -> Path:
        return self.workspace / self.checkout_name

    @property
    def toolchain_path(self) -> Path:
        return self.workspace / self.toolchain_name

    @classmethod
    def from_env(
        cls,
        match: str,
        *,
        environ: Mapping[str, str] | None = None,
        workspace: str | Path | None = None,
        **overrides: object,
    ) -> PipelineConfig:
        """Build a config from ``RELEASE_TAG`` plus explicit overrides."""
        env = os.environ if environ is None else environ
        release_tag = overrides.pop("release_tag", None) or env.get(RELEASE_TAG_ENV, "")
        base = cls(
            release_tag=str(release_tag),
            match=match,
            workspace=Path(workspace) if workspace is not None else Path.cwd(),
        )
        overrides = {key: value for key, value in overrides.items() if value is not None}
        return replace(base, **overrides) if overrides else base  # type: ignore[arg-type]
