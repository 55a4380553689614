"""Typed records passed between pipeline steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

Arch = Literal["x86_64", "aarch64"]
SelectionStatus = Literal["matched", "no_match", "ambiguous"]
UnsupportedArchPolicy = Literal["error", "skip"]

_ARCH_ALIASES: dict[str, Arch] = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}


@dataclass(frozen=True, slots=True)
class HostPlatform:
    """Operating system and CPU as reported by ``uname -s`` / ``uname -m``."""

    system: str
    machine: str

    @property
    def is_linux(self) -> bool:
        return self.system.lower() == "linux"

    @property
    def arch(self) -> Arch | None:
        return _ARCH_ALIASES.get(self.machine.lower())


@dataclass(frozen=True, slots=True)
class CheckoutResult:
    path: Path
    tag: str
    commit: str


@dataclass(frozen=True, slots=True)
class ProvisionResult:
    host: HostPlatform
    package_installed: bool = False
    package_already_present: bool = False
    target_triple: str | None = None


@dataclass(frozen=True, slots=True)
class StagedToolchain:
    root: Path
    archive_name: str
    version: str | None = None

    @property
    def executable(self) -> Path:
        return self.root / "roc"


@dataclass(frozen=True, slots=True)
class PatchResult:
    path: Path
    replacements: int


@dataclass(frozen=True, slots=True)
class StepResult:
    name: str
    ok: bool
    duration_s: float
    detail: str = ""


@dataclass(slots=True)
class PipelineResult:
    steps: list[StepResult] = field(default_factory=list)
    checkout: CheckoutResult | None = None
    provision: ProvisionResult | None = None
    toolchain: StagedToolchain | None = None
    patched: tuple[PatchResult, ...] = ()

    @property
    def ok(self) -> bool:
        return bool(self.steps) and all(step.ok for step in self.steps)

    def step(self, name: str) -> StepResult | None:
        for item in self.steps:
            if item.name == name:
                return item
        return None


__all__ = [
    "Arch",
    "CheckoutResult",
    "HostPlatform",
    "PatchResult",
    "PipelineResult",
    "ProvisionResult",
    "SelectionStatus",
    "StagedToolchain",
    "StepResult",
    "UnsupportedArchPolicy",
]
