"""Host detection and musl cross-target selection."""

from __future__ import annotations

import platform

from stagepipe.models import Arch, HostPlatform

MUSL_TARGETS: dict[Arch, str] = {
    "x86_64": "x86_64-unknown-linux-musl",
    "aarch64": "aarch64-unknown-linux-musl",
}
DEFAULT_MUSL_TARGET = MUSL_TARGETS["x86_64"]


def detect_host() -> HostPlatform:
    return HostPlatform(system=platform.system(), machine=platform.machine())


def musl_target_for(arch: Arch | None) -> str | None:
    if arch is None:
        return None
    return MUSL_TARGETS.get(arch)
