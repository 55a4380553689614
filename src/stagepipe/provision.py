"""Linux build prerequisites: the musl system package and rustup cross-target.

Every operation here is a no-op on non-Linux hosts. Package installation goes
through ``sudo`` unless the process already runs as root, and is bounded by a
timeout because CI runners occasionally hang on a sudo prompt.
"""

from __future__ import annotations

import os
from pathlib import Path

from stagepipe.errors import ProvisionError
from stagepipe.models import HostPlatform, ProvisionResult, UnsupportedArchPolicy
from stagepipe.observability import StructuredLogger
from stagepipe.platforms import musl_target_for
from stagepipe.process import CommandRunner, run_checked

_OPERATION = "provision"


def is_package_installed(package: str, *, runner: CommandRunner) -> bool:
    result = runner.run(["dpkg", "-s", package], step=_OPERATION)
    return result.ok and "Status: install ok installed" in result.stdout


def ensure_system_package(
    package: str,
    *,
    runner: CommandRunner,
    timeout: float = 300.0,
) -> bool:
    """Install *package* with apt when dpkg does not report it. Returns True if installed."""
    if is_package_installed(package, runner=runner):
        return False
    argv = ["apt-get", "install", "-y", package]
    if _needs_sudo():
        argv.insert(0, "sudo")
    run_checked(
        runner,
        argv,
        operation=_OPERATION,
        timeout=timeout,
        error=ProvisionError,
        message=f"Failed to install system package `{package}`.",
        hint="Check apt sources and sudo permissions on the runner.",
    )
    return True


def register_cross_target(
    triple: str,
    *,
    runner: CommandRunner,
    cwd: Path,
) -> None:
    """Run ``rustup target add`` from *cwd* so its pinned toolchain gets the target."""
    run_checked(
        runner,
        ["rustup", "target", "add", triple],
        operation=_OPERATION,
        cwd=cwd,
        error=ProvisionError,
        message=f"Failed to register rust target `{triple}`.",
        hint="Ensure rustup is installed and the toolchain in rust-toolchain.toml is available.",
    )


def provision_platform(
    host: HostPlatform,
    *,
    runner: CommandRunner,
    package: str = "musl-tools",
    timeout: float = 300.0,
    platform_dir: Path,
    unsupported_arch: UnsupportedArchPolicy = "error",
    logger: StructuredLogger | None = None,
) -> ProvisionResult:
    if not host.is_linux:
        _log(logger, f"skipping prerequisites on {host.system}")
        return ProvisionResult(host=host)

    triple = musl_target_for(host.arch)
    if triple is not None and not platform_dir.is_dir():
        raise ProvisionError(
            "Platform directory is missing from the checkout.",
            hint="The rust target must be added from the directory holding rust-toolchain.toml.",
            context={"operation": _OPERATION, "path": str(platform_dir)},
        )

    installed = ensure_system_package(package, runner=runner, timeout=timeout)
    if not installed:
        _log(logger, f"{package} already installed")

    if triple is None:
        if unsupported_arch == "error":
            raise ProvisionError(
                "No musl cross-target is known for this CPU architecture.",
                hint="Run on x86_64 or aarch64, or pass --unsupported-arch=skip.",
                context={"operation": _OPERATION, "machine": host.machine},
            )
        _log(logger, f"no musl target for {host.machine}; skipping", level="warning")
    else:
        register_cross_target(triple, runner=runner, cwd=platform_dir)

    return ProvisionResult(
        host=host,
        package_installed=installed,
        package_already_present=not installed,
        target_triple=triple,
    )


def _needs_sudo() -> bool:
    return os.getuid() != 0


def _log(logger: StructuredLogger | None, message: str, *, level: str = "info") -> None:
    if logger is not None:
        logger.log(operation=_OPERATION, step=_OPERATION, message=message, level=level)
