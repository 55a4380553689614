"""Sequential composition of staging steps with abort-on-first-failure."""

from __future__ import annotations

import os
import time
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field, replace
from typing import TypeVar

from stagepipe.artifacts import stage_toolchain
from stagepipe.build import BuildTrigger
from stagepipe.config import PipelineConfig
from stagepipe.env import prepend_search_path, verify_toolchain
from stagepipe.errors import StagingError
from stagepipe.fetch.git import checkout_tag
from stagepipe.models import HostPlatform, PipelineResult, StepResult
from stagepipe.observability import StructuredLogger
from stagepipe.patch import patch_build_descriptors
from stagepipe.platforms import DEFAULT_MUSL_TARGET, detect_host, musl_target_for
from stagepipe.process import CommandRunner, SubprocessRunner
from stagepipe.provision import provision_platform

T = TypeVar("T")


@dataclass(slots=True)
class Pipeline:
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    result: PipelineResult = field(default_factory=PipelineResult)

    def step(
        self,
        name: str,
        action: Callable[[], T],
        *,
        detail: Callable[[T], str] | None = None,
    ) -> T:
        """Run *action* as step *name*; a failure is recorded and re-raised."""
        self.logger.log(operation="step", step=name, message="started")
        started = time.monotonic()
        try:
            value = action()
        except Exception as exc:
            elapsed = time.monotonic() - started
            if isinstance(exc, StagingError):
                code, extra = exc.code, exc.to_dict()
            else:
                code, extra = type(exc).__name__, {"error": str(exc)}
            self.result.steps.append(
                StepResult(name=name, ok=False, duration_s=elapsed, detail=code)
            )
            self.logger.log(
                operation="step",
                step=name,
                message=(str(exc).splitlines() or [code])[0],
                level="error",
                extra=extra,
            )
            raise
        elapsed = time.monotonic() - started
        text = detail(value) if detail is not None else ""
        self.result.steps.append(StepResult(name=name, ok=True, duration_s=elapsed, detail=text))
        self.logger.log(
            operation="step",
            step=name,
            message=f"finished in {elapsed:.2f}s",
            extra={"detail": text} if text else None,
        )
        return value


def run_pipeline(
    config: PipelineConfig,
    *,
    runner: CommandRunner | None = None,
    host: HostPlatform | None = None,
    environ: MutableMapping[str, str] | None = None,
    trigger: BuildTrigger | None = None,
    pipeline: Pipeline | None = None,
) -> PipelineResult:
    """Check out, provision, stage, export, verify, patch, and build, in that order.

    Pass *pipeline* to keep access to the partial result when a step raises.
    """
    pipeline = pipeline or Pipeline()
    logger = pipeline.logger
    runner = runner or SubprocessRunner(logger=logger)
    host = host or detect_host()
    env = os.environ if environ is None else environ
    trigger = trigger or BuildTrigger()
    result = pipeline.result

    result.checkout = pipeline.step(
        "checkout",
        lambda: checkout_tag(
            config.repo_url,
            tag=config.release_tag,
            dest=config.checkout_path,
            runner=runner,
        ),
        detail=lambda checkout: f"{checkout.tag} at {checkout.commit[:12]}",
    )
    checkout_path = result.checkout.path

    result.provision = pipeline.step(
        "provision",
        lambda: provision_platform(
            host,
            runner=runner,
            package=config.system_package,
            timeout=config.install_timeout,
            platform_dir=checkout_path / "platform",
            unsupported_arch=config.unsupported_arch,
            logger=logger,
        ),
        detail=lambda provision: provision.target_triple or "",
    )

    toolchain = pipeline.step(
        "stage_toolchain",
        lambda: stage_toolchain(
            config.artifacts_path,
            config.match,
            config.workspace,
            name=config.toolchain_name,
        ),
        detail=lambda staged: staged.archive_name,
    )
    result.toolchain = toolchain

    pipeline.step("export_path", lambda: prepend_search_path(toolchain.root, env))

    version = pipeline.step(
        "verify_toolchain",
        lambda: verify_toolchain(toolchain.executable, runner=runner, env=env),
        detail=lambda text: text,
    )
    result.toolchain = replace(toolchain, version=version)

    triple = (
        result.provision.target_triple
        or musl_target_for(host.arch)
        or DEFAULT_MUSL_TARGET
    )
    result.patched = pipeline.step(
        "patch",
        lambda: patch_build_descriptors(
            checkout_path,
            triple,
            files=config.descriptor_files,
            fragment=config.output_fragment,
        ),
        detail=lambda patched: ", ".join(
            f"{item.path.name}:{item.replacements}" for item in patched
        ),
    )

    pipeline.step("build", lambda: trigger.run(checkout_path, runner=runner, env=env))
    return result
