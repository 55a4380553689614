"""Public package entrypoint for the nightly toolchain staging pipeline."""

from .artifacts import ArtifactSelection, find_artifact, stage_toolchain, unpack_artifact
from .build import BuildTrigger
from .config import PipelineConfig
from .env import prepend_search_path, verify_toolchain
from .errors import (
    ArtifactSelectionError,
    CheckoutError,
    ErrorCode,
    ProvisionError,
    StagingError,
    StepExecutionError,
    ValidationError,
)
from .fetch import checkout_tag
from .models import (
    CheckoutResult,
    HostPlatform,
    PatchResult,
    PipelineResult,
    ProvisionResult,
    StagedToolchain,
    StepResult,
)
from .observability import PipelineReport, StructuredLogger
from .patch import patch_build_descriptors, substitute_literal
from .pipeline import Pipeline, run_pipeline
from .provision import provision_platform

__all__ = [
    "ArtifactSelection",
    "ArtifactSelectionError",
    "BuildTrigger",
    "CheckoutError",
    "CheckoutResult",
    "ErrorCode",
    "HostPlatform",
    "PatchResult",
    "Pipeline",
    "PipelineConfig",
    "PipelineReport",
    "PipelineResult",
    "ProvisionError",
    "ProvisionResult",
    "StagedToolchain",
    "StagingError",
    "StepExecutionError",
    "StepResult",
    "StructuredLogger",
    "ValidationError",
    "checkout_tag",
    "find_artifact",
    "patch_build_descriptors",
    "prepend_search_path",
    "provision_platform",
    "run_pipeline",
    "stage_toolchain",
    "substitute_literal",
    "unpack_artifact",
    "verify_toolchain",
]
