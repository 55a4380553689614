"""Typed pipeline error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used by the pipeline and the CLI."""

    VALIDATION = "E_VALIDATION"
    ARTIFACT = "E_ARTIFACT"
    CHECKOUT = "E_CHECKOUT"
    PROVISION = "E_PROVISION"
    STEP_EXECUTION = "E_STEP_EXECUTION"


class StagingError(Exception):
    """Base error class that carries code, optional hint, and context.

    ``returncode`` is set when the failure comes from an external command, so
    the CLI can exit with the same status that command did.
    """

    code: str
    hint: str | None
    context: Mapping[str, str]
    returncode: int | None

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
        returncode: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})
        self.returncode = returncode

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        for key, value in self.context.items():
            if value:
                parts.append(f"  {key}: {value}")
        return "\n".join(parts)

    @property
    def exit_status(self) -> int | None:
        """Shell-style status: negative (signal) return codes become ``128 + signal``."""
        if self.returncode is None:
            return None
        if self.returncode < 0:
            return 128 - self.returncode
        return self.returncode

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        if self.returncode is not None:
            payload["returncode"] = self.returncode
        return payload


class ValidationError(StagingError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
        returncode: int | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.VALIDATION, hint=hint, context=context, returncode=returncode
        )


class ArtifactSelectionError(StagingError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
        returncode: int | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.ARTIFACT, hint=hint, context=context, returncode=returncode
        )


class CheckoutError(StagingError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
        returncode: int | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.CHECKOUT, hint=hint, context=context, returncode=returncode
        )


class ProvisionError(StagingError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
        returncode: int | None = None,
    ) -> None:
        super().__init__(
            message, code=ErrorCode.PROVISION, hint=hint, context=context, returncode=returncode
        )


class StepExecutionError(StagingError):
    """Raised when a downstream build command exits non-zero or times out."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.STEP_EXECUTION,
            hint=hint,
            context=context,
            returncode=returncode,
        )


__all__ = [
    "ArtifactSelectionError",
    "CheckoutError",
    "ErrorCode",
    "ProvisionError",
    "StagingError",
    "StepExecutionError",
    "ValidationError",
]
