"""Structured logging and run report helpers."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import cbor2

from stagepipe.models import PipelineResult

LogSink = Callable[[dict[str, Any]], None]


@dataclass(slots=True)
class StructuredLogger:
    records: list[dict[str, Any]] = field(default_factory=list)
    sink: LogSink | None = None

    def log(
        self,
        *,
        operation: str,
        step: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "step": step,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)
        if self.sink is not None:
            self.sink(record)

    def records_for_step(self, step: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("step") == step]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path


def format_record(record: dict[str, Any]) -> str:
    """Render a record as a single ``+ step: message`` trace line."""
    prefix = "+" if record.get("operation") == "exec" else "-"
    step = record.get("step") or "pipeline"
    line = f"{prefix} [{step}] {record['message']}"
    if record.get("level") not in (None, "info"):
        line = f"{line} ({record['level']})"
    return line


@dataclass(frozen=True, slots=True)
class PipelineReport:
    release_tag: str
    match: str
    result: PipelineResult
    schema_version: int = 1

    def to_json(self, path: str | Path | None = None) -> str:
        encoded = json.dumps(self._payload(), indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        encoded = cbor2.dumps(self._payload(), canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    def _payload(self) -> dict[str, object]:
        result = self.result
        payload: dict[str, object] = {
            "schema_version": self.schema_version,
            "release_tag": self.release_tag,
            "match": self.match,
            "ok": result.ok,
            "steps": [
                {
                    "name": step.name,
                    "ok": step.ok,
                    "duration_s": round(step.duration_s, 3),
                    "detail": step.detail,
                }
                for step in result.steps
            ],
        }
        if result.checkout is not None:
            payload["checkout"] = {
                "path": str(result.checkout.path),
                "tag": result.checkout.tag,
                "commit": result.checkout.commit,
            }
        if result.provision is not None:
            payload["provision"] = {
                "system": result.provision.host.system,
                "machine": result.provision.host.machine,
                "package_installed": result.provision.package_installed,
                "target_triple": result.provision.target_triple,
            }
        if result.toolchain is not None:
            payload["toolchain"] = {
                "root": str(result.toolchain.root),
                "archive": result.toolchain.archive_name,
                "version": result.toolchain.version,
            }
        payload["patched"] = {
            str(item.path): item.replacements for item in result.patched
        }
        return payload
