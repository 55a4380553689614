"""Command-line entry point for the staging pipeline.

Usage:
    RELEASE_TAG=0.0.1 stagepipe linux_x86_64
    RELEASE_TAG=0.0.1 stagepipe linux_arm64 --workspace ci --report report.json
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from stagepipe.config import DEFAULT_REPO_URL, RELEASE_TAG_ENV, PipelineConfig
from stagepipe.errors import StagingError, ValidationError
from stagepipe.observability import PipelineReport, StructuredLogger, format_record
from stagepipe.pipeline import Pipeline, run_pipeline

EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stagepipe",
        description="Stage a nightly compiler build and build basic-cli against it.",
    )
    parser.add_argument("match", help="Substring selecting the nightly archive, e.g. linux_x86_64")
    parser.add_argument(
        "--tag",
        default=None,
        help=f"Release tag to check out (default: ${RELEASE_TAG_ENV})",
    )
    parser.add_argument("--workspace", type=Path, default=Path.cwd(), help="Working directory")
    parser.add_argument(
        "--artifact-dir",
        type=Path,
        default=None,
        help="Directory holding nightly archives (default: <workspace>/artifact)",
    )
    parser.add_argument("--repo", default=DEFAULT_REPO_URL, help="Repository to clone")
    parser.add_argument(
        "--unsupported-arch",
        choices=("error", "skip"),
        default="error",
        help="What to do when no musl target exists for this CPU",
    )
    parser.add_argument("--install-timeout", type=float, default=300.0, help="Seconds for apt")
    parser.add_argument("--report", type=Path, default=None, help="Write a JSON run report")
    parser.add_argument("--log-file", type=Path, default=None, help="Write JSON-lines logs")
    parser.add_argument("--quiet", action="store_true", help="Do not echo logs to stderr")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = PipelineConfig.from_env(
            args.match,
            workspace=args.workspace,
            release_tag=args.tag,
            repo_url=args.repo,
            artifact_dir=args.artifact_dir,
            unsupported_arch=args.unsupported_arch,
            install_timeout=args.install_timeout,
        )
    except ValidationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    logger = StructuredLogger(sink=None if args.quiet else _echo)
    pipeline = Pipeline(logger=logger)
    exit_code = 0
    try:
        run_pipeline(config, pipeline=pipeline)
    except StagingError as exc:
        print(f"error: {exc}", file=sys.stderr)
        exit_code = exc.exit_status or EXIT_FAILURE
    finally:
        if args.report is not None:
            report = PipelineReport(
                release_tag=config.release_tag,
                match=config.match,
                result=pipeline.result,
            )
            report.to_json(args.report)
        if args.log_file is not None:
            logger.to_json_lines(args.log_file)
    return exit_code


def _echo(record: dict[str, Any]) -> None:
    print(format_record(record), file=sys.stderr, flush=True)
