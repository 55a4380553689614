import os
import sys
from pathlib import Path

import pytest
from helpers import FakeRunner

from stagepipe.errors import CheckoutError, StepExecutionError
from stagepipe.observability import StructuredLogger
from stagepipe.process import TIMEOUT_RETURNCODE, SubprocessRunner, run_checked


def test_subprocess_runner_captures_output(tmp_path: Path) -> None:
    runner = SubprocessRunner()

    result = runner.run(
        [sys.executable, "-c", "import os; print(os.getcwd())"],
        cwd=tmp_path,
    )

    assert result.ok
    assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()


def test_subprocess_runner_passes_environment() -> None:
    runner = SubprocessRunner()

    result = runner.run(
        [sys.executable, "-c", "import os; print(os.environ['STAGE_FLAG'])"],
        env={**os.environ, "STAGE_FLAG": "on"},
    )

    assert result.stdout.strip() == "on"


def test_subprocess_runner_reports_timeout() -> None:
    runner = SubprocessRunner()

    result = runner.run([sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.2)

    assert result.timed_out
    assert result.returncode == TIMEOUT_RETURNCODE


def test_subprocess_runner_reports_missing_program() -> None:
    result = SubprocessRunner().run(["definitely-not-a-real-program-4242"])

    assert result.returncode == 127
    assert "command not found" in result.stderr


def test_subprocess_runner_logs_each_command(tmp_path: Path) -> None:
    logger = StructuredLogger()
    runner = SubprocessRunner(logger=logger)

    runner.run([sys.executable, "-c", "pass"], cwd=tmp_path, step="build")

    assert len(logger.records) == 1
    record = logger.records[0]
    assert record["operation"] == "exec"
    assert record["step"] == "build"
    assert record["extra"] == {"cwd": str(tmp_path)}


def test_run_checked_raises_step_error_with_returncode() -> None:
    with pytest.raises(StepExecutionError) as excinfo:
        run_checked(
            SubprocessRunner(),
            [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"],
            operation="build",
        )

    assert excinfo.value.returncode == 3
    assert excinfo.value.context["stderr"] == "boom"
    assert excinfo.value.context["operation"] == "build"


def test_run_checked_uses_requested_error_type(fake_runner: FakeRunner) -> None:
    fake_runner.respond("git", "clone", returncode=128, stderr="repository not found")
    fake_runner.passthrough = ()

    with pytest.raises(CheckoutError) as excinfo:
        run_checked(
            fake_runner,
            ["git", "clone", "https://example.invalid/repo.git"],
            operation="checkout",
            error=CheckoutError,
            message="Git command failed.",
        )

    assert str(excinfo.value).startswith("Git command failed.")
    assert excinfo.value.context["returncode"] == "128"
    assert excinfo.value.returncode == 128


def test_run_checked_mentions_timeout(fake_runner: FakeRunner) -> None:
    fake_runner.respond("apt-get", returncode=TIMEOUT_RETURNCODE, timed_out=True)

    with pytest.raises(StepExecutionError) as excinfo:
        run_checked(
            fake_runner,
            ["apt-get", "install", "-y", "musl-tools"],
            operation="provision",
            timeout=5,
        )

    assert "timed out" in str(excinfo.value)
    assert excinfo.value.context["timeout_s"] == "5"
