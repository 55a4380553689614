from pathlib import Path

import pytest
from helpers import FakeRunner

from stagepipe.build import BuildTrigger
from stagepipe.errors import StepExecutionError, ValidationError


def _checkout(tmp_path: Path) -> Path:
    root = tmp_path / "basic-cli"
    root.mkdir()
    (root / "jump-start.sh").write_text("#!/usr/bin/env bash\n", encoding="utf-8")
    (root / "build.roc").write_text("app [main] {}\n", encoding="utf-8")
    return root


def test_build_runs_bootstrap_then_prebuilt_platform_build(
    tmp_path: Path,
    fake_runner: FakeRunner,
) -> None:
    root = _checkout(tmp_path)

    BuildTrigger().run(root, runner=fake_runner, env={"PATH": "/staged:/usr/bin"})

    assert fake_runner.commands() == [
        ("./jump-start.sh",),
        ("roc", "build.roc", "--prebuilt-platform"),
    ]
    assert all(call.cwd == root for call in fake_runner.calls)
    assert all(call.env == {"PATH": "/staged:/usr/bin"} for call in fake_runner.calls)


def test_bootstrap_failure_stops_before_build(tmp_path: Path, fake_runner: FakeRunner) -> None:
    root = _checkout(tmp_path)
    fake_runner.respond("jump-start.sh", returncode=2)

    with pytest.raises(StepExecutionError) as excinfo:
        BuildTrigger().run(root, runner=fake_runner)

    assert excinfo.value.returncode == 2
    assert fake_runner.commands("roc") == []


def test_build_failure_propagates_returncode(tmp_path: Path, fake_runner: FakeRunner) -> None:
    root = _checkout(tmp_path)
    fake_runner.respond("roc", "build.roc", returncode=5)

    with pytest.raises(StepExecutionError) as excinfo:
        BuildTrigger().run(root, runner=fake_runner)

    assert excinfo.value.returncode == 5
    assert "--prebuilt-platform" in excinfo.value.context["command"]


def test_missing_bootstrap_script_is_rejected(tmp_path: Path, fake_runner: FakeRunner) -> None:
    with pytest.raises(ValidationError):
        BuildTrigger().run(tmp_path, runner=fake_runner)

    assert fake_runner.calls == []
