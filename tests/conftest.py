"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from helpers import FakeRunner, run_git


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def basic_cli_repo(tmp_path: Path) -> Path:
    """A local stand-in for basic-cli with a `release-1.2.3` tag."""
    repo = tmp_path / "upstream" / "basic-cli"
    repo.mkdir(parents=True)
    run_git(["init"], cwd=repo)
    run_git(["checkout", "-b", "main"], cwd=repo)
    run_git(["config", "user.email", "ci@example.com"], cwd=repo)
    run_git(["config", "user.name", "CI Test"], cwd=repo)

    (repo / "platform").mkdir()
    (repo / "platform" / "rust-toolchain.toml").write_text(
        '[toolchain]\nchannel = "1.77.2"\n', encoding="utf-8"
    )
    (repo / "jump-start.sh").write_text(
        "#!/usr/bin/env bash\ncp target/release/host platform/host\n", encoding="utf-8"
    )
    (repo / "build.roc").write_text(
        'app [main] {}\n\nmain = copy "target/release/libhost.a"\n', encoding="utf-8"
    )
    run_git(["add", "."], cwd=repo)
    run_git(["commit", "-m", "release"], cwd=repo)
    run_git(["tag", "release-1.2.3"], cwd=repo)

    (repo / "build.roc").write_text("app [main] {}\n\nmain = unreleased\n", encoding="utf-8")
    run_git(["commit", "-am", "after release"], cwd=repo)
    return repo
