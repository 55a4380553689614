"""Downstream build trigger for the checked-out platform."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from stagepipe.errors import ValidationError
from stagepipe.process import CommandRunner, SubprocessRunner, run_checked


@dataclass(slots=True)
class BuildTrigger:
    bootstrap_script: str = "jump-start.sh"
    build_file: str = "build.roc"
    tool: str = "roc"
    capture: bool = False

    def commands(self) -> tuple[tuple[str, ...], ...]:
        return (
            (f"./{self.bootstrap_script}",),
            (self.tool, self.build_file, "--prebuilt-platform"),
        )

    def run(
        self,
        checkout: str | Path,
        *,
        runner: CommandRunner | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Run the bootstrap script, then the prebuilt-platform build; stop at the first failure."""
        root = Path(checkout)
        if not (root / self.bootstrap_script).is_file():
            raise ValidationError(
                "Bootstrap script is missing from the checkout.",
                context={"operation": "build", "path": str(root / self.bootstrap_script)},
            )
        runner = runner or SubprocessRunner()
        for command in self.commands():
            run_checked(
                runner,
                command,
                operation="build",
                cwd=root,
                env=env,
                capture=self.capture,
                hint="See the build output above for the failing step.",
            )
