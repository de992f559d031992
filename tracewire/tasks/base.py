"""Common plumbing for tasks that shell out to ``sentry-cli``."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from tracewire.graph import Task
from tracewire.logging import get_logger
from tracewire.providers import find_properties_file

logger = get_logger("tracewire.tasks")


class SentryCliTask(Task):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.cli_executable: str = "sentry-cli"
        self.working_dir: Path | None = None
        self.sentry_properties_candidates: list[Path] = []
        self.sentry_organization: str | None = None
        self.sentry_project: str | None = None

    def compute_command_line(self) -> list[str]:
        raise NotImplementedError

    def _org_and_project_args(self) -> list[str]:
        args: list[str] = []
        if self.sentry_organization:
            args += ["--org", self.sentry_organization]
        if self.sentry_project:
            args += ["--project", self.sentry_project]
        return args

    def environment(self) -> dict[str, str]:
        env = os.environ.copy()
        properties = find_properties_file(self.sentry_properties_candidates)
        if properties is not None:
            env["SENTRY_PROPERTIES"] = str(properties)
        else:
            logger.info("propsFile is null")
        return env

    def execute(self) -> None:
        args = self.compute_command_line()
        logger.info("cli args: %s", args)
        subprocess.run(args, cwd=self.working_dir, env=self.environment(), check=True)
