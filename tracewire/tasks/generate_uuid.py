"""Generates the ProGuard UUID asset bundled into every distributable."""

from __future__ import annotations

import shutil
import uuid
from pathlib import Path

from tracewire.graph import Task
from tracewire.logging import get_logger

logger = get_logger("tracewire.tasks")

SENTRY_UUID_FILE = "sentry-debug-meta.properties"
SENTRY_UUID_KEY = "io.sentry.ProguardUuids"


def read_uuid(directory: Path) -> str:
    """Return the UUID written by :class:`GenerateProguardUuidTask` into *directory*."""
    props = directory / SENTRY_UUID_FILE
    for line in props.read_text(encoding="utf-8").splitlines():
        key, sep, value = line.partition("=")
        if sep and key.strip() == SENTRY_UUID_KEY:
            return value.strip()
    raise ValueError(f"{props} has no {SENTRY_UUID_KEY} entry")


class GenerateProguardUuidTask(Task):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.output_directory: Path | None = None

    @property
    def output_file(self) -> Path:
        if self.output_directory is None:
            raise ValueError(f"{self.name}: output_directory is not set")
        return self.output_directory / SENTRY_UUID_FILE

    def execute(self) -> None:
        out = self.output_file
        if out.parent.exists():
            shutil.rmtree(out.parent)
        out.parent.mkdir(parents=True, exist_ok=True)
        value = uuid.uuid4()
        out.write_text(f"{SENTRY_UUID_KEY}={value}\n", encoding="utf-8")
        logger.info("Generated ProGuard UUID %s", value)
