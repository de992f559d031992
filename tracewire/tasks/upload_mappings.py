"""Uploads the ProGuard/R8 mapping file, tagged with the generated UUID."""

from __future__ import annotations

from pathlib import Path

from tracewire.tasks.base import SentryCliTask
from tracewire.tasks.generate_uuid import read_uuid


class UploadProguardMappingsTask(SentryCliTask):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.uuid_directory: Path | None = None
        self.mapping_files: list[Path] = []
        self.auto_upload_proguard_mapping: bool = True

    def mapping_file(self) -> Path:
        for candidate in self.mapping_files:
            if candidate.is_file():
                return candidate
        raise FileNotFoundError(
            f"{self.name}: none of the mapping files exist: "
            + ", ".join(str(p) for p in self.mapping_files)
        )

    def compute_command_line(self) -> list[str]:
        if self.uuid_directory is None:
            raise ValueError(f"{self.name}: uuid_directory is not set")
        args = [
            self.cli_executable,
            "upload-proguard",
            "--uuid",
            read_uuid(self.uuid_directory),
            str(self.mapping_file()),
        ]
        if not self.auto_upload_proguard_mapping:
            args.append("--no-upload")
        return args + self._org_and_project_args()
