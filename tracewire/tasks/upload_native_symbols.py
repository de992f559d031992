"""Uploads native debug symbols of non-debuggable variants."""

from __future__ import annotations

from pathlib import Path

from tracewire.tasks.base import SentryCliTask


class UploadNativeSymbolsTask(SentryCliTask):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.build_dir: Path | None = None
        self.variant_name: str | None = None
        self.auto_upload_native_symbol: bool = True
        self.include_native_sources: bool = False

    def symbols_dir(self) -> Path:
        if self.build_dir is None or self.variant_name is None:
            raise ValueError(f"{self.name}: build_dir and variant_name must be set")
        return self.build_dir / "intermediates" / "merged_native_libs" / self.variant_name

    def compute_command_line(self) -> list[str]:
        args = [self.cli_executable, "upload-dif"]
        if not self.auto_upload_native_symbol:
            args.append("--no-upload")
        if self.include_native_sources:
            args.append("--include-sources")
        args.append(str(self.symbols_dir()))
        return args + self._org_and_project_args()
