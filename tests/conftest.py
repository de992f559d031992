from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from tracewire.host import ANDROID_APPLICATION_PLUGIN, Build, Project
from tracewire.types import BuildType, BuildVariant
from tracewire.versions import parse_version

DEBUG = BuildVariant(name="debug", build_type=BuildType(name="debug", debuggable=True))
RELEASE = BuildVariant(
    name="release", build_type=BuildType(name="release", minify_enabled=True)
)


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Project]:
    """Factory for an Android application project rooted in *tmp_path*."""

    def _make(agp: str = "7.2.0", name: str = "app", plugins: tuple[str, ...] = ()) -> Project:
        project = Project(name, tmp_path / name, Build(parse_version(agp)), root_dir=tmp_path)
        project.apply_plugin(ANDROID_APPLICATION_PLUGIN)
        for plugin_id in plugins:
            project.apply_plugin(plugin_id)
        return project

    return _make


@pytest.fixture
def debug_variant() -> BuildVariant:
    return DEBUG


@pytest.fixture
def release_variant() -> BuildVariant:
    return RELEASE
