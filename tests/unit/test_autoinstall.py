from __future__ import annotations

from tracewire.autoinstall import install_dependencies
from tracewire.core import apply
from tracewire.detect.base import SdkStateHolder, SdkStateKind
from tracewire.types import (
    SENTRY_SDK_VERSION,
    AutoInstallationConfig,
    PluginConfig,
    ResolvedModule,
)

OKHTTP = ResolvedModule(group="com.squareup.okhttp3", name="okhttp", version="4.9.3")
SENTRY_CORE_3_2 = ResolvedModule(group="io.sentry", name="sentry-android-core", version="3.2.0")


def _resolved(project, configuration_name: str) -> list[ResolvedModule]:
    seen: list[ResolvedModule] = []
    project.configurations[configuration_name].on_resolution_complete(seen.extend)
    return seen


def test_sdk_is_added_when_not_declared(make_project, release_variant) -> None:
    project = make_project()
    apply(project, PluginConfig(), cli_executable="sentry-cli")
    project.add_variant(release_variant)
    project.configurations["releaseRuntimeClasspath"].resolve([OKHTTP])

    modules = _resolved(project, "releaseRuntimeClasspath")
    assert [m.coordinate for m in modules] == [
        "com.squareup.okhttp3:okhttp",
        "io.sentry:sentry-android",
    ]
    assert modules[-1].version == SENTRY_SDK_VERSION == "5.7.0"

    state = SdkStateHolder.register(project).get(timeout=1)
    assert state.kind is SdkStateKind.PRESENT
    assert state.version == SENTRY_SDK_VERSION


def test_declared_sdk_is_left_alone(make_project, release_variant) -> None:
    project = make_project()
    apply(project, PluginConfig(), cli_executable="sentry-cli")
    project.add_variant(release_variant)
    project.configurations["releaseRuntimeClasspath"].resolve([SENTRY_CORE_3_2])

    assert _resolved(project, "releaseRuntimeClasspath") == [SENTRY_CORE_3_2]
    assert SdkStateHolder.register(project).get(timeout=1).version == "3.2.0"


def test_disabled_auto_installation(make_project, release_variant) -> None:
    config = PluginConfig(auto_installation=AutoInstallationConfig(enabled=False))
    project = make_project()
    apply(project, config, cli_executable="sentry-cli")
    project.add_variant(release_variant)
    project.configurations["releaseRuntimeClasspath"].resolve([OKHTTP])

    assert _resolved(project, "releaseRuntimeClasspath") == [OKHTTP]
    assert SdkStateHolder.register(project).get(timeout=1).kind is SdkStateKind.NOT_PRESENT


def test_configured_version_and_missing_configuration(make_project, release_variant) -> None:
    config = PluginConfig(auto_installation=AutoInstallationConfig(sentry_version="6.0.0"))
    project = make_project()
    assert install_dependencies(project, "releaseRuntimeClasspath", config) is False

    component = project.add_variant(release_variant)
    conf_name = component.runtime_configuration_name
    assert install_dependencies(project, conf_name, config) is True
    project.configurations[conf_name].resolve([])
    assert [m.version for m in _resolved(project, conf_name)] == ["6.0.0"]
