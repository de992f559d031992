"""Adds the Sentry Android SDK to a runtime classpath that does not declare one."""

from __future__ import annotations

from tracewire.detect.sentry_sdk import SDK_COORDINATES
from tracewire.host import Project
from tracewire.logging import get_logger
from tracewire.types import PluginConfig, ResolvedModule

logger = get_logger("tracewire.autoinstall")

SENTRY_ANDROID_GROUP = "io.sentry"
SENTRY_ANDROID_NAME = "sentry-android"


def install_dependencies(project: Project, configuration_name: str, config: PluginConfig) -> bool:
    """Queue the SDK addition on *configuration_name*; returns False when skipped."""
    auto = config.auto_installation
    if not auto.enabled:
        return False
    configuration = project.configuration(configuration_name)
    if configuration is None:
        logger.warning(
            "Unable to find configuration %s, not installing the Sentry SDK", configuration_name
        )
        return False

    def _install(declared: list[ResolvedModule]) -> None:
        if any(m.coordinate in SDK_COORDINATES for m in declared):
            return
        declared.append(
            ResolvedModule(
                group=SENTRY_ANDROID_GROUP, name=SENTRY_ANDROID_NAME, version=auto.sentry_version
            )
        )
        logger.info(
            "%s:%s:%s was added to %s",
            SENTRY_ANDROID_GROUP,
            SENTRY_ANDROID_NAME,
            auto.sentry_version,
            configuration_name,
        )

    configuration.with_dependencies(_install)
    return True
