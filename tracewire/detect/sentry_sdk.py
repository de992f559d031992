"""Sentry Android SDK detector.

Heuristics:
- Walk the resolved modules of a runtime classpath in resolution order.
- The first module matching a known SDK coordinate decides the state.
- Performance monitoring (spans) ships from 4.0.0 onwards.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from tracewire.detect.base import SdkState, SdkStateHolder
from tracewire.logging import get_logger, info
from tracewire.types import ResolvedModule
from tracewire.versions import Version, is_at_least, parse_version

if TYPE_CHECKING:
    from tracewire.host import Project

logger = get_logger("tracewire.detect")

SDK_COORDINATES = (
    "io.sentry:sentry-android-core",
    "io.sentry:sentry-android",
    "io.sentry:sentry",
)
PERFORMANCE_MIN_VERSION = Version(4, 0, 0)


def detect(modules: Iterable[ResolvedModule]) -> SdkState:
    for module in modules:
        if module.coordinate not in SDK_COORDINATES:
            continue
        try:
            supported = is_at_least(parse_version(module.version), PERFORMANCE_MIN_VERSION)
        except ValueError:
            logger.warning(
                "Unparseable SDK version %s, assuming no performance support", module.version
            )
            supported = False
        return SdkState.present(module.version, has_performance_support=supported)
    return SdkState.not_present()


def detect_sentry_android_sdk(
    project: Project,
    configuration_name: str,
    variant_name: str,
    holder: SdkStateHolder,
) -> None:
    """Attach detection to *configuration_name*'s resolution-complete event."""
    configuration = project.configuration(configuration_name)
    if configuration is None:
        logger.warning(
            "Unable to find configuration %s for variant %s, "
            "continuing without performance instrumentation",
            configuration_name,
            variant_name,
            extra={"variant": variant_name},
        )
        holder.set(SdkState.not_present())
        return

    def _on_resolved(modules: list[ResolvedModule]) -> None:
        state = detect(modules)
        info(logger, lambda: f"Detected Sentry SDK for {variant_name}: {state!r}")
        holder.set(state)

    configuration.on_resolution_complete(_on_resolved)
