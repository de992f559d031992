"""Registers the span-adding bytecode pass for eligible variants."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path

from tracewire.detect.base import SdkState, SdkStateHolder
from tracewire.detect.sentry_sdk import detect_sentry_android_sdk
from tracewire.host import Project, VariantComponent
from tracewire.logging import get_logger
from tracewire.planner import VariantPlan
from tracewire.transforms.meta_inf_strip import MetaInfStripTransform, mark_runtime_classpath
from tracewire.types import InstrumentationFeature, PluginConfig

logger = get_logger("tracewire.instrumentation")

SCOPE_ALL = "ALL"
# injected calls change stack map frames of the methods they touch
COMPUTE_FRAMES_FOR_INSTRUMENTED_METHODS = "COMPUTE_FRAMES_FOR_INSTRUMENTED_METHODS"
SDK_STATE_TIMEOUT = 300.0


@dataclass(frozen=True)
class InstrumentationParameters:
    invalidate: int | None
    debug: bool
    features: frozenset[InstrumentationFeature]
    sdk_state_holder: SdkStateHolder
    tmp_dir: Path


class SpanAddingClassVisitorFactory:
    """Consumer side of the SDK state; the rewriting itself lives in the host.

    The host may create one factory per worker thread. Each one waits for the
    terminal SDK state before deciding anything.
    """

    def __init__(self, parameters: InstrumentationParameters) -> None:
        self.parameters = parameters

    def sdk_state(self) -> SdkState:
        return self.parameters.sdk_state_holder.get(timeout=SDK_STATE_TIMEOUT)

    def enabled_features(self) -> frozenset[InstrumentationFeature]:
        state = self.sdk_state()
        if not (state.is_present and state.has_performance_support):
            return frozenset()
        return self.parameters.features

    def is_instrumentable(self) -> bool:
        enabled = bool(self.enabled_features())
        if self.parameters.debug:
            logger.info("Instrumentable: %s (sdk: %s)", enabled, self.sdk_state().kind.value)
        return enabled


def sentry_tmp_dir(project: Project) -> Path:
    tmp_dir = project.build_dir / "tmp" / "sentry"
    tmp_dir.mkdir(parents=True, exist_ok=True)
    return tmp_dir


def build_parameters(
    config: PluginConfig, holder: SdkStateHolder, tmp_dir: Path
) -> InstrumentationParameters:
    tracing = config.tracing_instrumentation
    return InstrumentationParameters(
        invalidate=int(time.time() * 1000) if tracing.force_instrument_dependencies else None,
        debug=tracing.debug,
        features=frozenset(tracing.features),
        sdk_state_holder=holder,
        tmp_dir=tmp_dir,
    )


def register_instrumentation(
    project: Project,
    component: VariantComponent,
    config: PluginConfig,
    plan: VariantPlan,
    tmp_dir: Path,
) -> InstrumentationParameters | None:
    if not plan.instrumentation_eligible:
        return None

    # Dependencies are resolved before any transform runs, so detection
    # always completes before the first factory reads the holder.
    holder = SdkStateHolder.register(project)
    runtime = component.runtime_configuration_name
    detect_sentry_android_sdk(project, runtime, component.name, holder)

    params = build_parameters(config, holder, tmp_dir)
    component.transform_classes_with(SpanAddingClassVisitorFactory, SCOPE_ALL, params)
    component.set_asm_frames_computation_mode(COMPUTE_FRAMES_FOR_INSTRUMENTED_METHODS)

    if plan.repair_needed:
        register_artifact_repair(project, runtime, config)
    return params


def register_artifact_repair(
    project: Project, configuration_name: str, config: PluginConfig
) -> None:
    """Tag the runtime classpath and register the MR-JAR repair, together."""
    if configuration_name not in project.configurations:
        logger.warning("No configuration %s to repair, skipping", configuration_name)
        return
    MetaInfStripTransform.register(
        project.dependencies, config.tracing_instrumentation.force_instrument_dependencies
    )
    mark_runtime_classpath(project, configuration_name)
