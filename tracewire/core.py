"""Plugin entry point: version gate → instrumentation → upload task wiring."""

from __future__ import annotations

from dataclasses import dataclass, field

from tracewire.autoinstall import install_dependencies
from tracewire.host import ANDROID_APPLICATION_PLUGIN, Project, VariantComponent
from tracewire.instrumentation import (
    InstrumentationParameters,
    register_instrumentation,
    sentry_tmp_dir,
)
from tracewire.logging import get_logger
from tracewire.planner import VariantPlan, is_allowed, plan_for
from tracewire.types import BuildVariant, PluginConfig
from tracewire.versions import ensure_supported
from tracewire.wiring import UploadTaskChain, wire_variant

logger = get_logger("tracewire")


@dataclass
class PluginState:
    """What the plugin did to a project, per variant name."""

    config: PluginConfig
    plans: dict[str, VariantPlan] = field(default_factory=dict)
    instrumentation: dict[str, InstrumentationParameters] = field(default_factory=dict)
    chains: dict[str, UploadTaskChain] = field(default_factory=dict)


def apply(
    project: Project,
    config: PluginConfig | None = None,
    cli_executable: str | None = None,
) -> PluginState:
    """Apply the plugin to *project*.

    Raises :class:`~tracewire.errors.UnsupportedToolchainError` before any
    variant is looked at when the host toolchain is too old.
    """
    ensure_supported(project.agp_version)
    config = config or PluginConfig()
    state = PluginState(config=config)

    if not project.has_plugin(ANDROID_APPLICATION_PLUGIN):
        logger.info("%s is not an Android application project, nothing to do", project.path)
        return state

    # temp folder for sentry-related stuff
    tmp_dir = sentry_tmp_dir(project)

    def _on_variant(component: VariantComponent) -> None:
        plan = plan_for(project, component.variant, config)
        state.plans[component.name] = plan
        install_dependencies(project, component.runtime_configuration_name, config)
        params = register_instrumentation(project, component, config, plan, tmp_dir)
        if params is not None:
            state.instrumentation[component.name] = params

    def _configure_variant(variant: BuildVariant) -> None:
        plan = plan_for(project, variant, config)
        state.plans[variant.name] = plan
        state.chains[variant.name] = wire_variant(
            project, variant, config, plan, cli_executable=cli_executable
        )

    project.android.on_variants(_on_variant)
    project.android.configure_each_application_variant(
        lambda v: is_allowed(v, config.exclusions), _configure_variant
    )
    return state
