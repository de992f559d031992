"""Per-variant planning: gates and the derived :class:`VariantPlan`.

Every decision that depends on user flags, the host version and the variant's
build type is made here, once per variant, and memoised on the project's
build services. Both the instrumentation call site and the upload-task call
site read the same plan, so they can never disagree about a variant.
"""

from __future__ import annotations

from dataclasses import dataclass

from tracewire.host import DEXGUARD_PLUGIN, GUARDSQUARE_PROGUARD_PLUGIN, Project
from tracewire.logging import get_logger
from tracewire.types import BuildVariant, ExclusionLists, PluginConfig
from tracewire.versions import needs_multi_release_jar_repair

logger = get_logger("tracewire.planner")


def is_variant_allowed(
    variant_name: str,
    flavor_name: str | None,
    build_type: str | None,
    exclusions: ExclusionLists,
) -> bool:
    return (
        variant_name not in exclusions.variants
        and (flavor_name is None or flavor_name not in exclusions.flavors)
        and (build_type is None or build_type not in exclusions.build_types)
    )


def is_allowed(variant: BuildVariant, exclusions: ExclusionLists) -> bool:
    return is_variant_allowed(
        variant.name, variant.flavor_name, variant.build_type.name, exclusions
    )


def is_dexguard_enabled_for_variant(project: Project, variant_name: str) -> bool:
    return project.has_plugin(DEXGUARD_PLUGIN) and bool(
        project.dexguard_configurations.get(variant_name)
    )


def is_minification_enabled(
    project: Project,
    variant: BuildVariant,
    experimental_guardsquare_support: bool = False,
) -> bool:
    if experimental_guardsquare_support:
        proguard = False
        if project.has_plugin(GUARDSQUARE_PROGUARD_PLUGIN):
            proguard = bool(project.proguard_configurations.get(variant.name))
            if not proguard:
                logger.info(
                    "No Guardsquare ProGuard configuration for variant %s",
                    variant.name,
                    extra={"variant": variant.name},
                )
        if proguard or is_dexguard_enabled_for_variant(project, variant.name):
            return True
    return variant.build_type.minify_enabled


def is_instrumentation_eligible(
    variant: BuildVariant, exclusions: ExclusionLists, instrumentation_enabled: bool
) -> bool:
    return is_allowed(variant, exclusions) and instrumentation_enabled


@dataclass(frozen=True)
class VariantPlan:
    variant: str
    allowed: bool
    instrumentation_eligible: bool
    minification_enabled: bool
    debuggable: bool
    repair_needed: bool
    dexguard_enabled: bool

    @property
    def uploads_mapping(self) -> bool:
        return self.allowed and self.minification_enabled

    @property
    def uploads_native_symbols(self) -> bool:
        return self.allowed and not self.debuggable


def compute_plan(project: Project, variant: BuildVariant, config: PluginConfig) -> VariantPlan:
    exclusions = config.exclusions
    instrumentation_enabled = config.tracing_instrumentation.enabled
    eligible = is_instrumentation_eligible(variant, exclusions, instrumentation_enabled)
    experimental = config.experimental_guardsquare_support
    return VariantPlan(
        variant=variant.name,
        allowed=is_allowed(variant, exclusions),
        instrumentation_eligible=eligible,
        minification_enabled=is_minification_enabled(project, variant, experimental),
        debuggable=variant.debuggable,
        repair_needed=eligible and needs_multi_release_jar_repair(project.agp_version),
        dexguard_enabled=experimental and is_dexguard_enabled_for_variant(project, variant.name),
    )


def plan_for(project: Project, variant: BuildVariant, config: PluginConfig) -> VariantPlan:
    """Memoised :func:`compute_plan`, one value per (project, variant)."""
    plans: dict[str, VariantPlan] = project.build.services.register_if_absent(
        f"variantPlans{project.path}", dict
    )
    plan = plans.get(variant.name)
    if plan is None:
        plan = plans[variant.name] = compute_plan(project, variant, config)
    return plan
