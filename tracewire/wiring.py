"""Upload task chain construction for one application variant.

For a minified variant the chain is::

    generateSentryProguardUuid<V>  <-  merge<V>Assets, build<V>PreBundle,
                                       package<V>, package<V>Bundle
    uploadSentryProguardMappings<V> -> dependsOn generateSentryProguardUuid<V>
    minify<V>WithR8 (or dexguardApk/Aab<V>) -> finalizedBy upload task

and for a non-debuggable variant ``uploadSentryNativeSymbolsFor<V>`` finalizes
both ``assemble<V>`` and ``bundle<V>``. Registration and edges are idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass

from tracewire.errors import DeferredWiringError
from tracewire.host import Project, capitalize_us
from tracewire.logging import get_logger, info, with_logging
from tracewire.planner import VariantPlan
from tracewire.providers import (
    get_assemble_task,
    get_bundle_task,
    get_mapping_files,
    get_merge_assets_task,
    get_package_bundle_task,
    get_package_task,
    get_pre_bundle_task,
    get_properties_file_candidates,
    get_sentry_cli_path,
    get_transformer_task,
)
from tracewire.tasks.generate_uuid import GenerateProguardUuidTask
from tracewire.tasks.upload_mappings import UploadProguardMappingsTask
from tracewire.tasks.upload_native_symbols import UploadNativeSymbolsTask
from tracewire.types import BuildVariant, PluginConfig

logger = get_logger("tracewire.wiring")

SENTRY_ORG_PARAMETER = "sentryOrg"
SENTRY_PROJECT_PARAMETER = "sentryProject"


@dataclass
class UploadTaskChain:
    uuid_task: GenerateProguardUuidTask | None = None
    mapping_upload_task: UploadProguardMappingsTask | None = None
    native_upload_task: UploadNativeSymbolsTask | None = None


def _extra_str(project: Project, key: str) -> str | None:
    value = project.extra.get(key)
    return None if value is None else str(value)


def wire_variant(
    project: Project,
    variant: BuildVariant,
    config: PluginConfig,
    plan: VariantPlan,
    cli_executable: str | None = None,
) -> UploadTaskChain:
    chain = UploadTaskChain()
    if not plan.allowed:
        return chain

    cli = cli_executable or get_sentry_cli_path()
    org = _extra_str(project, SENTRY_ORG_PARAMETER)
    sentry_project = _extra_str(project, SENTRY_PROJECT_PARAMETER)
    properties = get_properties_file_candidates(project, variant)

    if plan.minification_enabled and config.include_proguard_mapping:
        chain.uuid_task, chain.mapping_upload_task = _wire_mapping_upload(
            project, variant, config, plan, cli, org, sentry_project, properties
        )
    elif not plan.minification_enabled:
        info(logger, lambda: f"Minification is not enabled for variant {variant.name}.")

    if not plan.debuggable and config.upload_native_symbols:
        chain.native_upload_task = _wire_native_upload(
            project, variant, config, cli, org, sentry_project, properties
        )
    else:
        info(logger, lambda: "uploadSentryNativeSymbols won't be executed")
    return chain


def _wire_mapping_upload(project, variant, config, plan, cli, org, sentry_project, properties):
    tasks = project.tasks
    experimental = config.experimental_guardsquare_support
    suffix = capitalize_us(variant.name)

    pre_bundle = with_logging(logger, "preBundleTask",
                              lambda: get_pre_bundle_task(project, variant.name))
    transformer = with_logging(logger, "transformerTask",
                               lambda: get_transformer_task(project, variant.name, experimental))
    package_bundle = with_logging(logger, "packageBundleTask",
                                  lambda: get_package_bundle_task(project, variant.name))

    uuid_dir = project.build_dir / "generated" / "assets" / "sentry" / variant.name

    def _configure_uuid(task: GenerateProguardUuidTask) -> None:
        task.output_directory = uuid_dir

    uuid_task = tasks.register(
        f"generateSentryProguardUuid{suffix}", GenerateProguardUuidTask, _configure_uuid
    )
    tasks.depends_on(get_merge_assets_task(project, variant.name), uuid_task)

    def _configure_upload(task: UploadProguardMappingsTask) -> None:
        task.working_dir = project.root_dir
        task.cli_executable = cli
        task.sentry_properties_candidates = list(properties)
        task.uuid_directory = uuid_dir
        task.mapping_files = get_mapping_files(project, variant, experimental)
        task.auto_upload_proguard_mapping = config.auto_upload_proguard_mapping
        task.sentry_organization = org
        task.sentry_project = sentry_project

    upload_task = tasks.register(
        f"uploadSentryProguardMappings{suffix}", UploadProguardMappingsTask, _configure_upload
    )
    tasks.depends_on(upload_task, uuid_task)
    project.source_sets[variant.name].add_assets_src_dir(uuid_dir)

    if plan.dexguard_enabled:
        # DexGuard registers its tasks in its own afterEvaluate block
        def _attach_dexguard() -> None:
            for name in (f"dexguardApk{suffix}", f"dexguardAab{suffix}"):
                if name not in tasks:
                    raise DeferredWiringError(variant.name, name)
            tasks.finalized_by(f"dexguardApk{suffix}", upload_task)
            tasks.finalized_by(f"dexguardAab{suffix}", upload_task)

        project.after_evaluate(_attach_dexguard, key=f"dexguard:{variant.name}")
    elif transformer is not None:
        tasks.finalized_by(transformer, upload_task)

    # the UUID asset has to be in place for every artifact shape
    if pre_bundle is not None:
        tasks.depends_on(pre_bundle, uuid_task)
    tasks.depends_on(get_package_task(project, variant.name), uuid_task)
    if package_bundle is not None:
        tasks.depends_on(package_bundle, uuid_task)
    return uuid_task, upload_task


def _wire_native_upload(project, variant, config, cli, org, sentry_project, properties):
    tasks = project.tasks
    bundle = with_logging(logger, "bundleTask", lambda: get_bundle_task(project, variant.name))

    def _configure(task: UploadNativeSymbolsTask) -> None:
        task.working_dir = project.root_dir
        task.build_dir = project.build_dir
        task.auto_upload_native_symbol = config.auto_upload_native_symbols
        task.cli_executable = cli
        task.sentry_properties_candidates = list(properties)
        task.include_native_sources = config.include_native_sources
        task.variant_name = variant.name
        task.sentry_organization = org
        task.sentry_project = sentry_project

    upload_task = tasks.register(
        f"uploadSentryNativeSymbolsFor{capitalize_us(variant.name)}",
        UploadNativeSymbolsTask,
        _configure,
    )
    tasks.finalized_by(get_assemble_task(project, variant.name), upload_task)
    # when building an aab, assemble may never run
    if bundle is not None:
        tasks.finalized_by(bundle, upload_task)
    return upload_task
