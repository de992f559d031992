from __future__ import annotations

from tracewire.core import apply
from tracewire.host import DEXGUARD_PLUGIN, GUARDSQUARE_PROGUARD_PLUGIN
from tracewire.planner import plan_for
from tracewire.tasks.generate_uuid import GenerateProguardUuidTask
from tracewire.tasks.upload_mappings import UploadProguardMappingsTask
from tracewire.tasks.upload_native_symbols import UploadNativeSymbolsTask
from tracewire.types import BuildType, BuildVariant, PluginConfig
from tracewire.wiring import wire_variant

UUID_TASK = "generateSentryProguardUuidRelease"
MAPPING_TASK = "uploadSentryProguardMappingsRelease"
NATIVE_TASK = "uploadSentryNativeSymbolsForRelease"


def _setup(make_project, variant, config=None, agp="7.2.0", plugins=()):
    project = make_project(agp=agp, plugins=plugins)
    project.extra.update({"sentryOrg": "acme", "sentryProject": "android"})
    state = apply(project, config or PluginConfig(), cli_executable="sentry-cli")
    project.add_variant(variant)
    return project, state


def test_debug_variant_gets_no_mapping_tasks(make_project, debug_variant) -> None:
    project, state = _setup(make_project, debug_variant)
    assert "generateSentryProguardUuidDebug" not in project.tasks
    assert "uploadSentryProguardMappingsDebug" not in project.tasks
    assert "uploadSentryNativeSymbolsForDebug" not in project.tasks
    assert state.chains["debug"].uuid_task is None


def test_minified_release_wires_uuid_and_mapping_upload(make_project, release_variant) -> None:
    project, state = _setup(make_project, release_variant)
    tasks = project.tasks

    uuid_task = tasks.named(UUID_TASK)
    upload = tasks.named(MAPPING_TASK)
    assert isinstance(uuid_task, GenerateProguardUuidTask)
    assert isinstance(upload, UploadProguardMappingsTask)
    assert state.chains["release"].mapping_upload_task is upload

    assert UUID_TASK in tasks.dependencies_of("mergeReleaseAssets")
    assert tasks.dependencies_of(MAPPING_TASK) == {UUID_TASK}
    for consumer in ("buildReleasePreBundle", "packageRelease", "packageReleaseBundle"):
        assert UUID_TASK in tasks.dependencies_of(consumer)
    assert tasks.finalizers_of("minifyReleaseWithR8") == {MAPPING_TASK}
    assert project.dependencies.transforms == []

    uuid_dir = project.build_dir / "generated" / "assets" / "sentry" / "release"
    assert uuid_task.output_directory == uuid_dir
    assert project.source_sets["release"].assets_src_dirs == [uuid_dir]

    assert upload.uuid_directory == uuid_dir
    assert upload.mapping_files == [
        project.build_dir / "outputs" / "mapping" / "release" / "mapping.txt"
    ]
    assert upload.sentry_organization == "acme"
    assert upload.sentry_project == "android"
    assert upload.auto_upload_proguard_mapping is True
    assert upload.working_dir == project.root_dir


def test_mapping_upload_can_be_disabled(make_project, release_variant) -> None:
    project, _ = _setup(
        make_project, release_variant, PluginConfig(include_proguard_mapping=False)
    )
    assert UUID_TASK not in project.tasks
    assert MAPPING_TASK not in project.tasks


def test_native_symbols_finalize_assemble_and_bundle(make_project, release_variant) -> None:
    config = PluginConfig(
        upload_native_symbols=True, include_native_sources=True, auto_upload_native_symbols=False
    )
    project, _ = _setup(make_project, release_variant, config)
    tasks = project.tasks

    native = tasks.named(NATIVE_TASK)
    assert isinstance(native, UploadNativeSymbolsTask)
    assert NATIVE_TASK in tasks.finalizers_of("assembleRelease")
    assert NATIVE_TASK in tasks.finalizers_of("bundleRelease")
    assert native.variant_name == "release"
    assert native.build_dir == project.build_dir
    assert native.include_native_sources is True
    assert native.auto_upload_native_symbol is False


def test_native_symbols_skipped_for_debuggable(make_project, debug_variant) -> None:
    project, _ = _setup(make_project, debug_variant, PluginConfig(upload_native_symbols=True))
    assert "uploadSentryNativeSymbolsForDebug" not in project.tasks


def test_excluded_variant_gets_no_upload_tasks(make_project, release_variant) -> None:
    config = PluginConfig(ignored_build_types={"release"}, upload_native_symbols=True)
    project, state = _setup(make_project, release_variant, config)
    assert "release" not in state.chains
    assert UUID_TASK not in project.tasks
    assert NATIVE_TASK not in project.tasks


def test_wiring_twice_is_idempotent(make_project, release_variant) -> None:
    config = PluginConfig(upload_native_symbols=True)
    project, _ = _setup(make_project, release_variant, config)
    names = list(project.tasks.task_names)
    edges = project.tasks.edges()

    plan = plan_for(project, release_variant, config)
    wire_variant(project, release_variant, config, plan, cli_executable="sentry-cli")

    assert project.tasks.task_names == names
    assert project.tasks.edges() == edges
    assert len(project.source_sets["release"].assets_src_dirs) == 1


def test_execution_order_invariants(make_project, release_variant) -> None:
    project, _ = _setup(make_project, release_variant, PluginConfig(upload_native_symbols=True))

    order = project.tasks.execution_plan(["assembleRelease"])
    assert order.index(UUID_TASK) < order.index(MAPPING_TASK)
    assert order.index("minifyReleaseWithR8") < order.index(MAPPING_TASK)
    assert order.index(UUID_TASK) < order.index("packageRelease")
    assert order.index("assembleRelease") < order.index(NATIVE_TASK)

    bundle_order = project.tasks.execution_plan(["bundleRelease"])
    assert bundle_order.index(UUID_TASK) < bundle_order.index("packageReleaseBundle")
    assert bundle_order.index("bundleRelease") < bundle_order.index(NATIVE_TASK)


def _unminified_release() -> BuildVariant:
    return BuildVariant(name="release", build_type=BuildType(name="release"))


def test_dexguard_finalizers_are_deferred(make_project) -> None:
    config = PluginConfig(experimental_guardsquare_support=True)
    project = make_project(plugins=(DEXGUARD_PLUGIN,))
    project.dexguard_configurations["release"] = ["dexguard-release.pro"]
    apply(project, config, cli_executable="sentry-cli")
    project.add_variant(_unminified_release())

    assert MAPPING_TASK in project.tasks
    assert "dexguardApkRelease" not in project.tasks

    assert project.evaluate() == []
    assert project.tasks.finalizers_of("dexguardApkRelease") == {MAPPING_TASK}
    assert project.tasks.finalizers_of("dexguardAabRelease") == {MAPPING_TASK}
    upload = project.tasks.named(MAPPING_TASK)
    assert upload.mapping_files[0] == (
        project.build_dir / "outputs" / "dexguard" / "mapping" / "apk" / "release" / "mapping.txt"
    )


def test_dexguard_missing_tasks_is_a_variant_scoped_error(make_project, debug_variant) -> None:
    config = PluginConfig(experimental_guardsquare_support=True)
    project = make_project()
    # plugin marked as applied, but it never registers its tasks
    project.plugins.add(DEXGUARD_PLUGIN)
    project.dexguard_configurations["release"] = ["dexguard-release.pro"]
    apply(project, config, cli_executable="sentry-cli")
    project.add_variant(_unminified_release())
    project.add_variant(debug_variant)

    errors = project.evaluate()
    assert [e.variant for e in errors] == ["release"]
    assert "dexguardApkRelease" in str(errors[0])
    # the other variant is unaffected and nothing was half-wired
    assert "mergeDebugAssets" in project.tasks
    assert not any(
        e.kind == "finalizedBy" and e.target == MAPPING_TASK for e in project.tasks.edges()
    )


def test_guardsquare_transform_is_finalized_by_mapping_upload(make_project) -> None:
    config = PluginConfig(experimental_guardsquare_support=True)
    project = make_project(plugins=(GUARDSQUARE_PROGUARD_PLUGIN,))
    project.proguard_configurations["release"] = ["proguard-release.pro"]
    apply(project, config, cli_executable="sentry-cli")
    # minify_enabled is off; the Guardsquare plugin does the shrinking
    project.add_variant(_unminified_release())

    assert project.evaluate() == []
    transform = "transformClassesAndResourcesWithProguardTransformForRelease"
    assert "minifyReleaseWithR8" not in project.tasks
    assert project.tasks.finalizers_of(transform) == {MAPPING_TASK}
    upload = project.tasks.named(MAPPING_TASK)
    assert upload.mapping_files == [
        project.build_dir / "outputs" / "proguard" / "release" / "mapping" / "mapping.txt"
    ]

    order = project.tasks.execution_plan(["assembleRelease"])
    assert order.index(transform) < order.index(MAPPING_TASK)
    assert order.index(UUID_TASK) < order.index("packageRelease")


def test_guardsquare_transform_only_for_configured_variants(make_project, debug_variant) -> None:
    project = make_project(plugins=(GUARDSQUARE_PROGUARD_PLUGIN,))
    project.proguard_configurations["release"] = ["proguard-release.pro"]
    project.add_variant(debug_variant)
    assert "transformClassesAndResourcesWithProguardTransformForDebug" not in project.tasks
