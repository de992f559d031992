"""In-memory model of the host build: projects, variants, configurations.

This is the surface the plugin talks to. It mirrors the parts of the Android
Gradle Plugin API the orchestration needs and nothing more: variant callbacks,
the task registry, dependency configurations with a resolution event, and the
artifact-transform registry.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from tracewire.graph import Task, TaskGraph
from tracewire.types import BuildType, BuildVariant, ResolvedModule
from tracewire.versions import Version, parse_version

ANDROID_APPLICATION_PLUGIN = "com.android.application"
GUARDSQUARE_PROGUARD_PLUGIN = "com.guardsquare.proguard"
DEXGUARD_PLUGIN = "dexguard"

S = TypeVar("S")


def capitalize_us(value: str) -> str:
    """Uppercase the first character only, locale-independent."""
    return value[:1].upper() + value[1:]


# ---------------------------------------------------------------------------
# Build-scoped services
# ---------------------------------------------------------------------------


class BuildServiceRegistry:
    """Build-wide singletons shared by every project of one build."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._services: dict[str, Any] = {}

    def register_if_absent(self, name: str, factory: Callable[[], S]) -> S:
        with self._lock:
            if name not in self._services:
                self._services[name] = factory()
            return self._services[name]

    def get(self, name: str) -> Any | None:
        with self._lock:
            return self._services.get(name)


@dataclass
class Build:
    agp_version: Version
    services: BuildServiceRegistry = field(default_factory=BuildServiceRegistry)


# ---------------------------------------------------------------------------
# Dependency resolution
# ---------------------------------------------------------------------------


class Configuration:
    """A resolvable set of dependencies with a one-shot completion event."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.attributes: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[list[ResolvedModule]], None]] = []
        self._dependency_actions: list[Callable[[list[ResolvedModule]], None]] = []
        self._resolved: list[ResolvedModule] | None = None

    @property
    def resolved(self) -> bool:
        return self._resolved is not None

    def on_resolution_complete(self, callback: Callable[[list[ResolvedModule]], None]) -> None:
        with self._lock:
            modules = self._resolved
            if modules is None:
                self._callbacks.append(callback)
                return
        callback(list(modules))

    def with_dependencies(self, action: Callable[[list[ResolvedModule]], None]) -> None:
        """Run *action* on the declared modules right before resolution.

        The action may append to the list. Ignored once resolved.
        """
        with self._lock:
            if self._resolved is None:
                self._dependency_actions.append(action)

    def resolve(self, modules: Iterable[ResolvedModule]) -> None:
        with self._lock:
            if self._resolved is not None:
                return
            declared = list(modules)
            for action in self._dependency_actions:
                action(declared)
            self._resolved = declared
            callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            cb(list(self._resolved))


@dataclass(frozen=True)
class RegisteredArtifactTransform:
    transform: type
    from_attributes: tuple[tuple[str, Any], ...]
    to_attributes: tuple[tuple[str, Any], ...]
    parameters: tuple[tuple[str, Any], ...] = ()


class DependencyHandler:
    def __init__(self) -> None:
        self.transforms: list[RegisteredArtifactTransform] = []

    def register_transform(
        self,
        transform: type,
        from_attributes: dict[str, Any],
        to_attributes: dict[str, Any],
        parameters: dict[str, Any] | None = None,
    ) -> bool:
        """Register an artifact transform; returns False if already present."""
        entry = RegisteredArtifactTransform(
            transform,
            tuple(sorted(from_attributes.items())),
            tuple(sorted(to_attributes.items())),
            tuple(sorted((parameters or {}).items())),
        )
        if any(
            t.transform is transform
            and t.from_attributes == entry.from_attributes
            and t.to_attributes == entry.to_attributes
            for t in self.transforms
        ):
            return False
        self.transforms.append(entry)
        return True


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegisteredClassTransform:
    factory: type
    scope: str
    parameters: Any


class VariantComponent:
    """A variant descriptor plus the hooks the host exposes for it."""

    def __init__(self, variant: BuildVariant) -> None:
        self.variant = variant
        self.class_transforms: list[RegisteredClassTransform] = []
        self.frames_computation_mode: str | None = None

    @property
    def name(self) -> str:
        return self.variant.name

    @property
    def runtime_configuration_name(self) -> str:
        return f"{self.variant.name}RuntimeClasspath"

    def transform_classes_with(self, factory: type, scope: str, parameters: Any) -> None:
        self.class_transforms.append(RegisteredClassTransform(factory, scope, parameters))

    def set_asm_frames_computation_mode(self, mode: str) -> None:
        self.frames_computation_mode = mode


class AndroidComponents:
    """Live variant collection; callbacks see existing and future variants."""

    def __init__(self) -> None:
        self.variants: list[VariantComponent] = []
        self._on_variants: list[Callable[[VariantComponent], None]] = []
        self._app_variant_actions: list[
            tuple[Callable[[BuildVariant], bool], Callable[[BuildVariant], None]]
        ] = []

    def on_variants(self, callback: Callable[[VariantComponent], None]) -> None:
        self._on_variants.append(callback)
        for component in list(self.variants):
            callback(component)

    def configure_each_application_variant(
        self,
        predicate: Callable[[BuildVariant], bool],
        action: Callable[[BuildVariant], None],
    ) -> None:
        self._app_variant_actions.append((predicate, action))
        for component in list(self.variants):
            if predicate(component.variant):
                action(component.variant)

    def add(self, component: VariantComponent) -> None:
        self.variants.append(component)
        for cb in self._on_variants:
            cb(component)
        for predicate, action in self._app_variant_actions:
            if predicate(component.variant):
                action(component.variant)


@dataclass
class SourceSet:
    name: str
    assets_src_dirs: list[Path] = field(default_factory=list)

    def add_assets_src_dir(self, path: Path) -> None:
        if path not in self.assets_src_dirs:
            self.assets_src_dirs.append(path)


class HostTask(Task):
    """A lifecycle task owned by the host (merge assets, package, bundle...)."""


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


class Project:
    def __init__(
        self,
        name: str,
        project_dir: Path,
        build: Build,
        root_dir: Path | None = None,
    ) -> None:
        self.name = name
        self.project_dir = Path(project_dir)
        self.root_dir = Path(root_dir) if root_dir else self.project_dir
        self.build = build
        self.tasks = TaskGraph()
        self.configurations: dict[str, Configuration] = {}
        self.dependencies = DependencyHandler()
        self.android = AndroidComponents()
        self.source_sets: dict[str, SourceSet] = {}
        self.extra: dict[str, Any] = {}
        self.plugins: set[str] = set()
        self.proguard_configurations: dict[str, list[str]] = {}
        self.dexguard_configurations: dict[str, list[str]] = {}

    @property
    def path(self) -> str:
        return f":{self.name}"

    @property
    def build_dir(self) -> Path:
        return self.project_dir / "build"

    @property
    def agp_version(self) -> Version:
        return self.build.agp_version

    def has_plugin(self, plugin_id: str) -> bool:
        return plugin_id in self.plugins

    def apply_plugin(self, plugin_id: str) -> None:
        if plugin_id in self.plugins:
            return
        self.plugins.add(plugin_id)
        if plugin_id == DEXGUARD_PLUGIN:
            # DexGuard only creates its tasks once the build script is evaluated
            self.after_evaluate(self._register_dexguard_tasks, key="dexguard:tasks")

    def _register_dexguard_tasks(self) -> None:
        for variant_name in self.dexguard_configurations:
            suffix = capitalize_us(variant_name)
            self.tasks.register(f"dexguardApk{suffix}", HostTask)
            self.tasks.register(f"dexguardAab{suffix}", HostTask)

    def configuration(self, name: str) -> Configuration | None:
        return self.configurations.get(name)

    def after_evaluate(self, callback: Callable[[], None], key: str | None = None) -> None:
        self.tasks.after_evaluate(callback, key=key)

    def evaluate(self):
        """Finish evaluation: run deferred callbacks, return per-variant errors."""
        return self.tasks.finish_evaluation()

    def add_variant(self, variant: BuildVariant) -> VariantComponent:
        component = VariantComponent(variant)
        self.configurations.setdefault(
            component.runtime_configuration_name,
            Configuration(component.runtime_configuration_name),
        )
        self.source_sets.setdefault(variant.name, SourceSet(variant.name))
        _register_lifecycle_tasks(self, variant)
        self.android.add(component)
        return component


def _register_lifecycle_tasks(project: Project, variant: BuildVariant) -> None:
    suffix = capitalize_us(variant.name)
    names = [
        f"pre{suffix}Build",
        f"merge{suffix}Assets",
        f"package{suffix}",
        f"build{suffix}PreBundle",
        f"package{suffix}Bundle",
        f"bundle{suffix}",
        f"assemble{suffix}",
    ]
    if variant.build_type.minify_enabled:
        names.append(f"minify{suffix}WithR8")
    for name in names:
        project.tasks.register(name, HostTask)
    project.tasks.depends_on(f"merge{suffix}Assets", f"pre{suffix}Build")
    project.tasks.depends_on(f"package{suffix}", f"merge{suffix}Assets")
    if variant.build_type.minify_enabled:
        project.tasks.depends_on(f"minify{suffix}WithR8", f"pre{suffix}Build")
        project.tasks.depends_on(f"package{suffix}", f"minify{suffix}WithR8")
        project.tasks.depends_on(f"build{suffix}PreBundle", f"minify{suffix}WithR8")
    if (
        project.has_plugin(GUARDSQUARE_PROGUARD_PLUGIN)
        and project.proguard_configurations.get(variant.name)
    ):
        # the Guardsquare plugin hooks a transform into every configured variant
        transform = f"transformClassesAndResourcesWithProguardTransformFor{suffix}"
        project.tasks.register(transform, HostTask)
        project.tasks.depends_on(transform, f"pre{suffix}Build")
        project.tasks.depends_on(f"package{suffix}", transform)
        project.tasks.depends_on(f"build{suffix}PreBundle", transform)
    project.tasks.depends_on(f"build{suffix}PreBundle", f"merge{suffix}Assets")
    project.tasks.depends_on(f"package{suffix}Bundle", f"build{suffix}PreBundle")
    project.tasks.depends_on(f"bundle{suffix}", f"package{suffix}Bundle")
    project.tasks.depends_on(f"assemble{suffix}", f"package{suffix}")


# ---------------------------------------------------------------------------
# Descriptor loading
# ---------------------------------------------------------------------------


def project_from_descriptor(data: dict, base_dir: Path | None = None) -> Project:
    """Build a :class:`Project` from a (schema-validated) JSON descriptor.

    Variants are not added here; call :func:`add_descriptor_variants` after
    the plugin has been applied so variant callbacks observe them, like the
    host does.
    """
    base = Path(base_dir or ".")
    project_dir = base / data.get("projectDir", data["name"])
    root_dir = base / data["rootDir"] if "rootDir" in data else base
    project = Project(
        data["name"],
        project_dir,
        Build(parse_version(data["agpVersion"])),
        root_dir=root_dir,
    )
    project.extra.update(data.get("extra", {}))
    project.proguard_configurations.update(data.get("proguardConfigurations", {}))
    project.dexguard_configurations.update(data.get("dexguardConfigurations", {}))
    for plugin_id in data.get("plugins", [ANDROID_APPLICATION_PLUGIN]):
        project.apply_plugin(plugin_id)
    return project


def add_descriptor_variants(project: Project, data: dict) -> list[VariantComponent]:
    build_types = {
        bt["name"]: BuildType(
            name=bt["name"],
            debuggable=bt.get("debuggable", False),
            minify_enabled=bt.get("minifyEnabled", False),
        )
        for bt in data.get("buildTypes", [])
    }
    components = []
    for v in data.get("variants", []):
        bt = build_types.get(v["buildType"]) or BuildType(name=v["buildType"])
        variant = BuildVariant(name=v["name"], flavor_name=v.get("flavor"), build_type=bt)
        components.append(project.add_variant(variant))
    return components


def resolve_descriptor_dependencies(project: Project, data: dict) -> None:
    """Fire resolution for every configuration listed in the descriptor."""
    for conf_name, modules in data.get("dependencies", {}).items():
        conf = project.configurations.setdefault(conf_name, Configuration(conf_name))
        conf.resolve(ResolvedModule(**m) for m in modules)
