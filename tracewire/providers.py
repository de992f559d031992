"""Lookups for host tasks and files whose names vary across host versions."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from tracewire.graph import Task
from tracewire.host import DEXGUARD_PLUGIN, GUARDSQUARE_PROGUARD_PLUGIN, Project, capitalize_us
from tracewire.types import BuildVariant

SENTRY_CLI_ENV = "SENTRY_CLI_EXECUTABLE"
SENTRY_PROPERTIES_FILE = "sentry.properties"


def _first_existing(project: Project, names: list[str]) -> Task:
    for name in names:
        task = project.tasks.find(name)
        if task is not None:
            return task
    raise LookupError(f"None of {names} exist in {project.path}")


def get_transformer_task(
    project: Project, variant_name: str, experimental_guardsquare_support: bool = False
) -> Task:
    """The task that shrinks/obfuscates and writes the mapping file."""
    suffix = capitalize_us(variant_name)
    names = [f"minify{suffix}WithR8", f"minify{suffix}WithProguard"]
    if experimental_guardsquare_support:
        names.insert(0, f"transformClassesAndResourcesWithProguardTransformFor{suffix}")
    return _first_existing(project, names)


def get_pre_bundle_task(project: Project, variant_name: str) -> Task:
    return project.tasks.named(f"build{capitalize_us(variant_name)}PreBundle")


def get_bundle_task(project: Project, variant_name: str) -> Task:
    return project.tasks.named(f"bundle{capitalize_us(variant_name)}")


def get_package_bundle_task(project: Project, variant_name: str) -> Task:
    # AGP 4.0+ uses "package{Variant}Bundle", 3.x used "make{Variant}Bundle"
    suffix = capitalize_us(variant_name)
    return _first_existing(project, [f"package{suffix}Bundle", f"make{suffix}Bundle"])


def get_merge_assets_task(project: Project, variant_name: str) -> Task:
    return project.tasks.named(f"merge{capitalize_us(variant_name)}Assets")


def get_package_task(project: Project, variant_name: str) -> Task:
    return project.tasks.named(f"package{capitalize_us(variant_name)}")


def get_assemble_task(project: Project, variant_name: str) -> Task:
    return project.tasks.named(f"assemble{capitalize_us(variant_name)}")


def get_mapping_files(
    project: Project, variant: BuildVariant, experimental_guardsquare_support: bool = False
) -> list[Path]:
    """Candidate mapping files, in the order the upload task should try them."""
    outputs = project.build_dir / "outputs"
    if experimental_guardsquare_support:
        if project.has_plugin(GUARDSQUARE_PROGUARD_PLUGIN):
            return [outputs / "proguard" / variant.name / "mapping" / "mapping.txt"]
        if project.has_plugin(DEXGUARD_PLUGIN):
            return [
                outputs / "dexguard" / "mapping" / "apk" / variant.name / "mapping.txt",
                outputs / "dexguard" / "mapping" / "bundle" / variant.name / "mapping.txt",
            ]
    return [outputs / "mapping" / variant.name / "mapping.txt"]


def get_properties_file_candidates(project: Project, variant: BuildVariant) -> list[Path]:
    build_type = variant.build_type.name
    flavor = variant.flavor_name
    src = project.project_dir / "src"
    candidates: list[Path] = []
    if flavor:
        candidates += [
            src / flavor / build_type / SENTRY_PROPERTIES_FILE,
            src / build_type / flavor / SENTRY_PROPERTIES_FILE,
            src / flavor / SENTRY_PROPERTIES_FILE,
        ]
    candidates += [
        src / build_type / SENTRY_PROPERTIES_FILE,
        project.project_dir / SENTRY_PROPERTIES_FILE,
        project.root_dir / SENTRY_PROPERTIES_FILE,
    ]
    return candidates


def find_properties_file(candidates: list[Path]) -> Path | None:
    """Called at execution time; configuration never touches the disk for this."""
    return next((p for p in candidates if p.is_file()), None)


def get_sentry_cli_path() -> str:
    override = os.environ.get(SENTRY_CLI_ENV)
    if override:
        return override
    return shutil.which("sentry-cli") or "sentry-cli"
