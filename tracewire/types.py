"""Shared Pydantic models: variant descriptors and the user-facing config."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BuildType(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    debuggable: bool = False
    minify_enabled: bool = False


class BuildVariant(BaseModel):
    """One build type × flavor combination, as handed to us by the host."""

    model_config = ConfigDict(frozen=True)

    name: str
    flavor_name: str | None = None
    build_type: BuildType

    @property
    def debuggable(self) -> bool:
        return self.build_type.debuggable


class ResolvedModule(BaseModel):
    model_config = ConfigDict(frozen=True)

    group: str
    name: str
    version: str

    @property
    def coordinate(self) -> str:
        return f"{self.group}:{self.name}"


class InstrumentationFeature(str, Enum):
    DATABASE = "DATABASE"
    FILE_IO = "FILE_IO"


class ExclusionLists(BaseModel):
    model_config = ConfigDict(frozen=True)

    variants: frozenset[str] = frozenset()
    flavors: frozenset[str] = frozenset()
    build_types: frozenset[str] = frozenset()


class TracingInstrumentationConfig(BaseModel):
    enabled: bool = True
    debug: bool = False
    force_instrument_dependencies: bool = False
    features: set[InstrumentationFeature] = Field(
        default_factory=lambda: {InstrumentationFeature.DATABASE, InstrumentationFeature.FILE_IO}
    )


# sentry-android release added by auto-installation
SENTRY_SDK_VERSION = "5.7.0"


class AutoInstallationConfig(BaseModel):
    enabled: bool = True
    sentry_version: str = SENTRY_SDK_VERSION


class PluginConfig(BaseModel):
    """Mirror of the ``sentry { ... }`` block in a build script."""

    include_proguard_mapping: bool = True
    auto_upload_proguard_mapping: bool = True
    upload_native_symbols: bool = False
    auto_upload_native_symbols: bool = True
    include_native_sources: bool = False
    ignored_variants: set[str] = Field(default_factory=set)
    ignored_flavors: set[str] = Field(default_factory=set)
    ignored_build_types: set[str] = Field(default_factory=set)
    experimental_guardsquare_support: bool = False
    tracing_instrumentation: TracingInstrumentationConfig = Field(
        default_factory=TracingInstrumentationConfig
    )
    auto_installation: AutoInstallationConfig = Field(default_factory=AutoInstallationConfig)

    @property
    def exclusions(self) -> ExclusionLists:
        return ExclusionLists(
            variants=frozenset(self.ignored_variants),
            flavors=frozenset(self.ignored_flavors),
            build_types=frozenset(self.ignored_build_types),
        )
