"""Error taxonomy for the plugin.

Only :class:`UnsupportedToolchainError` is meant to abort the whole build.
Everything else is either scoped to one variant or degrades to a safe default
inside the component that detected it.
"""

from __future__ import annotations

MIGRATION_GUIDE_URL = (
    "https://docs.sentry.io/platforms/android/migration/"
    "#migrating-from-iosentrysentry-android-gradle-plugin-2x-to-iosentrysentry-android-gradle-plugin-300"
)


class TracewireError(Exception):
    pass


class ConfigError(TracewireError):
    """User configuration or host descriptor failed validation."""


class UnsupportedToolchainError(TracewireError):
    def __init__(self, current: str, minimum: str) -> None:
        self.current = current
        self.minimum = minimum
        super().__init__(
            f"Using tracewire with Android Gradle Plugin {current} is not supported "
            f"(requires {minimum} or newer).\n"
            f"Either upgrade the AGP version to {minimum}+, or use an earlier version of the "
            f"plugin. For more information check our migration guide {MIGRATION_GUIDE_URL}"
        )


class SdkStateNotResolvedError(TracewireError):
    """Raised to a reader when the SDK state was not resolved in time."""


class MissingTaskError(TracewireError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Task with name '{name}' not found in project")


class DeferredWiringError(TracewireError):
    """Post-evaluation edges could not be attached for a single variant."""

    def __init__(self, variant: str, missing: str) -> None:
        self.variant = variant
        self.missing = missing
        super().__init__(
            f"Variant '{variant}': expected task '{missing}' to exist after project "
            "evaluation, is the DexGuard plugin applied and configured for it?"
        )
