"""Host toolchain version gate.

Versions are compared on their numeric ``(major, minor, patch)`` triple only;
qualifiers such as ``-alpha03`` or ``-rc01`` are accepted and ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from tracewire.errors import UnsupportedToolchainError

_VERSION_RE = re.compile(r"^\s*(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:[-+.].*)?\s*$")


class Ordering(Enum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


@dataclass(frozen=True, order=True)
class Version:
    major: int
    minor: int = 0
    patch: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse_version(text: str) -> Version:
    m = _VERSION_RE.match(text)
    if not m:
        raise ValueError(f"Not a version string: {text!r}")
    major, minor, patch = (int(g) if g is not None else 0 for g in m.groups())
    return Version(major, minor, patch)


MIN_SUPPORTED = Version(7, 0, 0)
# AGP 7.1.2 handles multi-release jars in its own ASM pipeline
MULTI_RELEASE_JAR_FIX = Version(7, 1, 2)


def compare(current: Version, threshold: Version) -> Ordering:
    a = (current.major, current.minor, current.patch)
    b = (threshold.major, threshold.minor, threshold.patch)
    if a < b:
        return Ordering.LESS
    if a > b:
        return Ordering.GREATER
    return Ordering.EQUAL


def is_at_least(current: Version, threshold: Version) -> bool:
    return compare(current, threshold) is not Ordering.LESS


def ensure_supported(current: Version) -> None:
    """Abort configuration when the host toolchain is older than supported."""
    if not is_at_least(current, MIN_SUPPORTED):
        raise UnsupportedToolchainError(str(current), str(MIN_SUPPORTED))


def needs_multi_release_jar_repair(current: Version) -> bool:
    return compare(current, MULTI_RELEASE_JAR_FIX) is Ordering.LESS
