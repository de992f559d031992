"""Multi-release jar repair transform.

Older AGP versions feed every class of a multi-release jar (MR-JAR) to the
ASM pipeline, including ``META-INF/versions/<N>/`` copies compiled for newer
JVMs, which breaks instrumentation. This transform writes a copy of such jars
without the versioned entries and with ``Multi-Release`` dropped from the
manifest, so consumers resolving with :data:`META_INF_STRIPPED` set receive
the repaired artifact.

Design goals:
- Jars that are not multi-release pass through untouched (idempotent).
- Entry order and compression of the kept entries are preserved.
"""

from __future__ import annotations

import time
import zipfile
from pathlib import Path

from tracewire.host import DependencyHandler, Project
from tracewire.logging import get_logger

logger = get_logger("tracewire.transforms")

META_INF_STRIPPED = "io.sentry.android.gradle.meta-inf-stripped"
ARTIFACT_TYPE = "artifactType"
MANIFEST = "META-INF/MANIFEST.MF"
VERSIONS_PREFIX = "META-INF/versions/"
STRIPPED_SUFFIX = "-meta-inf-stripped"


def _manifest_attributes(raw: bytes) -> list[tuple[str, str]]:
    """Parse a jar manifest main section, joining continuation lines."""
    lines: list[str] = []
    for line in raw.decode("utf-8").splitlines():
        if line.startswith(" ") and lines:
            lines[-1] += line[1:]
        elif line:
            lines.append(line)
        else:
            break  # end of main section
    attrs = []
    for line in lines:
        key, sep, value = line.partition(":")
        if sep:
            attrs.append((key.strip(), value.strip()))
    return attrs


def is_multi_release(jar: Path) -> bool:
    with zipfile.ZipFile(jar) as z:
        try:
            raw = z.read(MANIFEST)
        except KeyError:
            return False
    return any(
        k.lower() == "multi-release" and v.lower() == "true" for k, v in _manifest_attributes(raw)
    )


def _wrap(line: str) -> str:
    # manifest lines are limited to 72 bytes, continuations start with a space
    chunks = [line[:72]]
    rest = line[72:]
    while rest:
        chunks.append(" " + rest[:71])
        rest = rest[71:]
    return "\r\n".join(chunks)


def _stripped_manifest(raw: bytes) -> bytes:
    main, sep, rest = raw.decode("utf-8").replace("\r\n", "\n").partition("\n\n")
    kept = [
        _wrap(f"{k}: {v}")
        for k, v in _manifest_attributes(main.encode("utf-8"))
        if k.lower() != "multi-release"
    ]
    text = "\r\n".join(kept) + "\r\n"
    if sep:
        text += "\r\n" + rest.replace("\n", "\r\n")
    return text.encode("utf-8")


def strip_meta_inf(jar: Path, outdir: Path) -> Path:
    """Return the repaired jar for *jar*, or *jar* itself if no repair is needed."""
    if not is_multi_release(jar):
        return jar

    outdir.mkdir(parents=True, exist_ok=True)
    out = outdir / f"{jar.stem}{STRIPPED_SUFFIX}.jar"
    with zipfile.ZipFile(jar) as src, zipfile.ZipFile(out, "w") as dst:
        for info in src.infolist():
            if info.filename.startswith(VERSIONS_PREFIX):
                continue
            data = src.read(info)
            if info.filename == MANIFEST:
                data = _stripped_manifest(data)
            dst.writestr(info, data, compress_type=info.compress_type)
    logger.info("Stripped META-INF/versions from %s -> %s", jar.name, out.name)
    return out


class MetaInfStripTransform:
    """Artifact transform registered against the dependency handler."""

    def __init__(self, invalidate: int | None = None) -> None:
        self.invalidate = invalidate

    def transform(self, input_artifact: Path, outdir: Path) -> Path:
        return strip_meta_inf(input_artifact, outdir)

    @classmethod
    def register(cls, dependencies: DependencyHandler, force_instrument_dependencies: bool) -> bool:
        # a changed invalidate parameter makes the host re-run the transform
        invalidate = int(time.time() * 1000) if force_instrument_dependencies else None
        params = {"invalidate": invalidate}
        return dependencies.register_transform(
            cls,
            from_attributes={ARTIFACT_TYPE: "jar", META_INF_STRIPPED: False},
            to_attributes={ARTIFACT_TYPE: "jar", META_INF_STRIPPED: True},
            parameters=params,
        )


def mark_runtime_classpath(project: Project, configuration_name: str) -> None:
    """Request repaired artifacts when resolving *configuration_name*."""
    project.configurations[configuration_name].attributes[META_INF_STRIPPED] = True
