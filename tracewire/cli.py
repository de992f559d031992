"""tracewire CLI: inspect what the plugin would wire for a project descriptor.

Commands:
- plan: apply the plugin to a JSON project descriptor and print the task graph
- check-version: run the host toolchain version gate
- detect: run SDK detection over a resolved-modules JSON list
- strip-jar: run the multi-release jar repair on a single jar
"""

from __future__ import annotations

import json
import threading
from dataclasses import asdict
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tracewire.core import apply
from tracewire.detect.base import SdkStateHolder
from tracewire.detect.sentry_sdk import detect as detect_sdk
from tracewire.errors import ConfigError, UnsupportedToolchainError
from tracewire.host import (
    add_descriptor_variants,
    project_from_descriptor,
    resolve_descriptor_dependencies,
)
from tracewire.transforms.meta_inf_strip import strip_meta_inf
from tracewire.types import PluginConfig, ResolvedModule
from tracewire.validator import load_config, load_project_descriptor, load_resolved_modules
from tracewire.versions import (
    MIN_SUPPORTED,
    MULTI_RELEASE_JAR_FIX,
    ensure_supported,
    needs_multi_release_jar_repair,
    parse_version,
)

app = typer.Typer(add_completion=False, help="Wire instrumentation and upload tasks per variant")
console = Console()


@app.command()
def plan(
    project_file: str = typer.Argument(..., help="Path to a project descriptor JSON"),
    config: str | None = typer.Option(None, "--config", help="Plugin config JSON"),
    cli_executable: str = typer.Option("sentry-cli", "--cli", help="sentry-cli executable"),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable output"),
) -> None:
    path = Path(project_file)
    try:
        descriptor = load_project_descriptor(path)
        cfg = load_config(Path(config)) if config else PluginConfig()
    except ConfigError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(2) from exc

    project = project_from_descriptor(descriptor, base_dir=path.parent)
    try:
        state = apply(project, cfg, cli_executable=cli_executable)
    except UnsupportedToolchainError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc
    add_descriptor_variants(project, descriptor)

    # the host resolves classpaths on its own worker threads
    resolver = threading.Thread(
        target=resolve_descriptor_dependencies, args=(project, descriptor), name="resolver"
    )
    resolver.start()
    resolver.join()
    errors = project.evaluate()

    holder = SdkStateHolder.register(project)
    edges = sorted(project.tasks.edges())
    if as_json:
        payload = {
            "project": project.path,
            "agpVersion": str(project.agp_version),
            "sdkState": holder.peek().model_dump(mode="json"),
            "plans": {name: asdict(p) for name, p in state.plans.items()},
            "tasks": project.tasks.task_names,
            "edges": [[e.kind, e.source, e.target] for e in edges],
            "errors": [str(e) for e in errors],
        }
        print(json.dumps(payload, indent=2))
    else:
        plans = Table(title=f"Variant plans for {project.path} (AGP {project.agp_version})")
        for col in ("Variant", "Allowed", "Instrument", "Minified", "Debuggable", "MR-JAR fix"):
            plans.add_column(col, style="cyan" if col == "Variant" else None)
        for name, p in state.plans.items():
            plans.add_row(
                name,
                str(p.allowed),
                str(p.instrumentation_eligible),
                str(p.minification_enabled),
                str(p.debuggable),
                str(p.repair_needed),
            )
        console.print(plans)

        graph = Table(title="Task edges")
        graph.add_column("Task", style="cyan")
        graph.add_column("Edge")
        graph.add_column("Target", style="green")
        for e in edges:
            graph.add_row(e.source, e.kind, e.target)
        console.print(graph)
        rprint(f"SDK state: [bold]{holder.peek().kind.value}[/bold]")
        for err in errors:
            rprint(f"[yellow]{escape(str(err))}[/yellow]")

    if errors:
        raise typer.Exit(1)


@app.command("check-version")
def check_version(
    version: str = typer.Argument(..., help="Android Gradle Plugin version, e.g. 7.1.2"),
) -> None:
    try:
        current = parse_version(version)
    except ValueError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(2) from exc
    try:
        ensure_supported(current)
    except UnsupportedToolchainError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc
    rprint(f"[green]AGP {current} is supported[/green] (minimum {MIN_SUPPORTED})")
    if needs_multi_release_jar_repair(current):
        rprint(
            "[yellow]MR-JAR repair transform will be registered "
            f"(< {MULTI_RELEASE_JAR_FIX})[/yellow]"
        )


@app.command()
def detect(
    modules_file: str = typer.Argument(..., help="Resolved modules JSON list"),
) -> None:
    try:
        modules = load_resolved_modules(Path(modules_file))
    except ConfigError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(2) from exc
    state = detect_sdk(ResolvedModule(**m) for m in modules)
    rprint(state.model_dump_json(indent=2))


@app.command("strip-jar")
def strip_jar(
    jar: str = typer.Argument(..., help="Path to a jar"),
    out: str = typer.Option("./stripped", help="Output directory"),
) -> None:
    result = strip_meta_inf(Path(jar), Path(out))
    if result == Path(jar):
        rprint(f"[cyan]{jar} is not a multi-release jar, nothing to do[/cyan]")
    else:
        rprint(f"[green]Wrote[/green] {result}")


if __name__ == "__main__":
    app()
