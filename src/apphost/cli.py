"""
CLI: ``healthtracker-apphost`` — run and inspect the HealthTracker app host.

Usage::

    healthtracker-apphost run                  # Build, start, block until Ctrl+C
    healthtracker-apphost describe             # One-line model descriptor
    healthtracker-apphost resources            # Table of declared resources
    healthtracker-apphost compose -o out.yml   # Write the generated compose file
    healthtracker-apphost status               # Inspect running resources
    healthtracker-apphost down                 # Tear the deployment down
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from apphost.config import AppHostConfig
from apphost.errors import AppHostError
from apphost.healthtracker import build_app
from apphost.logging import configure_logging
from apphost.results import RunResult

app = typer.Typer(
    name="healthtracker-apphost",
    help="HealthTracker app host — declare, run and inspect the distributed application.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()
err_console = Console(stderr=True)


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("healthtracker-apphost")
        except PackageNotFoundError:
            v = "0.1.0"
        typer.echo(f"healthtracker-apphost {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
    log_format: str | None = typer.Option(None, "--log-format", help="console or json."),
) -> None:
    """HealthTracker app host CLI."""
    configure_logging(
        level=log_level.upper() if log_level else None,  # type: ignore[arg-type]
        format=log_format.lower() if log_format else None,  # type: ignore[arg-type]
        force=bool(log_level or log_format),
    )


def _config(project: str | None = None, **overrides: Any) -> AppHostConfig:
    if project:
        overrides["project_name"] = project
    try:
        return AppHostConfig.from_env(**overrides)
    except AppHostError as exc:
        err_console.print(f"[red]✗ {exc.message}[/]")
        raise typer.Exit(code=exc.exit_code)


# ── Run / down / status ──────────────────────────────────────────────────


@app.command("run")
def run_app(
    project: str | None = typer.Option(None, "--project-name", "-p", help="Compose project name."),
    build: bool | None = typer.Option(
        None, "--build/--no-build", help="Build project images before starting [default: APPHOST_BUILD or build]."
    ),
    keep: bool | None = typer.Option(
        None, "--keep/--no-keep", help="Leave containers running on exit [default: APPHOST_KEEP_RESOURCES or no]."
    ),
    timeout: int | None = typer.Option(None, "--timeout", "-t", help="Per-resource startup timeout (s)."),
) -> None:
    """Build the application model and run it until interrupted."""
    overrides: dict[str, Any] = {}
    if build is not None:
        overrides["build"] = build
    if keep is not None:
        overrides["keep_resources"] = keep
    if timeout is not None:
        overrides["startup_timeout_seconds"] = timeout
    application = build_app(config=_config(project, **overrides))

    console.print(f"[bold green]▲ apphost run[/] — project: {application.config.project_name}")
    exit_code = application.run()
    if exit_code:
        raise typer.Exit(code=exit_code)


@app.command("down")
def down(
    project: str | None = typer.Option(None, "--project-name", "-p", help="Compose project name."),
) -> None:
    """Stop and remove the application's containers."""
    application = build_app(config=_config(project))
    try:
        application.docker.compose_down()
    except AppHostError as exc:
        err_console.print(f"[red]✗ {exc.message}[/]")
        raise typer.Exit(code=exc.exit_code)
    console.print("[green]✓ Resources stopped[/]")


@app.command("status")
def status(
    project: str | None = typer.Option(None, "--project-name", "-p", help="Compose project name."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show the state of each declared resource."""
    application = build_app(config=_config(project))
    try:
        result = application.status()
    except AppHostError as exc:
        err_console.print(f"[red]✗ {exc.message}[/]")
        raise typer.Exit(code=exc.exit_code)

    if json_out:
        typer.echo(result.model_dump_json(indent=2))
    else:
        _print_run_result(result)


# ── Model inspection ─────────────────────────────────────────────────────


@app.command("describe")
def describe(
    json_out: bool = typer.Option(False, "--json", help="Output the model as JSON."),
) -> None:
    """Print the application model descriptor."""
    model = build_app(config=_config()).model
    if json_out:
        typer.echo(json.dumps(model.to_dict(), indent=2))
    else:
        typer.echo(model.describe())


@app.command("resources")
def resources() -> None:
    """List declared resources and their relationships."""
    model = build_app(config=_config()).model

    table = Table(title="Resources")
    table.add_column("Name", style="bold cyan")
    table.add_column("Kind")
    table.add_column("Project")
    table.add_column("Health")
    table.add_column("External")
    table.add_column("Waits for")
    table.add_column("Needed by")

    for resource in model.resources:
        table.add_row(
            resource.name,
            resource.kind.value,
            resource.project.name if resource.project else "—",
            resource.health_check_path or "—",
            "yes" if resource.external else "—",
            ", ".join(resource.waits_for) or "—",
            ", ".join(model.dependents_of(resource.name)) or "—",
        )
    console.print(table)


@app.command("compose")
def compose(
    output: str | None = typer.Option(None, "--output", "-o", help="Output path."),
    project: str | None = typer.Option(None, "--project-name", "-p", help="Compose project name."),
) -> None:
    """Write the generated docker-compose file."""
    application = build_app(config=_config(project))
    path = application.write_compose(Path(output) if output else None)
    console.print(f"[green]✓ Wrote {path}[/]")


# ── Output helpers ───────────────────────────────────────────────────────


def _print_run_result(result: RunResult) -> None:
    table = Table(title=f"{result.project_name} — {result.summary}")
    table.add_column("Resource", style="bold cyan")
    table.add_column("Kind")
    table.add_column("Status")
    table.add_column("Container")

    colors = {"healthy": "green", "running": "green", "starting": "yellow"}
    for r in result.resources:
        color = colors.get(r.status, "red")
        table.add_row(r.name, r.kind, f"[{color}]{r.status}[/]", r.container_name or "—")
    console.print(table)
