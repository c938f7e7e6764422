#!/usr/bin/env python3
"""
setup-ai: scaffold AI-agent development configuration for a project.

The commands here expose the project analysis core: deterministic
detection, AI-assisted analysis with fallback to defaults, and
validation of hand-edited analysis files.
"""
from __future__ import annotations

import json
from pathlib import Path

import typer
import yaml

from setup_ai import __version__, ui
from setup_ai.error_handler import handle_errors

app = typer.Typer(
    name="setup-ai",
    help="Scaffold AI-agent development configuration for a project.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

from setup_ai.commands import config_cmd

app.add_typer(config_cmd.app, name="config", help="Manage configuration", rich_help_panel="Settings")

OUTPUT_FORMATS = ("table", "json", "yaml")


def _version_callback(value: bool):
    if value:
        print(f"setup-ai {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
    plain: bool = typer.Option(False, "--plain", help="Plain output: no colors or panels."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit.",
    ),
):
    """Scaffold AI-agent development configuration for a project."""
    from setup_ai.log import configure_logging

    if plain:
        ui.set_plain_mode()
    configure_logging(verbose=verbose)


def _project_dir(path: str) -> Path:
    project_path = Path(path).resolve()
    if not project_path.is_dir():
        ui.console.print(f"[red]Not a directory: {project_path}[/red]")
        raise typer.Exit(1)
    return project_path


def _check_format(output_format: str) -> str:
    if output_format not in OUTPUT_FORMATS:
        ui.console.print(
            f"[red]Unknown format '{output_format}'. Choose from: {', '.join(OUTPUT_FORMATS)}[/red]"
        )
        raise typer.Exit(2)
    return output_format


def _emit(data: dict, output_format: str) -> None:
    if output_format == "json":
        ui.print_json_output(data)
    else:
        print(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), end="")


@app.command(rich_help_panel="Analysis")
@handle_errors
def detect(
    path: str = typer.Argument(".", help="Path to project directory"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, yaml"),
):
    """[bold cyan]Detect[/bold cyan] project signals from the filesystem (no AI)."""
    from rich.table import Table

    from setup_ai.analysis import detect_project

    project_path = _project_dir(path)
    output_format = _check_format(output_format)
    detection = detect_project(project_path)

    if output_format != "table":
        _emit(detection.to_dict(), output_format)
        return

    table = Table(title=f"Detection: {project_path.name}", show_header=True, expand=False)
    table.add_column("Signal", style="cyan")
    table.add_column("Value")
    table.add_row("package.json", ui.flag_icon(detection.has_package_json))
    table.add_row("tsconfig.json", ui.flag_icon(detection.has_ts_config))
    table.add_row("docker compose", ui.flag_icon(detection.has_docker_compose))
    table.add_row("prisma schema", ui.flag_icon(detection.has_prisma_schema))
    table.add_row("graphql config", ui.flag_icon(detection.has_graphql_config))
    table.add_row("pyproject.toml", ui.flag_icon(detection.has_pyproject))
    table.add_row("Directories", ", ".join(detection.directories) or "[dim]none[/dim]")
    table.add_row("Config files", ", ".join(detection.config_files) or "[dim]none[/dim]")
    table.add_row("Frameworks", ", ".join(detection.frameworks) or "[dim]none[/dim]")
    table.add_row("ORMs", ", ".join(detection.orms) or "[dim]none[/dim]")
    table.add_row("Test frameworks", ", ".join(detection.test_frameworks) or "[dim]none[/dim]")
    ui.console.print(table)


@app.command(rich_help_panel="Analysis")
@handle_errors
def analyze(
    path: str = typer.Argument(".", help="Path to project directory"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, yaml"),
):
    """[bold cyan]Analyze[/bold cyan] a project with AI, falling back to defaults."""
    from rich.panel import Panel
    from rich.table import Table

    from setup_ai.analysis import analyze as run_analysis
    from setup_ai.analysis import resolve_layout

    project_path = _project_dir(path)
    output_format = _check_format(output_format)

    if output_format == "table":
        with ui.console.status("[bold cyan]Analyzing project...[/bold cyan]"):
            analysis = run_analysis(project_path)
    else:
        analysis = run_analysis(project_path)

    layout = resolve_layout(analysis)

    if output_format != "table":
        _emit({"source": layout.source, "analysis": analysis.to_dict() if analysis else None}, output_format)
        return

    if analysis is None:
        ui.console.print("[yellow]AI-assisted analysis was skipped; using defaults.[/yellow]")

    table = Table(title=f"Project Layout ({layout.source})", show_header=True, expand=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Architecture", layout.architecture)
    table.add_row("API paths", "\n".join(layout.api_paths) or "[dim]none[/dim]")
    table.add_row("DB paths", "\n".join(layout.db_paths) or "[dim]none[/dim]")
    table.add_row("Test paths", "\n".join(layout.test_paths) or "[dim]none[/dim]")
    table.add_row("Rules", ", ".join(layout.rules) or "[dim]none[/dim]")
    table.add_row("Hook steps", ", ".join(layout.hook_steps) or "[dim]none[/dim]")
    ui.console.print(table)

    if layout.guidance:
        ui.console.print(Panel(layout.guidance, title="Architecture Guidance (AI)", border_style="green"))


@app.command(rich_help_panel="Analysis")
@handle_errors
def validate(
    file: Path = typer.Argument(..., help="Analysis file (JSON or YAML) to check"),
):
    """[bold cyan]Validate[/bold cyan] an edited analysis file against the contract."""
    from setup_ai.analysis.validator import require_valid
    from setup_ai.errors import SetupAIError

    try:
        text = file.read_text(encoding="utf-8")
    except OSError as e:
        raise SetupAIError(f"Cannot read {file}: {e}", context={"file": str(file)}) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SetupAIError(f"{file} is not valid JSON or YAML: {e}", context={"file": str(file)}) from e

    # `analyze --format` output wraps the payload.
    if isinstance(data, dict) and "analysis" in data and "source" in data:
        data = data["analysis"]

    analysis = require_valid(data)
    ui.console.print(
        f"[green]Valid analysis:[/green] {analysis.detected_architecture}, "
        f"{len(analysis.api_paths)} API / {len(analysis.db_paths)} DB / "
        f"{len(analysis.test_paths)} test paths"
    )


@app.command(rich_help_panel="Info")
def schema():
    """Print the JSON Schema the reasoning service must follow."""
    from setup_ai.analysis.schema import ANALYSIS_SCHEMA, SCHEMA_VERSION

    print(json.dumps({"version": SCHEMA_VERSION, "schema": ANALYSIS_SCHEMA}, indent=2))


if __name__ == "__main__":
    app()
