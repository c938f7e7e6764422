"""CLI commands for configuration management."""
from __future__ import annotations

import typer

from setup_ai import ui
from setup_ai.error_handler import handle_errors

app = typer.Typer(
    name="config",
    help="Manage setup-ai configuration.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.command()
@handle_errors
def show():
    """Display the resolved configuration (all layers merged)."""
    from rich.panel import Panel
    from rich.table import Table

    from setup_ai.core.config_service import get_config_service

    svc = get_config_service()
    info = svc.show()

    sources = info["sources"]
    ui.console.print(Panel(
        f"Global:  {sources['global_config'] or '[dim]not found[/dim]'}\n"
        f"Project: {sources['project_config'] or '[dim]not found[/dim]'}",
        title="Config Sources",
        border_style="cyan",
    ))

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in _flatten(info["resolved"]):
        table.add_row(key, str(value))
    ui.console.print(table)

    key_set = svc.get_api_key("anthropic") is not None
    ui.console.print(
        f"ANTHROPIC_API_KEY: {'[green]set[/green]' if key_set else '[dim]not set[/dim]'}"
    )


@app.command("set")
@handle_errors
def set_value(
    key: str = typer.Argument(..., help="Config key in dotted notation (e.g. analysis.backend)"),
    value: str = typer.Argument(..., help="Value to set"),
):
    """Set a global configuration value."""
    from setup_ai.core.config_service import get_config_service, parse_value

    svc = get_config_service()
    svc.set_global(key, parse_value(value))
    ui.console.print(f"[green]Set[/green] {key} = {value}")


@app.command()
@handle_errors
def init():
    """Create a .setup-ai.toml in the current directory."""
    from setup_ai.core.config_service import get_config_service

    path = get_config_service().init_project_config()
    ui.console.print(f"[green]Created[/green] {path}")


def _flatten(data: dict, prefix: str = "") -> list[tuple[str, object]]:
    rows: list[tuple[str, object]] = []
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            rows.extend(_flatten(value, full_key))
        else:
            rows.append((full_key, value))
    return rows
