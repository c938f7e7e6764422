"""Unified CLI error handler for setup-ai commands."""

from __future__ import annotations

import functools
import logging
import os
import traceback

import typer

from setup_ai.errors import AnalysisValidationError, ConfigError, SetupAIError
from setup_ai import ui

logger = logging.getLogger("setup_ai.error_handler")


def _debug_mode() -> bool:
    """Check if debug output is enabled via SETUP_AI_DEBUG env var."""
    return os.environ.get("SETUP_AI_DEBUG", "").lower() in ("1", "true", "yes")


def _render_error(e: SetupAIError) -> None:
    """Render a SetupAIError with Rich formatting and context."""
    console = ui.console
    console.print(f"\n[bold red]Error:[/bold red] {e}")

    if isinstance(e, AnalysisValidationError):
        for message in e.errors:
            console.print(f"  [red]-[/red] {message}")

    if e.context and _debug_mode():
        context_parts = [
            f"  [dim]{key}:[/dim] {value}" for key, value in e.context.items() if value
        ]
        if context_parts:
            console.print("[dim]Context:[/dim]")
            for part in context_parts:
                console.print(part)

    if isinstance(e, ConfigError):
        console.print("[dim]Run 'setup-ai config show' to inspect the resolved configuration.[/dim]")


def handle_errors(func):
    """Decorator that catches SetupAIError and renders formatted CLI output.

    Usage::

        @app.command()
        @handle_errors
        def my_command(...):
            ...  # no try/except needed
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SetupAIError as e:
            _render_error(e)
            if _debug_mode():
                ui.console.print(f"\n[dim]{traceback.format_exc()}[/dim]")
            raise typer.Exit(e.exit_code)
        except KeyboardInterrupt:
            ui.console.print("\n[dim]Interrupted.[/dim]")
            raise typer.Exit(130)
        except (typer.Exit, typer.Abort, SystemExit):
            raise
        except Exception as e:
            ui.console.print(f"\n[bold red]Unexpected error:[/bold red] {e}")
            if _debug_mode():
                ui.console.print(f"\n[dim]{traceback.format_exc()}[/dim]")
            else:
                ui.console.print("[dim]Set SETUP_AI_DEBUG=1 for full traceback.[/dim]")
            raise typer.Exit(1)

    return wrapper
