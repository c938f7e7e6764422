"""Shared UI theme, console, and display helpers for setup-ai."""

import json

from rich.console import Console
from rich.theme import Theme

# ── Output Mode State ──
_plain_mode: bool = False


def set_plain_mode(enabled: bool = True) -> None:
    """Enable or disable plain text output (no colors, no panels)."""
    global _plain_mode, console
    _plain_mode = enabled
    if enabled:
        console = Console(no_color=True, highlight=False)


def is_plain() -> bool:
    """Check if plain output mode is active."""
    return _plain_mode


def print_json_output(data: dict | list) -> None:
    """Print data as formatted JSON to stdout."""
    print(json.dumps(data, indent=2, default=str))


# ── Theme ──
SETUP_AI_THEME = Theme({
    "info": "cyan",
    "success": "bold green",
    "warning": "yellow",
    "error": "bold red",
    "muted": "dim",
})

console = Console(theme=SETUP_AI_THEME)

ICONS = {
    "yes": "[green]✔[/green]",
    "no": "[dim]○[/dim]",
}

PLAIN_ICONS = {
    "yes": "[x]",
    "no": "[ ]",
}


def flag_icon(value: bool) -> str:
    """Icon for a boolean detection flag."""
    icons = PLAIN_ICONS if _plain_mode else ICONS
    return icons["yes"] if value else icons["no"]
