"""Helpers shared by the pvekit command modules."""
from __future__ import annotations

import os
from typing import NoReturn, Optional

import typer
from rich.console import Console

MOCK_ENV_VAR = "PVEKIT_MOCK"

# (style, symbol) per message kind
_MARKERS = {
    'success': ("green", "✓"),
    'error': ("red", "✗"),
    'warning': ("yellow", "⚠"),
    'info': ("cyan", "ℹ"),
}


def is_mock() -> bool:
    """True when PVEKIT_MOCK=1: commands log what they would run instead."""
    return os.environ.get(MOCK_ENV_VAR) == "1"


def confirm_action(message: str, yes_flag: bool = False, mock: bool = False) -> bool:
    """Ask for confirmation; --yes and mock mode answer for the user."""
    if yes_flag or mock:
        return True
    return typer.confirm(message)


def prompt_required(message: str, console: Console, value: Optional[str] = None) -> str:
    """Return value, prompting for it when missing; exit 1 on empty input."""
    if value is None:
        value = typer.prompt(message, default="", show_default=False)
    value = value.strip()
    if not value:
        print_error(console, f"{message} is required")
        raise typer.Exit(1)
    return value


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> NoReturn:
    """Print an error raised by a service and leave with exit_code.

    Args:
        e: Exception to report
        console: Rich console for output
        verbose: Also print the traceback
        exit_code: Process exit status
    """
    console.print(f"[red]Error:[/red] {e}")
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def _print_marked(console: Console, kind: str, message: str, prefix: Optional[str]) -> None:
    style, symbol = _MARKERS[kind]
    console.print(f"[{style}]{prefix or symbol}[/{style}] {message}")


def print_success(console: Console, message: str, prefix: Optional[str] = None) -> None:
    _print_marked(console, 'success', message, prefix)


def print_error(console: Console, message: str, prefix: Optional[str] = None) -> None:
    _print_marked(console, 'error', message, prefix)


def print_warning(console: Console, message: str, prefix: Optional[str] = None) -> None:
    _print_marked(console, 'warning', message, prefix)


def print_info(console: Console, message: str, prefix: Optional[str] = None) -> None:
    _print_marked(console, 'info', message, prefix)
