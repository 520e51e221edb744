"""Shared rich consoles for user-facing output."""

from rich.console import Console

console = Console()
err_console = Console(stderr=True)
