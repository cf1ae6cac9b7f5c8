"""Rich display utilities for the tfexternal CLI."""

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tfexternal.diagnostics import Diagnostic, Diagnostics
from tfexternal.resource.models import SENSITIVE_ATTRIBUTES, ExternalResource

console = Console()
err_console = Console(stderr=True)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]✓[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[bold red]✗[/] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[bold yellow]⚠[/] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[bold blue]ℹ[/] {message}")


def print_diagnostic(diagnostic: Diagnostic) -> None:
    if diagnostic.is_error:
        title, style = f"[bold red]Error:[/] {diagnostic.summary}", "red"
    else:
        title, style = f"[bold yellow]Warning:[/] {diagnostic.summary}", "yellow"
    err_console.print(
        Panel(Text(diagnostic.detail or "-"), title=title, title_align="left", border_style=style)
    )


def print_diagnostics(diagnostics: Diagnostics) -> None:
    """Print every diagnostic, errors first."""
    for diagnostic in diagnostics.errors:
        print_diagnostic(diagnostic)
    for diagnostic in diagnostics.warnings:
        print_diagnostic(diagnostic)


def print_resource(resource: ExternalResource) -> None:
    """Print the resource attributes; sensitive values are masked."""
    if not resource.exists:
        print_info("Resource does not exist")
        return

    table = Table(title="Resource", show_header=False)
    table.add_column("Attribute", style="cyan")
    table.add_column("Value")

    table.add_row("id", Text(resource.id))
    for name in ("input", "state", "output"):
        value = getattr(resource, name)
        table.add_row(name, Text(value) if value else "[dim]-[/]")
    for name in SENSITIVE_ATTRIBUTES:
        value = getattr(resource, name).get_secret_value()
        table.add_row(name, "[dim](sensitive)[/]" if value else "[dim]-[/]")

    console.print(table)


def print_json(value: Any) -> None:
    """Print a JSON value to stdout without rich markup processing."""
    console.print_json(json.dumps(value))
