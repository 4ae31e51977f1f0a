"""Console output for the plugsync CLI."""

import json
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text


class OutputFormatter:
    """Prints user-facing messages, tables and JSON documents.

    Messages are plain text: paths such as ``app/[id]/page.py`` are printed
    as is, never interpreted as rich markup.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress informational messages
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    def print(self, message: Any = "") -> None:
        """Print a message unless JSON output is active."""
        if not self.json_output:
            self.console.print(message, markup=False, soft_wrap=True)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if not self.quiet and not self.json_output:
            self.console.print(message, markup=False)

    def success(self, message: str) -> None:
        """Print a success message."""
        if not self.quiet and not self.json_output:
            self.console.print(f"[green]{escape(message)}[/green]")

    def warning(self, message: str) -> None:
        """Print a warning to stderr."""
        if not self.quiet:
            self.err_console.print(f"[yellow]Warning: {escape(message)}[/yellow]")

    def error(self, message: str) -> None:
        """Print an error to stderr (never suppressed)."""
        self.err_console.print(f"[red]Error: {escape(message)}[/red]")

    def output_json(self, data: Any) -> None:
        """Print data as an indented JSON document."""
        click.echo(json.dumps(data, indent=2, default=str))

    def table(self, title: str, columns: list[str], rows: list[list[str]]) -> None:
        """Print a table (text mode only)."""
        if self.json_output:
            return
        table = Table(title=title)
        for column in columns:
            table.add_column(column, overflow="fold")
        for row in rows:
            table.add_row(*(Text(cell) for cell in row))
        self.console.print(table)
