"""Terminal output for saws.

Anything meant for scripts (JSON, shell ``export`` lines) goes to stdout. Anything meant
for people (tables, status lines) goes to stderr, so
``eval "$(saws creds get NAME --export)"`` only ever sees the export lines.
"""

from __future__ import annotations

import json
import sys
from enum import Enum
from typing import Any

from rich.console import Console
from rich.table import Table

console = Console(stderr=True)


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"


def print_output(
    data: list[dict[str, Any]] | dict[str, Any],
    fmt: OutputFormat = OutputFormat.TABLE,
    columns: list[str] | None = None,
    title: str | None = None,
) -> None:
    """Print data in the requested format.

    A list of records becomes one table row per record; a single record (login result,
    token status, role credentials) becomes a two-column field/value table.
    """
    if fmt == OutputFormat.JSON:
        print_json(data)
    elif isinstance(data, dict):
        print_record(data, title)
    else:
        print_table(data, columns, title)


def print_json(data: Any) -> None:
    """Print data as formatted JSON to stdout."""
    json.dump(data, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


def print_export(lines: str) -> None:
    """Write shell lines to stdout verbatim, with no styling or wrapping."""
    sys.stdout.write(lines)
    if not lines.endswith("\n"):
        sys.stdout.write("\n")
    sys.stdout.flush()


def print_record(record: dict[str, Any], title: str | None = None) -> None:
    """Print one record as a field/value table on stderr."""
    table = Table(title=title, show_header=False, box=None, padding=(0, 2))
    table.add_column("field", style="bold")
    table.add_column("value", overflow="fold")
    for key, value in record.items():
        table.add_row(key.replace("_", " "), _cell(value))
    console.print(table)


def print_table(
    rows: list[dict[str, Any]],
    columns: list[str] | None = None,
    title: str | None = None,
) -> None:
    """Print records as a Rich table on stderr."""
    if not rows:
        console.print("[dim]No results.[/dim]")
        return

    if columns is None:
        columns = list(rows[0].keys())

    table = Table(title=title)
    for col in columns:
        table.add_column(col.replace("_", " "), overflow="fold")
    for row in rows:
        table.add_row(*[_cell(row.get(col)) for col in columns])

    console.print(table)


def _cell(value: Any) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)
