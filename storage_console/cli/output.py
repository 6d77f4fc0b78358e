"""Terminal rendering for the CLI: tables, key/value panels, and status lines."""

from typing import Any, Iterable
import json

from rich import box
from rich.console import Console
from rich.table import Table


console = Console()
error_console = Console(stderr=True)

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")

# Columns rendered in the accent colour; everything else stays plain.
KEY_COLUMNS = frozenset({"ID", "Name", "Key"})


def print_json(data: Any) -> None:
    """Dump data as indented JSON on stdout, bypassing rich markup."""
    print(json.dumps(data, indent=2, default=str))


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


def format_bytes(size: int | float) -> str:
    """Render a byte count with one decimal, e.g. ``1536`` -> ``1.5 KB``."""
    value = float(size or 0)
    for unit in SIZE_UNITS[:-1]:
        if abs(value) < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} {SIZE_UNITS[-1]}"


def format_timestamp(value: str | None) -> str:
    """Trim an ISO-8601 timestamp to minute precision for table cells."""
    if not value:
        return ""
    return value.replace("T", " ")[:16]


def print_table(
    rows: Iterable[dict[str, Any]],
    columns: list[str] | None = None,
    title: str | None = None,
) -> None:
    rows = list(rows)
    if not rows:
        console.print("[dim]No data[/dim]")
        return

    columns = columns or list(rows[0])
    table = Table(title=title, box=box.ROUNDED)
    for column in columns:
        table.add_column(column, style="cyan" if column in KEY_COLUMNS else None)
    for row in rows:
        table.add_row(*(_cell(row.get(column)) for column in columns))

    console.print(table)


def print_dict(data: dict[str, Any], title: str | None = None) -> None:
    """Render one mapping as a two-column key/value table without header."""
    table = Table(title=title, box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field, value in data.items():
        table.add_row(field, _cell(value))

    console.print(table)


def print_buckets(buckets: list[dict[str, Any]]) -> None:
    """Bucket listing with object counts and aggregated sizes."""
    print_table(
        (
            {
                "Name": bucket.get("name", ""),
                "Objects": bucket.get("objectCount", 0),
                "Size": format_bytes(bucket.get("size", 0)),
                "Region": bucket.get("region", ""),
                "Created": format_timestamp(bucket.get("creationDate")),
            }
            for bucket in buckets
        ),
        columns=["Name", "Objects", "Size", "Region", "Created"],
        title=f"Buckets (Total: {len(buckets)})",
    )


def print_entries(location: str, entries: list[dict[str, Any]]) -> None:
    """Folder listing: folders get a trailing slash and no size."""
    rows = []
    for entry in entries:
        name = entry.get("name", "")
        if entry.get("isFolder"):
            rows.append({"Name": f"{name}/", "Class": entry.get("storageClass", "")})
            continue
        rows.append({
            "Name": name,
            "Size": format_bytes(entry.get("size", 0)),
            "Modified": format_timestamp(entry.get("lastModified")),
            "Class": entry.get("storageClass", ""),
        })

    print_table(rows, columns=["Name", "Size", "Modified", "Class"], title=location)


def print_success(message: str) -> None:
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Errors go to stderr so ``--json`` output stays parseable."""
    error_console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    console.print(f"[yellow]Warning: {message}[/yellow]")
