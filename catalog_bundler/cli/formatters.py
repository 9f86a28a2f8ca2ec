"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from catalog_bundler.catalog.query import CatalogRow
from catalog_bundler.models.config import BundlerConfig
from catalog_bundler.models.stats import BuildStats, BundleStats
from catalog_bundler.utils.formatting import (
    format_duration,
    format_size,
    format_timestamp,
)


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigRootMissingError": [
            "• Check that `content_root` in the configuration points at a directory.",
            "• Pass the directory explicitly with `catalog-bundler build --root`.",
        ],
        "ConfigurationError": [
            "• Run `catalog-bundler validate` to see the effective settings.",
            "• Run `catalog-bundler init --force` to regenerate the config file.",
        ],
        "ManifestUnavailableError": [
            "• Run `catalog-bundler build` to (re)generate the manifest.",
            "• Check that `base_url` points at the server publishing the catalog.",
        ],
        "BundleEmptyError": [
            "• Check the selected paths with `catalog-bundler list`.",
            "• The server may be unreachable; try again in a few minutes.",
        ],
        "ClientResponseError": [
            "• A network connection issue occurred.",
            "• The catalog server might be temporarily unavailable.",
        ],
        "TimeoutError": [
            "• A request timed out.",
            "• Try reducing `--workers` or increasing `request_timeout`.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config: BundlerConfig, console: Console):
    """Displays the effective configuration."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    for key, value in config.model_dump().items():
        table.add_row(f"{key}:", str(value) if value != "" else "[dim]-[/dim]")

    source = str(config_path) if config_path.is_file() else "defaults"
    console.print(
        Panel(table, title=f"Configuration ([dim]{source}[/dim])", border_style="cyan")
    )


def print_catalog_table(
    rows: list[CatalogRow], console: Console, generated_at: Any = None
) -> None:
    """Renders catalog rows, grouped in manifest order."""
    if not rows:
        console.print("[yellow]No files available.[/yellow]")
        return

    table = Table(box=box.SIMPLE_HEAVY, show_lines=False)
    table.add_column("Category", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Size", justify="right")
    table.add_column("Modified", style="dim")
    table.add_column("Path", style="dim")

    for row in rows:
        table.add_row(
            row.category,
            row.entry.name,
            format_size(row.entry.size),
            format_timestamp(row.entry.last_modified),
            row.entry.path,
        )

    caption = f"{len(rows)} file(s)"
    if generated_at is not None:
        caption += f" · manifest generated {format_timestamp(generated_at)}"
    table.caption = caption
    console.print(table)


def print_build_summary(
    manifest_path: Path, stats: BuildStats, console: Console
) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(justify="right")
    table.add_row("Categories:", f"[cyan]{stats.categories}[/cyan]")
    table.add_row("Files indexed:", f"[green]{stats.files_indexed}[/green]")
    table.add_row("Skipped (hidden):", str(stats.skipped_hidden))
    table.add_row("Skipped (extension):", str(stats.skipped_extension))
    if stats.unreadable:
        table.add_row("Unreadable:", f"[yellow]{len(stats.unreadable)}[/yellow]")
    table.add_row("Duration:", format_duration(stats.duration_s))

    console.print(
        Panel(
            table,
            title=f"[bold green]✓ Manifest written[/] [dim]{manifest_path}[/dim]",
            border_style="green",
            expand=False,
        )
    )


def print_bundle_summary(
    bundle_path: Path | None, stats: BundleStats, console: Console
) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(justify="right")
    table.add_row("Requested:", str(stats.requested))
    table.add_row("Bundled:", f"[green]{stats.fetched}[/green]")
    if stats.failed:
        table.add_row("Failed:", f"[red]{len(stats.failed)}[/red]")
    if stats.unresolved:
        table.add_row("Not in catalog:", f"[yellow]{len(stats.unresolved)}[/yellow]")
    table.add_row("Size:", format_size(stats.total_bytes))
    table.add_row("Duration:", format_duration(stats.duration_s))

    if bundle_path is None:
        title = "[bold red]✗ Nothing to deliver[/bold red]"
        border = "red"
    else:
        title = f"[bold green]✓ Bundle saved[/] [dim]{bundle_path}[/dim]"
        border = "green"
    console.print(Panel(table, title=title, border_style=border, expand=False))

    for path in stats.failed:
        console.print(f"  [red]✗[/red] [dim]{path}[/dim]")
