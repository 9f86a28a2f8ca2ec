"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn

from catalog_bundler import __version__
from catalog_bundler.bundle import (
    Bundle,
    BundleAssembler,
    BundleSession,
    HttpFetcher,
    LocalFetcher,
)
from catalog_bundler.bundle.assembler import resolve_selection
from catalog_bundler.catalog import CatalogBuilder, filter_rows, iter_rows, write_manifest
from catalog_bundler.exceptions import (
    BundleEmptyError,
    ConfigRootMissingError,
    ConfigurationError,
)
from catalog_bundler.models.config import BundlerConfig
from catalog_bundler.models.manifest import Manifest
from catalog_bundler.storage.config_manager import ConfigManager
from catalog_bundler.utils.structured_logger import create_structured_logger
from catalog_bundler.web import (
    load_local_manifest_or_empty,
    load_remote_manifest_or_empty,
    run_server,
)

from .formatters import (
    format_error_with_suggestions,
    print_build_summary,
    print_bundle_summary,
    print_catalog_table,
    print_config,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("catalog_bundler")

app = typer.Typer(
    name="catalog-bundler",
    help=(
        "Index categorized data files into a manifest and download any selection"
        " of them as a single ZIP bundle."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "catalog-bundler"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"

# Set from -v/--verbose; one flag echoes structured events, two enable debug.
_verbosity = 0


def _load_config(cli_options: dict | None = None) -> BundlerConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config(cli_options)
    except ConfigurationError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


def _create_loggers(config: BundlerConfig):
    log_dir = Path(config.log_dir).expanduser() if config.log_dir else None
    return create_structured_logger(
        log_dir=log_dir,
        enable_json=log_dir is not None,
        enable_console=_verbosity >= 1,
    )


def _is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _resolve_source(source: str | None, config: BundlerConfig) -> str:
    """A base URL or a local content root; explicit option, then config."""
    return source or config.base_url or config.content_root


def _load_manifest(source: str, config: BundlerConfig) -> Manifest:
    if _is_remote(source):
        return asyncio.run(
            load_remote_manifest_or_empty(
                source, config.manifest_name, config.request_timeout
            )
        )
    return load_local_manifest_or_empty(Path(source) / config.manifest_name)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Catalog Bundler CLI"""
    global _verbosity

    if version:
        console.print(
            f"[bold]catalog-bundler[/bold] version [cyan]{__version__}[/cyan]"
        )
        raise typer.Exit()

    _verbosity = verbose
    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("catalog_bundler").setLevel(log_level)

    if show_config:
        print_config(CONFIG_FILE, _load_config(), console)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
):
    """Write a configuration file with default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    try:
        ConfigManager(CONFIG_FILE).save_new_config()
    except ConfigurationError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command()
def build(
    root: Path | None = typer.Option(
        None, "--root", "-r", help="Content root to index (overrides config)."
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Where to write the manifest (default: <root>/<manifest_name>).",
    ),
):
    """Index the content root and write the manifest."""
    config = _load_config({"content_root": str(root)} if root else None)
    destination = output or config.manifest_path
    builder = CatalogBuilder(config.content_root_path)

    base_logger, build_logger, _ = _create_loggers(config)
    with base_logger:
        build_logger.build_started(str(config.content_root_path))
        try:
            manifest = builder.build()
        except ConfigRootMissingError as e:
            build_logger.build_failed(str(config.content_root_path), str(e))
            console.print(format_error_with_suggestions(e))
            raise typer.Exit(code=1) from e

        for path in builder.stats.unreadable:
            build_logger.entry_unreadable(path)

        try:
            write_manifest(manifest, destination)
        except OSError as e:
            build_logger.build_failed(str(config.content_root_path), str(e))
            console.print(f"[bold red]✗ Could not write manifest: {e}[/bold red]")
            raise typer.Exit(code=1) from e

        build_logger.build_completed(
            str(destination),
            builder.stats.categories,
            builder.stats.files_indexed,
            len(builder.stats.unreadable),
            builder.stats.duration_s,
        )

    print_build_summary(destination, builder.stats, console)


@app.command(name="list")
def list_command(
    source: str | None = typer.Option(
        None, "--source", help="Base URL or local content root to read from."
    ),
    search: str | None = typer.Option(
        None, "--search", "-s", help="Only show files whose category or name match."
    ),
):
    """Show the files available in the catalog."""
    config = _load_config()
    manifest = _load_manifest(_resolve_source(source, config), config)
    rows = filter_rows(iter_rows(manifest), search)
    print_catalog_table(rows, console, manifest.generated_at)


@app.command(name="bundle")
def bundle_command(
    paths: list[str] | None = typer.Argument(  # noqa: B008
        None, help="Catalog paths to include, e.g. /Equities/AAPL.csv."
    ),
    all_files: bool = typer.Option(
        False, "--all", help="Include every file in the (filtered) catalog."
    ),
    categories: list[str] | None = typer.Option(  # noqa: B008
        None, "--category", "-c", help="Include every file in this category."
    ),
    search: str | None = typer.Option(
        None, "--search", "-s", help="Restrict the catalog view before selecting."
    ),
    source: str | None = typer.Option(
        None, "--source", help="Base URL or local content root to read from."
    ),
    output_dir: Path | None = typer.Option(
        None, "--output-dir", "-o", help="Directory to save the bundle in."
    ),
    workers: int | None = typer.Option(
        None, "--workers", "-w", help="Number of simultaneous downloads."
    ),
):
    """Download a selection of catalog files as one ZIP bundle."""
    cli_options = {
        key: value
        for key, value in {
            "output_dir": str(output_dir) if output_dir else None,
            "max_workers": workers,
        }.items()
        if value is not None
    }
    config = _load_config(cli_options)
    resolved_source = _resolve_source(source, config)
    manifest = _load_manifest(resolved_source, config)

    rows = filter_rows(iter_rows(manifest), search)
    view = [row.entry for row in rows]

    selection = set(paths or [])
    if all_files:
        selection.update(entry.path for entry in view)
    if categories:
        wanted = set(categories)
        selection.update(row.entry.path for row in rows if row.category in wanted)

    base_logger, _, bundle_logger = _create_loggers(config)

    async def _assemble(fetcher) -> Bundle:
        session = BundleSession(
            BundleAssembler(fetcher, config.max_workers, config.bundle_name)
        )
        session.select(selection)
        resolved, _ = resolve_selection(view, session.selection)

        with Progress(
            TextColumn("[cyan]Fetching[/cyan]"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
            transient=True,
        ) as progress:
            task_id = progress.add_task("fetch", total=len(resolved))

            def on_progress(path: str, ok: bool) -> None:
                progress.advance(task_id)
                if not ok:
                    bundle_logger.file_fetch_failed(path)

            return await session.download(view, on_progress)

    async def _bundle_async() -> Bundle:
        if _is_remote(resolved_source):
            async with HttpFetcher(
                resolved_source,
                timeout=config.request_timeout,
                max_attempts=config.max_attempts,
                max_connections=config.max_workers,
            ) as fetcher:
                return await _assemble(fetcher)
        return await _assemble(LocalFetcher(resolved_source))

    with base_logger:
        bundle_logger.bundle_started(resolved_source, len(selection), config.max_workers)
        try:
            bundle = asyncio.run(_bundle_async())
        except BundleEmptyError as e:
            if e.stats is not None:
                bundle_logger.bundle_empty(
                    e.stats.requested, len(e.stats.failed), len(e.stats.unresolved)
                )
                print_bundle_summary(None, e.stats, console)
            console.print(f"[bold red]✗ {e}[/bold red]")
            raise typer.Exit(code=1) from e

        try:
            saved = bundle.save(Path(config.output_dir).expanduser())
        except OSError as e:
            console.print(f"[bold red]✗ Could not save bundle: {e}[/bold red]")
            raise typer.Exit(code=1) from e

        bundle_logger.bundle_completed(
            str(saved),
            bundle.stats.requested,
            bundle.stats.fetched,
            len(bundle.data),
            bundle.stats.duration_s,
        )

    print_bundle_summary(saved, bundle.stats, console)


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Interface to bind."),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to listen on."),
    build_first: bool = typer.Option(
        True, "--build/--no-build", help="Rebuild the manifest before serving."
    ),
):
    """Publish the content root and its manifest over HTTP."""
    cli_options = {
        key: value
        for key, value in {"host": host, "port": port}.items()
        if value is not None
    }
    config = _load_config(cli_options)

    if build_first:
        builder = CatalogBuilder(config.content_root_path)
        try:
            write_manifest(builder.build(), config.manifest_path)
        except ConfigRootMissingError as e:
            console.print(format_error_with_suggestions(e))
            raise typer.Exit(code=1) from e
        console.print(
            f"[green]✓ Indexed {builder.stats.files_indexed} file(s) in "
            f"{builder.stats.categories} categories.[/green]"
        )

    console.print(
        f"[bold cyan]Serving[/bold cyan] {config.content_root_path} on "
        f"[cyan]http://{config.host}:{config.port}/[/cyan] (Ctrl+C to stop)"
    )
    run_server(config.content_root_path, config.manifest_name, config.host, config.port)


@app.command()
def validate():
    """Validate the current configuration."""
    config = _load_config()
    print_config(CONFIG_FILE, config, console)
    console.print("[green]✓ Configuration is valid.[/green]")
