"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from course_dl import __version__
from course_dl.core.catalog import MediaKind, UrlListCatalog
from course_dl.core.download_manager import DownloadManager
from course_dl.exceptions import CourseDlError, RemuxError
from course_dl.media import Downloader, Remuxer, create_http_session
from course_dl.models.config import DownloadConfig
from course_dl.models.stats import DownloadStats
from course_dl.playlist.parser import parse_playlist
from course_dl.playlist.variants import find_best_variant
from course_dl.storage.config_manager import ConfigManager

from .formatters import (
    print_config,
    print_summary_panel,
    print_validation_table,
    print_variants_table,
)
from .progress_manager import ProgressManager

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
log = logging.getLogger("course_dl")

app = typer.Typer(
    name="course-dl",
    help=(
        "Download HLS video-course lessons into single media files. Use"
        " 'course-dl <command> --help' for more info."
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
    return base_dir.expanduser() / "course-dl"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v for debug, -vv to include libraries).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration file."
    ),
):
    """Course Downloader CLI"""
    if version:
        console.print(f"[bold]course-dl[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    if verbose >= 1:
        logging.getLogger("course_dl").setLevel("DEBUG")
    if verbose >= 2:
        logging.getLogger().setLevel("DEBUG")

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[yellow]No config file found, defaults apply.[/yellow] Run "
                "[cyan]course-dl init[/cyan] to create one."
            )
            raise typer.Exit()
        config_manager = ConfigManager(CONFIG_FILE)
        print_config(CONFIG_FILE, config_manager.read_raw())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing file without asking."
    ),
):
    """Write a configuration file with the default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    ConfigManager(CONFIG_FILE).save_new_config()
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    if not Remuxer().is_available():
        console.print(
            "[yellow]⚠️  ffmpeg was not found on PATH. Set 'ffmpeg_path' before "
            "downloading HLS lessons.[/yellow]"
        )
    console.print("Ready to download! Try: [cyan]course-dl download <URL>[/cyan]")


def _check_remuxer(config: DownloadConfig, has_hls_items: bool) -> None:
    """Fails fast before any transfer when HLS items cannot be remuxed."""
    if has_hls_items and not Remuxer(config.ffmpeg_path).is_available():
        raise RemuxError(
            f"Remuxer '{config.ffmpeg_path}' was not found. Install ffmpeg or set "
            "'ffmpeg_path' in the configuration."
        )


@app.command(name="download")
def download_command(
    urls: list[str] | None = typer.Argument(  # noqa: B008
        None, help="One or more playlist/file URLs or paths to files containing URLs."
    ),
    output_dir: str | None = typer.Option(
        None, "-o", "--output", help="Directory for the finished files."
    ),
    workers: int | None = typer.Option(
        None,
        "-w",
        "--workers",
        help="Number of simultaneous transfers per lesson (default 30).",
    ),
    container: str | None = typer.Option(
        None, "--container", help="Output container extension (mp4, mkv, ts, mov)."
    ),
    keep_segments: bool | None = typer.Option(
        None,
        "--keep-segments/--no-keep-segments",
        help="Keep the downloaded segments and local playlist after remuxing.",
    ),
    inherit_query: bool | None = typer.Option(
        None,
        "--inherit-query/--no-inherit-query",
        help="Append the playlist URL's query string to segment URLs without one.",
    ),
    name: str | None = typer.Option(
        None, "--name", "-n", help="Output name, used instead of the URL's file name."
    ),
    stdin: bool = typer.Option(
        False, "--stdin", help="Read URLs from standard input, one URL per line."
    ),
):
    """Download lessons from playlist or file URLs."""
    if stdin and sys.stdin.isatty():
        console.print(
            "[yellow]⚠️  No input detected on stdin. Please pipe URLs or redirect"
            " a file.[/yellow]"
        )
        raise typer.Exit(code=1)
    if not urls and not stdin:
        console.print(
            "[red]✗ No URLs provided.[/red] "
            "Use: [cyan]course-dl download <URL>[/cyan] or [cyan]--stdin[/cyan]"
        )
        raise typer.Exit(code=1)

    cli_options = {
        key: value
        for key, value in {
            "output_dir": output_dir,
            "max_workers": workers,
            "container": container,
            "keep_segments": keep_segments,
            "inherit_query": inherit_query,
        }.items()
        if value is not None
    }
    config = ConfigManager(CONFIG_FILE).load_config(cli_options)
    log.debug(f"Loaded configuration from '{CONFIG_FILE}': {config!r}")

    catalog = UrlListCatalog(urls or [], use_stdin=stdin, name=name)
    items = list(catalog.items())
    if not items:
        console.print("[yellow]⚠️  No valid URLs to process.[/yellow]")
        raise typer.Exit(code=1)
    _check_remuxer(config, any(item.kind is MediaKind.HLS for item in items))

    async def _download_async() -> DownloadStats:
        console.print(
            f"[bold cyan]🎬 Starting download of {len(items)} item(s)...[/bold cyan]"
        )
        async with ProgressManager(console=console) as progress_manager:
            async with create_http_session(config) as session:
                manager = DownloadManager(config, Downloader(session), progress_manager)
                return await manager.execute_downloads(items)

    stats = asyncio.run(_download_async())
    print_summary_panel(stats)
    if stats.items_failed:
        raise typer.Exit(code=1)


@app.command()
def inspect(
    url: str = typer.Argument(..., help="URL of a master or media playlist."),
):
    """Show the variants of a master playlist and the one that would be chosen."""
    config = ConfigManager(CONFIG_FILE).load_config()

    async def _fetch() -> str:
        async with create_http_session(config) as session:
            return await Downloader(session).fetch_text(url)

    playlist = parse_playlist(asyncio.run(_fetch()))
    if not playlist.is_master:
        console.print(
            f"[cyan]Media playlist[/cyan] with {len(playlist.segments)} segments and "
            f"{len(playlist.keys)} key directives."
        )
        return

    selected = find_best_variant(playlist)
    print_variants_table(url, playlist.variants, selected)
    if selected is None:
        console.print("[red]✗ No variant has a usable RESOLUTION.[/red]")
        raise typer.Exit(code=1)


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config_manager = ConfigManager(CONFIG_FILE)
        config = config_manager.load_config()
        print_validation_table(config)
    except CourseDlError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def diagnose():
    """Diagnose common configuration and setup issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False
    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print(
            "[yellow]○ No config file, defaults apply.[/] "
            "Run [cyan]course-dl init[/cyan] to create one."
        )

    config = None
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        console.print("[green]✓[/] Configuration is valid and can be loaded.")
    except CourseDlError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        issues_found = True

    if config:
        output_dir = Path(config.output_dir).expanduser()
        existing = output_dir
        while not existing.exists() and existing != existing.parent:
            existing = existing.parent
        if os.access(existing, os.W_OK):
            console.print(
                f"[green]✓[/] Output directory is writable: [dim]{output_dir}[/dim]"
            )
        else:
            console.print(
                f"[red]✗ Output directory '{output_dir}' is not writable.[/red]"
            )
            issues_found = True

    ffmpeg_path = config.ffmpeg_path if config else "ffmpeg"
    if Remuxer(ffmpeg_path).is_available():
        console.print(f"[green]✓[/] Remuxer '{ffmpeg_path}' found.")
    else:
        console.print(f"[red]✗ Remuxer '{ffmpeg_path}' not found.[/red]")
        issues_found = True

    console.print()
    if not issues_found:
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
