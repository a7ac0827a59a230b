"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from course_dl.models.config import DownloadConfig
from course_dl.models.stats import DownloadStats
from course_dl.playlist.tags import Tag
from course_dl.playlist.variants import parse_resolution
from course_dl.utils.formatting import (
    format_bandwidth,
    format_duration,
    format_resolution,
    format_size,
)

SUGGESTIONS_MAP = {
    "MalformedPlaylistError": [
        "• The server did not return a valid M3U8 playlist.",
        "• The URL may point to an HTML login page. Check it in a browser.",
    ],
    "NoVariantFoundError": [
        "• The master playlist lists no variant with a RESOLUTION.",
        "• Run `course-dl inspect <URL>` to see what the playlist offers.",
    ],
    "MissingAttributeError": [
        "• The chosen variant has no playlist URI. The playlist may be truncated.",
        "• Run `course-dl inspect <URL>` to see what the playlist offers.",
    ],
    "InvalidURLError": [
        "• Check that the URL starts with http:// or https://.",
        "• Quote URLs containing '&' or '?' in your shell.",
    ],
    "TransferFailedError": [
        "• The server refused or dropped the request.",
        "• Signed URLs expire. Fetch a fresh playlist URL and retry.",
    ],
    "DownloadFailedError": [
        "• One or more segments could not be downloaded; nothing was kept.",
        "• Signed URLs expire. Fetch a fresh playlist URL and retry.",
        "• Try reducing the number of `--workers`.",
    ],
    "WriteError": [
        "• Check free disk space and write permissions on the output directory.",
    ],
    "RemuxError": [
        "• Make sure ffmpeg is installed and on your PATH.",
        "• Set `ffmpeg_path` in the configuration to a custom binary.",
        "• Run `course-dl diagnose` to check your setup.",
    ],
    "ConfigurationError": [
        "• Run `course-dl validate` to see which setting is invalid.",
        "• Run `course-dl init --force` to restore the defaults.",
    ],
    "TimeoutError": [
        "• A transfer timed out, which may indicate network throttling.",
        "• Raise `request_timeout` in the configuration.",
        "• Try reducing the number of `--workers`.",
    ],
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions = SUGGESTIONS_MAP.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    if stage := getattr(error, "stage", None):
        content.add_row(Text(f"Stage: {stage}", style="dim"))
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


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the raw settings stored in the configuration file."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in config_data.items())
    console.print(
        Panel(
            content or "[dim](empty)[/dim]",
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: DownloadConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Max Workers:", str(config.max_workers))
    table.add_row("Request Timeout:", f"{config.request_timeout}s")
    table.add_row(
        "TLS Verification:",
        "✓ Enabled" if config.verify_tls else "[yellow]✗ Disabled[/yellow]",
    )
    if config.ca_bundle:
        table.add_row("CA Bundle:", f"[dim]{config.ca_bundle}[/dim]")
    if config.referer:
        table.add_row("Referer:", f"[dim]{config.referer}[/dim]")
    table.add_row("Output Directory:", f"[dim]{config.output_dir}[/dim]")
    table.add_row("Container:", config.container)
    table.add_row("Remuxer:", config.ffmpeg_path)
    table.add_row(
        "Keep Segments:", "✓ Enabled" if config.keep_segments else "✗ Disabled"
    )
    table.add_row(
        "Inherit Query:", "✓ Enabled" if config.inherit_query else "✗ Disabled"
    )

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_variants_table(url: str, variants: list[Tag], selected: Tag | None):
    """Lists the variants of a master playlist and marks the selected one."""
    console = Console()
    table = Table(title=f"Variants of [dim]{url}[/dim]", box=box.ROUNDED)
    table.add_column("", width=1)
    table.add_column("Resolution", style="cyan")
    table.add_column("Bandwidth", justify="right")
    table.add_column("Codecs", style="dim")
    table.add_column("URI", overflow="fold")

    for tag in variants:
        table.add_row(
            "[green]✓[/green]" if tag is selected else "",
            format_resolution(parse_resolution(tag.attributes.get("RESOLUTION"))),
            format_bandwidth(tag.attributes.get("BANDWIDTH")),
            tag.attributes.get("CODECS", "-"),
            tag.uri or "[red](missing)[/red]",
        )

    console.print(table)


def print_summary_panel(stats: DownloadStats):
    """Displays the final summary of the download session."""
    duration_s = stats.elapsed
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Downloaded:", f"[bold green]{stats.items_downloaded}[/bold green]"
    )
    if stats.items_skipped_exists > 0:
        stats_table.add_row(
            "○ Skipped:", f"[yellow]{stats.items_skipped_exists} (exists)[/yellow]"
        )
    if stats.items_failed > 0:
        stats_table.add_row("✗ Failed:", f"[bold red]{stats.items_failed}[/bold red]")

    stats_table.add_row("", "")  # Spacer

    stats_table.add_row("Files Fetched:", f"[cyan]{stats.segments_downloaded}[/cyan]")
    stats_table.add_row(
        "Total Size:", f"[cyan]{format_size(stats.total_size_downloaded)}[/cyan]"
    )
    avg_speed = stats.total_size_downloaded / duration_s if duration_s > 0 else 0
    stats_table.add_row(
        "Avg. Speed:", f"[magenta]{format_size(int(avg_speed))}/s[/magenta]"
    )
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    if stats.failures:
        stats_table.add_row("", "")
        for name, reason in stats.failures:
            stats_table.add_row(
                "[red]✗[/red]", f"[red]{escape(name)}[/red]: [dim]{escape(reason)}[/dim]"
            )

    if stats.items_failed:
        title = "⚠ [bold]Download Finished With Errors[/bold]"
        border_color = "yellow"
    else:
        title = "🎬 [bold]Download Complete![/bold]"
        border_color = "green"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
