"""
Utilities for handling file paths and output names.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlsplit

from pathvalidate import sanitize_filename

log = logging.getLogger(__name__)

DEFAULT_NAME = "untitled"


def sanitize_name(name: str, replacement: str = "_") -> str:
    """
    Makes a naming hint safe to use as a single file or directory name.

    Invalid characters are replaced rather than dropped, so distinct hints
    stay distinct. An empty result falls back to a fixed placeholder.
    """
    cleaned = sanitize_filename(
        name.strip(), replacement_text=replacement, platform="universal"
    ).strip()
    # Leading dots would hide the file on POSIX
    cleaned = cleaned.lstrip(".")
    return cleaned or DEFAULT_NAME


def name_from_url(url: str) -> Optional[str]:
    """Derives a naming hint from the last path component of a URL."""
    path = unquote(urlsplit(url).path).rstrip("/")
    stem = Path(path.rsplit("/", 1)[-1]).stem
    return stem or None


def url_suffix(url: str) -> str:
    """Returns the lower-cased extension of a URL's path, without the dot."""
    return Path(urlsplit(url).path).suffix.lstrip(".").lower()


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


async def remove_files(paths: list[Path]) -> None:
    """Deletes files in a worker thread, ignoring those that do not exist."""

    def remove_all() -> None:
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                log.warning(f"Could not remove '{path}': {e}")

    await asyncio.to_thread(remove_all)
