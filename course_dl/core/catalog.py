"""
Catalog providers: the sources of the items a run downloads.

A provider is anything with an `items()` method yielding `MediaItem`s. The
bundled `UrlListCatalog` reads URLs from the command line, from text files or
from standard input.
"""

import logging
import sys
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Protocol, TextIO

from course_dl.exceptions import ConfigurationError
from course_dl.utils.path import DEFAULT_NAME, name_from_url, sanitize_name, url_suffix

log = logging.getLogger(__name__)

HLS_SUFFIXES = {"m3u8", "m3u"}


class MediaKind(Enum):
    HLS = "hls"
    DIRECT = "direct"


@dataclass(frozen=True)
class MediaItem:
    """One downloadable item: a playlist or a single file."""

    url: str
    name: str
    kind: MediaKind

    @classmethod
    def from_url(cls, url: str, name: str | None = None) -> "MediaItem":
        """Builds an item, inferring its kind from the URL's extension."""
        kind = MediaKind.HLS if url_suffix(url) in HLS_SUFFIXES else MediaKind.DIRECT
        return cls(url, name or name_from_url(url) or DEFAULT_NAME, kind)


class CatalogProvider(Protocol):
    def items(self) -> Iterable[MediaItem]: ...


def parse_catalog_line(line: str) -> MediaItem | None:
    """
    Parses one `URL [NAME]` line. Blank lines and `#` comments yield None.
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    url, *rest = line.split(None, 1)
    return MediaItem.from_url(url, rest[0].strip() if rest else None)


class UrlListCatalog:
    """
    Yields items from URL arguments, URL-list files and optionally stdin.

    An argument that names an existing file is read as a URL list; anything
    else is taken as a URL. Duplicate URLs are yielded once. A fixed `name`
    replaces the naming hints. A name already used by an earlier item is
    numbered from the second item on, so lessons that all end in `index.m3u8`
    still get distinct output files.
    """

    def __init__(
        self,
        sources: Iterable[str] = (),
        use_stdin: bool = False,
        name: str | None = None,
        stdin: TextIO | None = None,
    ):
        self.sources = list(sources)
        self.use_stdin = use_stdin
        self.name = name
        self._stdin = stdin or sys.stdin

    def _lines(self) -> Iterator[str]:
        for source in self.sources:
            path = Path(source).expanduser()
            if "://" not in source and path.is_file():
                log.debug(f"Reading URL list from '{path}'.")
                try:
                    yield from path.read_text(encoding="utf-8").splitlines()
                except (OSError, UnicodeDecodeError) as e:
                    raise ConfigurationError(
                        f"Could not read URL list '{path}': {e}"
                    ) from e
            else:
                yield source

        if self.use_stdin:
            yield from self._stdin

    def items(self) -> Iterator[MediaItem]:
        seen: set[str] = set()
        used_names: set[str] = set()
        for line in self._lines():
            item = parse_catalog_line(line)
            if item is None:
                continue
            if item.url in seen:
                log.debug(f"Skipping duplicate URL '{item.url}'.")
                continue
            seen.add(item.url)
            if self.name:
                item = replace(item, name=self.name)
            yield replace(item, name=self._unique_name(item.name, used_names))

    @staticmethod
    def _unique_name(name: str, used_names: set[str]) -> str:
        """
        Numbers a name already taken by an earlier item: `index`, `index (2)`.

        Names are compared as the file names they become, so two names that
        sanitize to the same output file count as a clash.
        """
        candidate, n = name, 1
        while sanitize_name(candidate).casefold() in used_names:
            n += 1
            candidate = f"{name} ({n})"
        used_names.add(sanitize_name(candidate).casefold())
        return candidate

    def __iter__(self) -> Iterator[MediaItem]:
        return self.items()
