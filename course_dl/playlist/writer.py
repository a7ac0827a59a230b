"""
Serializes a `Playlist` back to M3U8 text.
"""

import logging
from pathlib import Path

import aiofiles

from course_dl.exceptions import WriteError

from .tags import Playlist, Tag, TagKind

log = logging.getLogger(__name__)


def format_attribute_list(tag: Tag) -> str:
    """Rebuilds `KEY=VALUE` pairs in their original order and quoting."""
    return ",".join(
        f'{name}="{value}"' if name in tag.quoted else f"{name}={value}"
        for name, value in tag.attributes.items()
    )


def serialize_tag(tag: Tag) -> list[str]:
    """Returns the output lines for one tag (the directive and its URI line, if any)."""
    if tag.kind is TagKind.PASSTHROUGH:
        return [tag.raw]

    if tag.kind is TagKind.KEY:
        return [f"#{tag.kind.value}:{format_attribute_list(tag)}"]

    if tag.kind is TagKind.STREAM_INF:
        lines = [f"#{tag.kind.value}:{format_attribute_list(tag)}"]
    elif tag.kind is TagKind.EXTINF:
        lines = [f"#{tag.kind.value}:{tag.value}"]
    else:
        raise ValueError(f"Unknown tag kind: {tag.kind!r}")

    if tag.uri is not None:
        lines.append(tag.uri)
    return lines


def serialize_playlist(playlist: Playlist) -> str:
    lines: list[str] = []
    for tag in playlist:
        lines.extend(serialize_tag(tag))
    return "\n".join(lines) + "\n"


async def write_playlist(playlist: Playlist, path: Path) -> Path:
    """
    Writes the serialized playlist to `path`.

    Raises:
        WriteError: If the destination cannot be written.
    """
    content = serialize_playlist(playlist)
    try:
        async with aiofiles.open(path, "w", encoding="utf-8", newline="\n") as f:
            await f.write(content)
    except OSError as e:
        raise WriteError(f"Could not write playlist to '{path}': {e}") from e

    log.debug(f"Wrote playlist with {len(playlist)} tags to '{path}'.")
    return path
