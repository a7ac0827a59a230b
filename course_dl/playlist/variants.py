"""
Chooses the best-quality variant out of a master playlist.
"""

import logging
import re

from course_dl.exceptions import MissingAttributeError, NoVariantFoundError

from .tags import Playlist, Tag

log = logging.getLogger(__name__)

_RESOLUTION_REGEX = re.compile(r"^\s*(?P<width>\d+)\s*[xX]\s*(?P<height>\d+)\s*$")


def parse_resolution(value: str | None) -> tuple[int, int] | None:
    """Parses a `<width>x<height>` string. Returns None if it is not one."""
    if not value:
        return None
    match = _RESOLUTION_REGEX.match(value)
    if not match:
        return None
    return int(match.group("width")), int(match.group("height"))


def find_best_variant(playlist: Playlist) -> Tag | None:
    """
    Returns the STREAM-INF tag with the widest RESOLUTION, or None.

    Ties keep the variant that appears first. Variants without a parsable
    RESOLUTION are skipped.
    """
    best: Tag | None = None
    best_width = -1

    for tag in playlist.variants:
        resolution = parse_resolution(tag.attributes.get("RESOLUTION"))
        if resolution is None:
            log.debug(
                "Skipping variant without a usable RESOLUTION: "
                f"{tag.attributes.get('RESOLUTION')!r}"
            )
            continue

        width, _ = resolution
        if width > best_width:
            best, best_width = tag, width

    return best


def select_variant(playlist: Playlist) -> str:
    """
    Selects the best variant and returns its URI reference.

    Raises:
        NoVariantFoundError: If no variant has a parsable RESOLUTION.
        MissingAttributeError: If the chosen variant has no URI line.
    """
    tag = find_best_variant(playlist)
    if tag is None:
        raise NoVariantFoundError(
            f"No variant with a usable RESOLUTION among {len(playlist.variants)}"
            " declared variants."
        )
    if not tag.uri:
        raise MissingAttributeError(
            f"Variant {tag.attributes.get('RESOLUTION')} has no playlist URI."
        )

    log.debug(f"Selected variant {tag.attributes['RESOLUTION']}: {tag.uri}")
    return tag.uri
