"""
Resolves playlist references against the URL of the playlist that contains them.
"""

import logging
from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit

from course_dl.exceptions import InvalidURLError

from .tags import Playlist, TagKind

log = logging.getLogger(__name__)


def _split(url: str, role: str) -> SplitResult:
    if any(ord(char) < 0x20 or char == "\x7f" for char in url):
        raise InvalidURLError(f"The {role} URL contains control characters: {url!r}")
    try:
        parts = urlsplit(url)
        # Accessing the port validates it
        _ = parts.port
    except ValueError as e:
        raise InvalidURLError(f"The {role} URL '{url}' cannot be parsed: {e}") from e
    return parts


def resolve_url(base: str, reference: str, inherit_query: bool = False) -> str:
    """
    Resolves `reference` against `base` following RFC 3986.

    Absolute references pass through unchanged; scheme-relative,
    authority-relative and path-relative references are resolved against the
    base. With `inherit_query`, a relative reference without its own query
    string takes the base's query (used for signed CDN URLs).

    Raises:
        InvalidURLError: If the base is not an absolute URL or either argument
        cannot be parsed.
    """
    base_parts = _split(base, "base")
    if not base_parts.scheme or not base_parts.netloc:
        raise InvalidURLError(f"The base URL '{base}' is not absolute.")

    reference = reference.strip()
    ref_parts = _split(reference, "reference")

    resolved = urljoin(base, reference)

    if (
        inherit_query
        and base_parts.query
        and not ref_parts.query
        and not ref_parts.scheme
        and not ref_parts.netloc
    ):
        parts = urlsplit(resolved)
        resolved = urlunsplit(parts._replace(query=base_parts.query))

    if not urlsplit(resolved).scheme:
        raise InvalidURLError(f"Could not resolve '{reference}' against '{base}'.")
    return resolved


def resolve_media_playlist(
    playlist: Playlist, base: str, inherit_query: bool = False
) -> Playlist:
    """
    Rewrites every key and segment reference of a media playlist to an
    absolute URL, in place.
    """
    for tag in playlist:
        if tag.kind is TagKind.KEY and tag.attributes.get("URI"):
            absolute = resolve_url(base, tag.attributes["URI"], inherit_query)
            tag.set_attribute("URI", absolute)
            tag.uri = absolute
        elif tag.kind is TagKind.EXTINF and tag.uri is not None:
            tag.uri = resolve_url(base, tag.uri, inherit_query)

    log.debug(f"Resolved media playlist references against '{base}'.")
    return playlist
