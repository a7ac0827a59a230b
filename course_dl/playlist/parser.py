"""
Parses M3U8 playlist text into a `Playlist`.
"""

import logging

from course_dl.exceptions import MalformedPlaylistError

from .tags import ATTRIBUTE_LIST_KINDS, URI_LINE_KINDS, Playlist, Tag, TagKind

log = logging.getLogger(__name__)

_KIND_BY_NAME = {
    kind.value: kind
    for kind in (TagKind.STREAM_INF, TagKind.KEY, TagKind.EXTINF)
}


def _split_attribute_list(payload: str, line_number: int) -> list[str]:
    """Splits on commas that are not inside a quoted string."""
    tokens = []
    current = []
    in_quotes = False
    for char in payload:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            tokens.append("".join(current))
            current = []
            continue
        current.append(char)

    if in_quotes:
        raise MalformedPlaylistError(
            f"Unbalanced quote in attribute list on line {line_number}: {payload!r}"
        )
    tokens.append("".join(current))
    return tokens


def parse_attribute_list(
    payload: str, line_number: int = 0
) -> tuple[dict[str, str], set[str]]:
    """
    Tokenizes a `KEY=VALUE,KEY="VALUE"` list.

    Returns:
        The ordered attribute mapping (values unquoted) and the set of
        attribute names whose value was a quoted string.
    """
    attributes: dict[str, str] = {}
    quoted: set[str] = set()

    for token in _split_attribute_list(payload, line_number):
        if not token.strip():
            continue
        name, _, value = token.partition("=")
        name = name.strip()
        value = value.strip()

        if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
            value = value[1:-1]
            quoted.add(name)
        else:
            quoted.discard(name)

        # Duplicate names keep their first position but take the last value
        attributes[name] = value

    return attributes, quoted


def _parse_directive(line: str, raw_line: str, line_number: int) -> Tag:
    name, _, payload = line[1:].partition(":")
    kind = _KIND_BY_NAME.get(name)

    if kind is None:
        tag = Tag.passthrough(raw_line)
        log.debug(f"Keeping directive '{tag.name}' from line {line_number} as is.")
        return tag

    if kind in ATTRIBUTE_LIST_KINDS:
        attributes, quoted = parse_attribute_list(payload, line_number)
        return Tag(
            kind,
            attributes=attributes,
            quoted=quoted,
            uri=attributes.get("URI") if kind is TagKind.KEY else None,
        )

    return Tag.extinf(payload)


def parse_playlist(text: str) -> Playlist:
    """
    Parses playlist text line by line.

    Lines starting with `#EXT` are directives, other `#` lines are comments and
    are dropped, and remaining non-blank lines are URI references attached to
    the directive right before them when that directive expects one.

    Raises:
        MalformedPlaylistError: If an attribute list contains an unbalanced quote.
    """
    playlist = Playlist()
    previous: Tag | None = None
    segment_count = 0

    for line_number, raw_line in enumerate(text.lstrip("\ufeff").splitlines(), 1):
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith("#EXT"):
            previous = _parse_directive(line, raw_line, line_number)
            playlist.append(previous)
            continue

        if line.startswith("#"):
            continue

        if (
            previous is not None
            and previous.kind in URI_LINE_KINDS
            and previous.uri is None
        ):
            previous.uri = line
            if previous.kind is TagKind.EXTINF:
                segment_count += 1
                previous.segment_number = segment_count
        else:
            log.debug(f"Ignoring URI line {line_number} with no owning directive.")

    log.debug(
        f"Parsed playlist: {len(playlist)} tags, {len(playlist.variants)} variants,"
        f" {segment_count} segments."
    )
    return playlist
