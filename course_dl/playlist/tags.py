"""
In-memory representation of playlist directives.

A directive is one `Tag` whose `kind` is drawn from the closed `TagKind` set.
A `Playlist` is the ordered sequence of tags exactly as they were parsed.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum


class TagKind(Enum):
    """The directive kinds the engine understands."""

    STREAM_INF = "EXT-X-STREAM-INF"
    KEY = "EXT-X-KEY"
    EXTINF = "EXTINF"
    PASSTHROUGH = "PASSTHROUGH"


# Directive kinds that take the following non-comment line as their URI
URI_LINE_KINDS = frozenset({TagKind.STREAM_INF, TagKind.EXTINF})

# Directive kinds whose payload is a comma-separated KEY=VALUE list
ATTRIBUTE_LIST_KINDS = frozenset({TagKind.STREAM_INF, TagKind.KEY})


@dataclass
class Tag:
    """One playlist directive."""

    kind: TagKind
    attributes: dict[str, str] = field(default_factory=dict)
    quoted: set[str] = field(default_factory=set)
    uri: str | None = None
    value: str = ""
    raw: str = ""
    segment_number: int | None = None

    @property
    def name(self) -> str:
        """The directive name as it appears after the leading '#'."""
        if self.kind is TagKind.PASSTHROUGH:
            return self.raw.strip()[1:].split(":", 1)[0]
        return self.kind.value

    def set_attribute(self, key: str, value: str, quoted: bool | None = None) -> None:
        """
        Sets an attribute, keeping its position if it already exists.

        When `quoted` is None an existing attribute keeps its quoting and a new
        one is written unquoted.
        """
        self.attributes[key] = value
        if quoted is True:
            self.quoted.add(key)
        elif quoted is False:
            self.quoted.discard(key)

    @classmethod
    def stream_inf(
        cls, attributes: dict[str, str], uri: str | None = None, quoted=()
    ) -> "Tag":
        return cls(TagKind.STREAM_INF, dict(attributes), set(quoted), uri=uri)

    @classmethod
    def key(cls, attributes: dict[str, str], quoted=("URI",)) -> "Tag":
        attrs = dict(attributes)
        return cls(TagKind.KEY, attrs, set(quoted) & set(attrs), uri=attrs.get("URI"))

    @classmethod
    def extinf(
        cls, value: str, uri: str | None = None, segment_number: int | None = None
    ) -> "Tag":
        return cls(TagKind.EXTINF, value=value, uri=uri, segment_number=segment_number)

    @classmethod
    def passthrough(cls, raw: str) -> "Tag":
        return cls(TagKind.PASSTHROUGH, raw=raw)


@dataclass
class Playlist:
    """An ordered sequence of tags. Order is also key/segment discovery order."""

    tags: list[Tag] = field(default_factory=list)

    def __iter__(self) -> Iterator[Tag]:
        return iter(self.tags)

    def __len__(self) -> int:
        return len(self.tags)

    def append(self, tag: Tag) -> None:
        self.tags.append(tag)

    def of_kind(self, kind: TagKind) -> list[Tag]:
        return [tag for tag in self.tags if tag.kind is kind]

    @property
    def variants(self) -> list[Tag]:
        return self.of_kind(TagKind.STREAM_INF)

    @property
    def keys(self) -> list[Tag]:
        return self.of_kind(TagKind.KEY)

    @property
    def segments(self) -> list[Tag]:
        """EXTINF tags that carry a URI, in playlist order."""
        return [tag for tag in self.of_kind(TagKind.EXTINF) if tag.uri is not None]

    @property
    def is_master(self) -> bool:
        return bool(self.variants)
