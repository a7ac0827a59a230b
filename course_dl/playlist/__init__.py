"""
HLS Playlist Layer.

This package holds the M3U8 tag model and the pure operations over it:
parsing, variant selection, URL resolution and serialization.
"""

from .parser import parse_attribute_list, parse_playlist
from .tags import Playlist, Tag, TagKind
from .urls import resolve_media_playlist, resolve_url
from .variants import find_best_variant, parse_resolution, select_variant
from .writer import serialize_playlist, write_playlist

__all__ = [
    "Playlist",
    "Tag",
    "TagKind",
    "find_best_variant",
    "parse_attribute_list",
    "parse_playlist",
    "parse_resolution",
    "resolve_media_playlist",
    "resolve_url",
    "select_variant",
    "serialize_playlist",
    "write_playlist",
]
