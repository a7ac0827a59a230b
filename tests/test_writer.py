import pytest

from course_dl.exceptions import WriteError
from course_dl.playlist import Playlist, Tag, parse_playlist, serialize_playlist
from course_dl.playlist.writer import serialize_tag, write_playlist

from .conftest import media_playlist


def test_round_trip_is_stable():
    playlist = Playlist(
        [
            Tag.passthrough("#EXTM3U"),
            Tag.stream_inf(
                {"BANDWIDTH": "800000", "RESOLUTION": "640x360", "CODECS": "a,b"},
                uri="low.m3u8",
                quoted=("CODECS",),
            ),
            Tag.key({"METHOD": "AES-128", "URI": "key.key", "IV": "0x01"}),
            Tag.extinf("10.0,", uri="1.ts", segment_number=1),
            Tag.passthrough("#EXT-X-ENDLIST"),
        ]
    )
    once = serialize_playlist(playlist)
    assert serialize_playlist(parse_playlist(once)) == once


def test_serializes_in_original_order_and_quoting():
    text = media_playlist(["a.ts", "b.ts"], key_uri="https://host/key")
    assert serialize_playlist(parse_playlist(text)) == text


def test_passthrough_line_reappears_unchanged():
    out = serialize_playlist(parse_playlist("#EXTM3U\n#EXT-X-FOO:BAR=1\n"))
    assert "#EXT-X-FOO:BAR=1" in out.splitlines()


def test_key_carries_uri_only_in_attribute():
    lines = serialize_tag(Tag.key({"METHOD": "AES-128", "URI": "key.key"}))
    assert lines == ['#EXT-X-KEY:METHOD=AES-128,URI="key.key"']


def test_extinf_without_uri_emits_no_uri_line():
    assert serialize_tag(Tag.extinf("10,")) == ["#EXTINF:10,"]


def test_output_ends_with_newline():
    assert serialize_playlist(Playlist([Tag.passthrough("#EXTM3U")])) == "#EXTM3U\n"


async def test_write_playlist(tmp_path):
    playlist = parse_playlist(media_playlist(["1.ts"]))
    path = await write_playlist(playlist, tmp_path / "playlist.m3u8")
    assert path.read_text(encoding="utf-8") == serialize_playlist(playlist)


async def test_write_playlist_wraps_os_errors(tmp_path):
    playlist = parse_playlist(media_playlist(["1.ts"]))
    with pytest.raises(WriteError):
        await write_playlist(playlist, tmp_path / "missing" / "playlist.m3u8")
