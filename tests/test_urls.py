import pytest

from course_dl.exceptions import InvalidURLError
from course_dl.playlist import parse_playlist, resolve_media_playlist, resolve_url

from .conftest import media_playlist

BASE = "https://host/dir/media.m3u8"


@pytest.mark.parametrize(
    "reference, expected",
    [
        ("seg1.ts", "https://host/dir/seg1.ts"),
        ("https://other/seg1.ts", "https://other/seg1.ts"),
        ("//cdn.example/seg1.ts", "https://cdn.example/seg1.ts"),
        ("/root/seg1.ts", "https://host/root/seg1.ts"),
        ("../up/seg1.ts", "https://host/up/seg1.ts"),
        ("seg1.ts?token=abc", "https://host/dir/seg1.ts?token=abc"),
    ],
)
def test_resolve_url(reference, expected):
    assert resolve_url(BASE, reference) == expected


@pytest.mark.parametrize(
    "base", ["dir/media.m3u8", "/dir/media.m3u8", "https:///nohost", "http://[::1/x"]
)
def test_invalid_base(base):
    with pytest.raises(InvalidURLError):
        resolve_url(base, "seg1.ts")


def test_invalid_reference():
    with pytest.raises(InvalidURLError):
        resolve_url(BASE, "http://[broken/seg.ts")


@pytest.mark.parametrize(
    "reference", ["https://host:99999/seg.ts", "https://host:http/seg.ts"]
)
def test_invalid_port(reference):
    with pytest.raises(InvalidURLError, match="cannot be parsed"):
        resolve_url(BASE, reference)


def test_query_inheritance_is_opt_in():
    base = "https://host/dir/media.m3u8?Policy=p&Signature=s"
    assert resolve_url(base, "seg1.ts") == "https://host/dir/seg1.ts"
    assert (
        resolve_url(base, "seg1.ts", inherit_query=True)
        == "https://host/dir/seg1.ts?Policy=p&Signature=s"
    )
    # Own query and absolute references are left alone
    assert resolve_url(base, "seg1.ts?x=1", inherit_query=True).endswith("?x=1")
    assert (
        resolve_url(base, "https://other/a.ts", inherit_query=True)
        == "https://other/a.ts"
    )


def test_resolve_media_playlist_rewrites_keys_and_segments():
    playlist = parse_playlist(media_playlist(["a.ts", "sub/b.ts"], key_uri="../key"))
    resolve_media_playlist(playlist, BASE)

    (key,) = playlist.keys
    assert key.attributes["URI"] == "https://host/key"
    assert key.uri == "https://host/key"
    assert "URI" in key.quoted
    assert [s.uri for s in playlist.segments] == [
        "https://host/dir/a.ts",
        "https://host/dir/sub/b.ts",
    ]
