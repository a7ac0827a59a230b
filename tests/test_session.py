import pytest

from course_dl.core.coordinator import DownloadCoordinator
from course_dl.core.session import PlaylistSession, SessionState
from course_dl.exceptions import (
    DownloadFailedError,
    NoVariantFoundError,
    TransferFailedError,
    WriteError,
)
from course_dl.playlist import parse_playlist

from .conftest import media_playlist

MASTER = """#EXTM3U
#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=640x360
low/index.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=5000000,RESOLUTION=1920x1080
high/index.m3u8
"""


def new_session(downloader) -> PlaylistSession:
    coordinator = DownloadCoordinator(downloader, max_concurrency=4)
    return PlaylistSession(downloader, coordinator)


async def test_master_to_local_playlist(serve, downloader, tmp_path):
    server = await serve(
        {
            "/course/master.m3u8": MASTER,
            "/course/high/index.m3u8": media_playlist(
                ["a.ts", "b.ts"], key_uri="/keys/1"
            ),
            "/course/high/a.ts": b"A",
            "/course/high/b.ts": b"B",
            "/keys/1": b"K" * 16,
        }
    )
    session = new_session(downloader)

    path = await session.run(str(server.make_url("/course/master.m3u8")), tmp_path)

    assert session.state is SessionState.COMPLETE
    assert path == tmp_path / "playlist.m3u8"
    assert session.media_url.endswith("/course/high/index.m3u8")
    assert "/course/low/index.m3u8" not in server.hits

    written = parse_playlist(path.read_text(encoding="utf-8"))
    assert [s.uri for s in written.segments] == ["1.ts", "2.ts"]
    assert written.keys[0].attributes["URI"] == "key.key"
    assert (tmp_path / "1.ts").read_bytes() == b"A"
    assert (tmp_path / "key.key").exists()


async def test_media_playlist_given_directly(serve, downloader, tmp_path):
    server = await serve(
        {"/v/index.m3u8": media_playlist(["s.ts"]), "/v/s.ts": b"S"}
    )
    session = new_session(downloader)

    await session.run(str(server.make_url("/v/index.m3u8")), tmp_path)

    assert session.state is SessionState.COMPLETE
    assert server.hits == ["/v/index.m3u8", "/v/s.ts"]
    assert (tmp_path / "1.ts").read_bytes() == b"S"


async def test_no_variant_aborts(serve, downloader, tmp_path):
    master = "#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=64000\naudio.m3u8\n"
    server = await serve({"/master.m3u8": master})
    session = new_session(downloader)

    with pytest.raises(NoVariantFoundError):
        await session.run(str(server.make_url("/master.m3u8")), tmp_path)

    assert session.state is SessionState.ABORTED


async def test_unreachable_master_aborts(serve, downloader, tmp_path):
    server = await serve({})
    session = new_session(downloader)

    with pytest.raises(TransferFailedError):
        await session.run(str(server.make_url("/missing.m3u8")), tmp_path)

    assert session.state is SessionState.ABORTED


async def test_failed_batch_leaves_no_files(serve, downloader, tmp_path):
    server = await serve(
        {
            "/v/index.m3u8": media_playlist(["1.ts", "2.ts", "3.ts"]),
            "/v/1.ts": b"1",
            "/v/2.ts": 503,
            "/v/3.ts": b"3",
        }
    )
    session = new_session(downloader)

    with pytest.raises(DownloadFailedError):
        await session.run(str(server.make_url("/v/index.m3u8")), tmp_path)

    assert session.state is SessionState.ABORTED
    assert list(tmp_path.iterdir()) == []


async def test_write_failure_removes_downloaded_files(serve, downloader, tmp_path):
    server = await serve({"/v/index.m3u8": media_playlist(["a.ts"]), "/v/a.ts": b"A"})
    # A directory where the playlist file should go makes the write fail
    (tmp_path / "playlist.m3u8").mkdir()
    session = new_session(downloader)

    with pytest.raises(WriteError):
        await session.run(str(server.make_url("/v/index.m3u8")), tmp_path)

    assert session.state is SessionState.ABORTED
    assert not (tmp_path / "1.ts").exists()


def test_illegal_transition_is_a_programming_error():
    session = PlaylistSession(downloader=None, coordinator=None)
    with pytest.raises(RuntimeError, match="IDLE -> COMPLETE"):
        session._transition(SessionState.COMPLETE)
