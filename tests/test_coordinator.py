import asyncio

import pytest
from aiohttp import web

from course_dl.core.coordinator import DownloadCoordinator, JobStatus
from course_dl.exceptions import DownloadFailedError, WriteError
from course_dl.playlist import parse_playlist, resolve_media_playlist

from .conftest import media_playlist


def segment_body(n: int) -> bytes:
    return f"segment-{n}".encode() * 100


def segment_routes(count: int) -> dict:
    return {f"/media/s{n}.ts": segment_body(n) for n in range(1, count + 1)}


def resolved_playlist(server, count: int, key_uri: str | None = None):
    base = str(server.make_url("/media/index.m3u8"))
    text = media_playlist([f"s{n}.ts" for n in range(1, count + 1)], key_uri)
    return resolve_media_playlist(parse_playlist(text), base)


async def test_names_follow_playlist_position_not_completion_order(
    serve, downloader, tmp_path
):
    async def slow_first(request):
        await asyncio.sleep(0.3)
        return web.Response(body=segment_body(1))

    routes = segment_routes(5)
    routes["/media/s1.ts"] = slow_first
    server = await serve(routes)
    playlist = resolved_playlist(server, 5)

    completed = []
    coordinator = DownloadCoordinator(
        downloader, max_concurrency=5, on_job_done=lambda job: completed.append(job)
    )
    result = await coordinator.download(playlist, tmp_path)

    assert result is playlist
    assert completed[-1].path.name == "1.ts"
    assert [s.uri for s in playlist.segments] == [f"{n}.ts" for n in range(1, 6)]
    for n in range(1, 6):
        assert (tmp_path / f"{n}.ts").read_bytes() == segment_body(n)


async def test_failed_segment_removes_every_file_of_the_batch(
    serve, downloader, tmp_path
):
    async def slow_ok(request):
        await asyncio.sleep(0.2)
        return web.Response(body=b"late")

    routes = segment_routes(5)
    routes["/media/s3.ts"] = 500
    routes["/media/s5.ts"] = slow_ok
    server = await serve(routes)
    playlist = resolved_playlist(server, 5)
    original_uris = [s.uri for s in playlist.segments]

    coordinator = DownloadCoordinator(downloader, max_concurrency=5)
    with pytest.raises(DownloadFailedError) as exc_info:
        await coordinator.download(playlist, tmp_path)

    assert list(tmp_path.iterdir()) == []
    failures = exc_info.value.failures
    assert [job.path.name for job in failures] == ["3.ts"]
    assert failures[0].status is JobStatus.FAILED
    # Playlist is left pointing at the remote URLs
    assert [s.uri for s in playlist.segments] == original_uris


async def test_local_write_error_propagates_after_cleanup(serve, downloader, tmp_path):
    server = await serve(segment_routes(3))
    playlist = resolved_playlist(server, 3)
    original_uris = [s.uri for s in playlist.segments]
    (tmp_path / "2.ts").mkdir()

    coordinator = DownloadCoordinator(downloader, max_concurrency=1)
    with pytest.raises(WriteError):
        await coordinator.download(playlist, tmp_path)

    assert [p.name for p in tmp_path.iterdir()] == ["2.ts"]
    assert [s.uri for s in playlist.segments] == original_uris


async def test_no_new_job_is_admitted_after_a_failure(serve, downloader, tmp_path):
    routes = segment_routes(4)
    routes["/media/s1.ts"] = 404
    server = await serve(routes)
    playlist = resolved_playlist(server, 4)

    coordinator = DownloadCoordinator(downloader, max_concurrency=1)
    with pytest.raises(DownloadFailedError, match="3 not started"):
        await coordinator.download(playlist, tmp_path)

    assert server.hits == ["/media/s1.ts"]
    assert list(tmp_path.iterdir()) == []


async def test_key_is_rewritten_to_a_distinct_local_file(serve, downloader, tmp_path):
    routes = segment_routes(3)
    routes["/keys/k1"] = b"0123456789abcdef"
    server = await serve(routes)
    playlist = resolved_playlist(server, 3, key_uri="/keys/k1")

    await DownloadCoordinator(downloader).download(playlist, tmp_path)

    (key,) = playlist.keys
    key_name = key.attributes["URI"]
    assert key_name == "key.key"
    assert key.uri == key_name
    assert key_name not in {s.uri for s in playlist.segments}
    assert (tmp_path / key_name).read_bytes() == b"0123456789abcdef"
    assert key.attributes["METHOD"] == "AES-128"
    assert key.attributes["IV"] == "0x1234"


def test_plan_shares_jobs_for_repeated_keys_and_skips_method_none(tmp_path):
    text = (
        "#EXTM3U\n"
        '#EXT-X-KEY:METHOD=AES-128,URI="https://h/k1"\n'
        "#EXTINF:10,\nhttps://h/1.ts\n"
        "#EXT-X-KEY:METHOD=NONE\n"
        "#EXTINF:10,\nhttps://h/2.ts\n"
        '#EXT-X-KEY:METHOD=AES-128,URI="https://h/k2"\n'
        "#EXTINF:10,\nhttps://h/3.ts\n"
        '#EXT-X-KEY:METHOD=AES-128,URI="https://h/k1"\n'
        "#EXTINF:10,\nhttps://h/4.ts\n"
    )
    coordinator = DownloadCoordinator(downloader=None, segment_extension="aac")
    jobs = coordinator.plan(parse_playlist(text), tmp_path)

    assert [job.path.name for job in jobs] == [
        "key.key",
        "1.aac",
        "2.aac",
        "key-2.key",
        "3.aac",
        "4.aac",
    ]
    assert len(jobs[0].tags) == 2
    assert jobs[0].is_key
    assert not jobs[1].is_key


async def test_concurrency_never_exceeds_the_cap(serve, downloader, tmp_path):
    in_flight = 0
    peak = 0

    async def tracked(request):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.05)
        in_flight -= 1
        return web.Response(body=b"x")

    server = await serve({f"/media/s{n}.ts": tracked for n in range(1, 9)})
    playlist = resolved_playlist(server, 8)

    await DownloadCoordinator(downloader, max_concurrency=2).download(playlist, tmp_path)

    assert 1 <= peak <= 2
    assert len(list(tmp_path.iterdir())) == 8


async def test_cancellation_cleans_up(serve, downloader, tmp_path):
    async def hang(request):
        await asyncio.sleep(1)
        return web.Response(body=b"never")

    routes = segment_routes(3)
    routes["/media/s3.ts"] = hang
    server = await serve(routes)
    playlist = resolved_playlist(server, 3)

    task = asyncio.create_task(
        DownloadCoordinator(downloader, max_concurrency=3).download(playlist, tmp_path)
    )
    await asyncio.sleep(0.3)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert list(tmp_path.iterdir()) == []


async def test_playlist_without_jobs_is_returned_unchanged(downloader, tmp_path):
    playlist = parse_playlist("#EXTM3U\n#EXT-X-ENDLIST\n")
    assert await DownloadCoordinator(downloader).download(playlist, tmp_path) is playlist
