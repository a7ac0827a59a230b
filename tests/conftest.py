import io
from collections.abc import Awaitable, Callable

import pytest
from aiohttp import web
from rich.console import Console

from course_dl.cli.progress_manager import ProgressManager
from course_dl.media.downloader import Downloader, create_http_session
from course_dl.models.config import DownloadConfig

# A route is a body (str or bytes), an HTTP status code or an async handler.
Route = str | bytes | int | Callable[[web.Request], Awaitable[web.StreamResponse]]


def media_playlist(segment_uris: list[str], key_uri: str | None = None) -> str:
    lines = ["#EXTM3U", "#EXT-X-VERSION:3", "#EXT-X-TARGETDURATION:10"]
    if key_uri:
        lines.append(f'#EXT-X-KEY:METHOD=AES-128,URI="{key_uri}",IV=0x1234')
    for uri in segment_uris:
        lines.append("#EXTINF:10.0,")
        lines.append(uri)
    lines.append("#EXT-X-ENDLIST")
    return "\n".join(lines) + "\n"


@pytest.fixture
def config(tmp_path):
    return DownloadConfig(
        output_dir=str(tmp_path / "out"), max_workers=4, request_timeout=5
    )


@pytest.fixture
async def http_session(config):
    session = create_http_session(config)
    yield session
    await session.close()


@pytest.fixture
def downloader(http_session):
    return Downloader(http_session)


@pytest.fixture
def progress_manager():
    return ProgressManager(Console(file=io.StringIO()), enabled=False)


@pytest.fixture
def serve(aiohttp_server):
    """
    Starts a local server for a `{path: Route}` mapping. Unknown paths answer
    404. The returned server records every requested path in `server.hits`.
    """

    async def _serve(routes: dict[str, Route]):
        hits: list[str] = []

        async def handler(request: web.Request) -> web.StreamResponse:
            hits.append(request.path_qs)
            route = routes.get(request.path)
            if route is None:
                raise web.HTTPNotFound()
            if callable(route):
                return await route(request)
            if isinstance(route, int):
                return web.Response(status=route)
            body = route.encode() if isinstance(route, str) else route
            return web.Response(body=body)

        app = web.Application()
        app.router.add_route("GET", "/{tail:.*}", handler)
        server = await aiohttp_server(app)
        server.hits = hits
        return server

    return _serve
