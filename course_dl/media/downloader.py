"""
Handles the low-level transfer of playlists, keys and media files over HTTP.

The transport is one `aiohttp.ClientSession` built from the configuration and
handed to every `Downloader` explicitly.
"""

import asyncio
import logging
import ssl
from pathlib import Path

import aiofiles
import aiohttp

from course_dl.exceptions import MalformedPlaylistError, TransferFailedError, WriteError
from course_dl.models.config import DownloadConfig

log = logging.getLogger(__name__)


def _build_ssl_context(config: DownloadConfig) -> ssl.SSLContext | bool:
    if not config.verify_tls:
        return False
    if config.ca_bundle:
        return ssl.create_default_context(
            cafile=str(Path(config.ca_bundle).expanduser())
        )
    return True


def create_http_session(config: DownloadConfig) -> aiohttp.ClientSession:
    """
    Creates the HTTP session shared by all transfers of a run.

    Must be called from a running event loop. The caller owns the session and
    is responsible for closing it.
    """
    connector = aiohttp.TCPConnector(
        limit=config.max_workers * 2,  # Total connections
        limit_per_host=config.max_workers,
        ttl_dns_cache=600,  # 10 minutes
        keepalive_timeout=30,
        enable_cleanup_closed=True,
        ssl=_build_ssl_context(config),
    )
    timeout = aiohttp.ClientTimeout(
        total=None,
        sock_connect=config.request_timeout,
        sock_read=config.request_timeout,
    )
    headers = {"User-Agent": config.user_agent}
    if config.referer:
        headers["Referer"] = config.referer

    log.debug(
        f"Created HTTP session with limit_per_host={config.max_workers}, "
        f"timeout={config.request_timeout}s, verify_tls={config.verify_tls}"
    )
    return aiohttp.ClientSession(connector=connector, timeout=timeout, headers=headers)


class Downloader:
    """A low-level downloader for playlist text and binary files."""

    CHUNK_SIZE = 131072  # 128 KB

    def __init__(self, session: aiohttp.ClientSession):
        self.session = session

    async def fetch_text(self, url: str) -> str:
        """
        Fetches a playlist body and decodes it as UTF-8.

        Raises:
            TransferFailedError: On any network or HTTP error.
            MalformedPlaylistError: If the body is not valid UTF-8.
        """
        try:
            async with self.session.get(url, allow_redirects=True) as response:
                response.raise_for_status()
                body = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransferFailedError(url, str(e) or type(e).__name__) from e

        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPlaylistError(
                f"Playlist at '{url}' is not valid UTF-8: {e}"
            ) from e

    async def download_file(self, url: str, destination_path: Path) -> int:
        """
        Streams a response body to `destination_path` in chunks.

        The destination is only opened once the server answered with a success
        status, so an error response leaves no file behind.

        Returns:
            The number of bytes written.

        Raises:
            TransferFailedError: On any network or HTTP error.
            WriteError: If the destination cannot be written.
        """
        bytes_downloaded = 0
        try:
            async with self.session.get(url, allow_redirects=True) as response:
                response.raise_for_status()
                async with aiofiles.open(destination_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                        bytes_downloaded += len(chunk)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransferFailedError(url, str(e) or type(e).__name__) from e
        except OSError as e:
            raise WriteError(f"Could not write '{destination_path}': {e}") from e

        log.debug(f"Downloaded {bytes_downloaded} bytes to '{destination_path.name}'.")
        return bytes_downloaded
