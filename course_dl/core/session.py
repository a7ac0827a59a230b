"""
Drives one HLS item from its master playlist URL to a local playlist.

The session walks a fixed sequence of states and refuses any transition that
is not part of it. A session that fails ends in `ABORTED` after the files it
created have been removed.
"""

import logging
from enum import Enum
from pathlib import Path

from course_dl.core.coordinator import DownloadCoordinator
from course_dl.media.downloader import Downloader
from course_dl.playlist.parser import parse_playlist
from course_dl.playlist.tags import Playlist, TagKind
from course_dl.playlist.urls import resolve_media_playlist, resolve_url
from course_dl.playlist.variants import select_variant
from course_dl.playlist.writer import write_playlist
from course_dl.utils.path import remove_files

log = logging.getLogger(__name__)

PLAYLIST_FILENAME = "playlist.m3u8"


class SessionState(Enum):
    IDLE = "idle"
    MASTER_FETCHED = "master_fetched"
    VARIANT_SELECTED = "variant_selected"
    MEDIA_FETCHED = "media_fetched"
    SEGMENTS_RESOLVED = "segments_resolved"
    DOWNLOADING = "downloading"
    COMPLETE = "complete"
    ABORTED = "aborted"


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset(
        {SessionState.MASTER_FETCHED, SessionState.ABORTED}
    ),
    SessionState.MASTER_FETCHED: frozenset(
        {SessionState.VARIANT_SELECTED, SessionState.ABORTED}
    ),
    SessionState.VARIANT_SELECTED: frozenset(
        {SessionState.MEDIA_FETCHED, SessionState.ABORTED}
    ),
    SessionState.MEDIA_FETCHED: frozenset(
        {SessionState.SEGMENTS_RESOLVED, SessionState.ABORTED}
    ),
    SessionState.SEGMENTS_RESOLVED: frozenset(
        {SessionState.DOWNLOADING, SessionState.ABORTED}
    ),
    SessionState.DOWNLOADING: frozenset(
        {SessionState.COMPLETE, SessionState.ABORTED}
    ),
    # Terminal
    SessionState.COMPLETE: frozenset(),
    SessionState.ABORTED: frozenset(),
}


def local_files(playlist: Playlist, work_dir: Path) -> list[Path]:
    """Lists the local files a rewritten playlist references inside `work_dir`."""
    names: list[str] = []
    for tag in playlist:
        if tag.kind is TagKind.KEY and tag.attributes.get("URI"):
            names.append(tag.attributes["URI"])
        elif tag.kind is TagKind.EXTINF and tag.uri:
            names.append(tag.uri)
    return [work_dir / name for name in dict.fromkeys(names)]


class PlaylistSession:
    """
    Fetches, selects, resolves, downloads and writes one HLS item.

    Usage:
        session = PlaylistSession(downloader, coordinator)
        playlist_path = await session.run(master_url, work_dir)
    """

    def __init__(
        self,
        downloader: Downloader,
        coordinator: DownloadCoordinator,
        inherit_query: bool = False,
    ):
        self.downloader = downloader
        self.coordinator = coordinator
        self.inherit_query = inherit_query
        self.state = SessionState.IDLE
        self.media_url: str | None = None
        self.playlist: Playlist | None = None
        self.playlist_path: Path | None = None

    def _transition(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal session transition {self.state.name} -> {target.name}."
            )
        log.debug(f"Session state {self.state.name} -> {target.name}")
        self.state = target

    async def run(self, master_url: str, work_dir: Path) -> Path:
        """
        Runs the session to completion and returns the local playlist path.

        A playlist without variants but with segments is treated as the media
        playlist itself.

        Raises:
            CourseDlError: Any pipeline error. The session is then ABORTED and
            no file it created remains in `work_dir`.
        """
        try:
            return await self._run(master_url, work_dir)
        except BaseException:
            if self.state is not SessionState.ABORTED:
                await self._abort(work_dir)
            raise

    async def _run(self, master_url: str, work_dir: Path) -> Path:
        master_text = await self.downloader.fetch_text(master_url)
        master = parse_playlist(master_text)
        self._transition(SessionState.MASTER_FETCHED)

        if not master.is_master and master.segments:
            log.debug("Playlist has no variants, using it as the media playlist.")
            self.media_url = master_url
            self._transition(SessionState.VARIANT_SELECTED)
            media = master
        else:
            reference = select_variant(master)
            self.media_url = resolve_url(master_url, reference, self.inherit_query)
            self._transition(SessionState.VARIANT_SELECTED)
            media = parse_playlist(await self.downloader.fetch_text(self.media_url))
        self._transition(SessionState.MEDIA_FETCHED)

        resolve_media_playlist(media, self.media_url, self.inherit_query)
        self.playlist = media
        self._transition(SessionState.SEGMENTS_RESOLVED)

        self._transition(SessionState.DOWNLOADING)
        await self.coordinator.download(media, work_dir)

        self.playlist_path = await write_playlist(media, work_dir / PLAYLIST_FILENAME)
        self._transition(SessionState.COMPLETE)
        log.debug(f"Session complete: '{self.playlist_path}'.")
        return self.playlist_path

    async def _abort(self, work_dir: Path) -> None:
        """Removes what a completed batch left behind and marks the session ABORTED."""
        self._transition(SessionState.ABORTED)

        paths: list[Path] = []
        if self.playlist is not None:
            paths = local_files(self.playlist, work_dir)
            # Unrewritten references are remote URLs, not local files
            paths = [p for p in paths if p.parent == work_dir]
        paths.append(work_dir / PLAYLIST_FILENAME)
        await remove_files(paths)

