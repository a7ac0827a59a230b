"""
The main orchestrator for turning catalog items into output files.
"""

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from rich.markup import escape
from rich.progress import TaskID

from course_dl.cli.progress_manager import ProgressManager
from course_dl.exceptions import CourseDlError, WriteError
from course_dl.media import Downloader, Remuxer
from course_dl.models.config import DownloadConfig
from course_dl.models.stats import DownloadStats
from course_dl.playlist.tags import Playlist
from course_dl.utils.formatting import format_size
from course_dl.utils.path import create_dir, remove_files, sanitize_name, url_suffix

from .catalog import MediaItem, MediaKind
from .coordinator import DownloadCoordinator, DownloadJob
from .session import PLAYLIST_FILENAME, PlaylistSession, local_files

log = logging.getLogger(__name__)

WORK_DIR_NAME = ".work"
PART_SUFFIX = ".part"


class DownloadManager:
    """Processes catalog items one after another."""

    def __init__(
        self,
        config: DownloadConfig,
        downloader: Downloader,
        progress_manager: ProgressManager,
        remuxer: Remuxer | None = None,
    ):
        self.config = config
        self.downloader = downloader
        self.progress_manager = progress_manager
        self.remuxer = remuxer or Remuxer(config.ffmpeg_path)
        self.stats = DownloadStats()
        self.output_dir = Path(config.output_dir).expanduser()
        self.work_root = self.output_dir / WORK_DIR_NAME

    def output_path_for(self, item: MediaItem) -> Path:
        """Returns where an item's final file goes."""
        if item.kind is MediaKind.HLS:
            extension = self.config.container
        else:
            extension = url_suffix(item.url) or self.config.container
        return self.output_dir / f"{sanitize_name(item.name)}.{extension}"

    async def execute_downloads(self, items: Iterable[MediaItem]) -> DownloadStats:
        """
        Processes all items sequentially.

        A pipeline error fails only the current item. Local filesystem errors
        are fatal and propagate: failing to create the output or work directory
        (`OSError`) or to write into it (`WriteError`).
        """
        items = list(items)
        if not items:
            log.info("No items to process. Nothing to do.")
            return self.stats

        create_dir(self.output_dir)
        self.progress_manager.initialize_session(len(items))

        for item in items:
            await self.process_item(item)

        return self.stats

    async def process_item(self, item: MediaItem) -> None:
        output_path = self.output_path_for(item)
        if await asyncio.to_thread(output_path.exists):
            self.progress_manager.log_message(
                f"[dim]↷ Skipping '{escape(item.name)}': "
                f"'{output_path.name}' already exists.[/dim]"
            )
            self.stats.items_skipped_exists += 1
            self.progress_manager.increment_skipped()
            return

        task_id = self.progress_manager.add_item_task(item.name, total_jobs=None)
        try:
            if item.kind is MediaKind.HLS:
                await self._process_hls(item, output_path, task_id)
            else:
                await self._process_direct(item, output_path)
        except WriteError:
            self.progress_manager.remove_task(task_id, success=False)
            raise
        except CourseDlError as e:
            self.stats.record_failure(item.name, e)
            self.progress_manager.remove_task(task_id, success=False)
            self.progress_manager.log_message(
                f"[red]✗ '{escape(item.name)}' failed at {e.stage}: "
                f"{escape(str(e))}[/red]",
                level="error",
            )
            return

        self.stats.items_downloaded += 1
        self.progress_manager.remove_task(task_id, success=True)
        self.progress_manager.log_message(
            f"[green]✓ {escape(item.name)}[/green] [dim]→ {output_path}[/dim]"
        )

    async def _process_hls(
        self, item: MediaItem, output_path: Path, task_id: TaskID | None
    ) -> None:
        work_dir = self.work_root / sanitize_name(item.name)
        create_dir(work_dir)

        finished: list[DownloadJob] = []

        def on_job_done(job: DownloadJob) -> None:
            finished.append(job)
            self.progress_manager.advance_task(task_id)

        coordinator = DownloadCoordinator(
            self.downloader,
            max_concurrency=self.config.max_workers,
            segment_extension=self.config.segment_extension,
            on_job_done=on_job_done,
        )
        session = PlaylistSession(
            self.downloader, coordinator, inherit_query=self.config.inherit_query
        )
        try:
            playlist_path = await session.run(item.url, work_dir)
        except BaseException:
            await self._remove_work_files(None, work_dir)
            raise

        for job in finished:
            self.stats.record_job(job.size)
        log.debug(
            f"Downloaded {len(finished)} files "
            f"({format_size(sum(job.size for job in finished))}) for '{item.name}'."
        )

        try:
            await self.remuxer.remux(playlist_path, output_path)
        except BaseException:
            await remove_files([output_path])
            await self._remove_work_files(session.playlist, work_dir)
            raise

        if not self.config.keep_segments:
            await self._remove_work_files(session.playlist, work_dir)

    async def _process_direct(self, item: MediaItem, output_path: Path) -> None:
        part_path = output_path.with_name(output_path.name + PART_SUFFIX)
        try:
            size = await self.downloader.download_file(item.url, part_path)
            try:
                await asyncio.to_thread(part_path.replace, output_path)
            except OSError as e:
                raise WriteError(f"Could not move file into place: {e}") from e
        except BaseException:
            await remove_files([part_path])
            raise

        self.stats.record_job(size)

    async def _remove_work_files(self, playlist: Playlist | None, work_dir: Path) -> None:
        paths = local_files(playlist, work_dir) if playlist is not None else []
        paths.append(work_dir / PLAYLIST_FILENAME)
        await remove_files(paths)

        for directory in (work_dir, self.work_root):
            try:
                await asyncio.to_thread(directory.rmdir)
            except OSError:
                log.debug(f"Keeping non-empty directory '{directory}'.")
                break
