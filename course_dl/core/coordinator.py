"""
Downloads every key and segment of a media playlist as one all-or-nothing batch.

Jobs are planned in playlist order before any transfer starts and are admitted
through a semaphore, so at most `max_concurrency` transfers are in flight. The
first failed transfer stops admission; when the batch settles every file it
created is removed and `DownloadFailedError` is raised. Only a batch in which
every job succeeded rewrites the playlist to the local file names.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from course_dl.exceptions import DownloadFailedError, TransferFailedError
from course_dl.media.downloader import Downloader
from course_dl.playlist.tags import Playlist, Tag, TagKind
from course_dl.utils.path import remove_files

log = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 30


class JobStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class DownloadJob:
    """One transfer and the tags that will point at its local file."""

    url: str
    path: Path
    tags: list[Tag] = field(default_factory=list)
    status: JobStatus = JobStatus.PENDING
    error: Exception | None = None
    size: int = 0

    @property
    def is_key(self) -> bool:
        return self.tags[0].kind is TagKind.KEY


class DownloadCoordinator:
    """Plans and runs the transfers for one media playlist."""

    def __init__(
        self,
        downloader: Downloader,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        segment_extension: str = "ts",
        key_filename: str = "key.key",
        on_job_done: Callable[[DownloadJob], None] | None = None,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1.")
        self.downloader = downloader
        self.max_concurrency = max_concurrency
        self.segment_extension = segment_extension
        self.key_filename = key_filename
        self.on_job_done = on_job_done

    def _key_name(self, index: int) -> str:
        if index == 1:
            return self.key_filename
        stem, dot, suffix = self.key_filename.partition(".")
        return f"{stem}-{index}{dot}{suffix}"

    def plan(self, playlist: Playlist, destination: Path) -> list[DownloadJob]:
        """
        Builds the job list in playlist order.

        Keys sharing a URI share one job. Keys with `METHOD=NONE` or without a
        URI, and EXTINF tags without a URI line, produce no job.
        """
        jobs: list[DownloadJob] = []
        key_jobs: dict[str, DownloadJob] = {}

        for tag in playlist:
            if tag.kind is TagKind.KEY:
                method = tag.attributes.get("METHOD", "").upper()
                uri = tag.attributes.get("URI")
                if method == "NONE" or not uri:
                    continue
                if uri in key_jobs:
                    key_jobs[uri].tags.append(tag)
                    continue
                job = DownloadJob(
                    uri, destination / self._key_name(len(key_jobs) + 1), [tag]
                )
                key_jobs[uri] = job
                jobs.append(job)

            elif tag.kind is TagKind.EXTINF and tag.uri is not None:
                if tag.segment_number is None:
                    raise ValueError(f"Segment '{tag.uri}' has no segment number.")
                name = f"{tag.segment_number}.{self.segment_extension}"
                jobs.append(DownloadJob(tag.uri, destination / name, [tag]))

        return jobs

    async def download(self, playlist: Playlist, destination: Path) -> Playlist:
        """
        Downloads all keys and segments into `destination` and rewrites the
        playlist to reference the local files.

        Returns:
            The same playlist, rewritten in place.

        Raises:
            DownloadFailedError: If any transfer failed. No file created by the
            batch remains and the playlist is left untouched.
        """
        jobs = self.plan(playlist, destination)
        if not jobs:
            log.debug("Playlist has nothing to download.")
            return playlist

        semaphore = asyncio.Semaphore(self.max_concurrency)
        failed = asyncio.Event()
        created: list[Path] = []

        async def run(job: DownloadJob) -> None:
            async with semaphore:
                if failed.is_set():
                    job.status = JobStatus.SKIPPED
                    return
                job.status = JobStatus.RUNNING
                created.append(job.path)
                try:
                    job.size = await self.downloader.download_file(job.url, job.path)
                except TransferFailedError as e:
                    job.status = JobStatus.FAILED
                    job.error = e
                    failed.set()
                    log.debug(f"Job for '{job.path.name}' failed: {e}")
                    return
                job.status = JobStatus.DONE

            if self.on_job_done:
                self.on_job_done(job)

        log.debug(
            f"Starting batch of {len(jobs)} jobs with concurrency "
            f"{self.max_concurrency} into '{destination}'."
        )
        tasks = [asyncio.create_task(run(job)) for job in jobs]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await self._cleanup(created)
            raise

        failures = [job for job in jobs if job.status is JobStatus.FAILED]
        if failures:
            await self._cleanup(created)
            skipped = sum(1 for job in jobs if job.status is JobStatus.SKIPPED)
            raise DownloadFailedError(
                f"{len(failures)} of {len(jobs)} transfers failed "
                f"({skipped} not started): {failures[0].error}",
                failures=failures,
            )

        for job in jobs:
            for tag in job.tags:
                self._rewrite(tag, job.path.name)

        log.debug(f"Batch of {len(jobs)} jobs completed.")
        return playlist

    @staticmethod
    def _rewrite(tag: Tag, local_name: str) -> None:
        if tag.kind is TagKind.KEY:
            tag.set_attribute("URI", local_name)
        tag.uri = local_name

    @staticmethod
    async def _cleanup(paths: list[Path]) -> None:
        await remove_files(paths)
        log.debug(f"Removed {len(paths)} files of the aborted batch.")
