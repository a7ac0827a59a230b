"""
Turns a local HLS playlist into a single media file with an external ffmpeg.
"""

import asyncio
import logging
import shutil
from pathlib import Path

from course_dl.exceptions import RemuxError

log = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20


class Remuxer:
    """Runs ffmpeg to copy the streams of a playlist into one container."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        self.ffmpeg_path = ffmpeg_path

    def build_command(self, playlist_path: Path, output_path: Path) -> list[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-loglevel",
            "error",
            "-allowed_extensions",
            "ALL",
            "-i",
            str(playlist_path),
            "-c",
            "copy",
            "-movflags",
            "+faststart",
            "-map_metadata",
            "-1",
            str(output_path),
        ]

    def is_available(self) -> bool:
        return shutil.which(self.ffmpeg_path) is not None

    async def remux(self, playlist_path: Path, output_path: Path) -> Path:
        """
        Remuxes `playlist_path` into `output_path` without re-encoding.

        ffmpeg runs with the playlist's directory as its working directory so
        the local file names in the playlist resolve.

        Raises:
            RemuxError: If ffmpeg cannot be found or exits with a nonzero code.
        """
        executable = shutil.which(self.ffmpeg_path)
        if executable is None:
            raise RemuxError(
                f"Remuxer '{self.ffmpeg_path}' was not found. Install ffmpeg or "
                "set 'ffmpeg_path' in the configuration."
            )

        command = self.build_command(playlist_path.resolve(), output_path.resolve())
        command[0] = executable
        log.debug(f"Running remuxer: {' '.join(command)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(playlist_path.resolve().parent),
            )
        except OSError as e:
            raise RemuxError(f"Could not start remuxer '{executable}': {e}") from e

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        if process.returncode != 0:
            lines = stderr.decode("utf-8", errors="replace").strip().splitlines()
            tail = "\n".join(lines[-STDERR_TAIL_LINES:])
            raise RemuxError(
                f"Remuxer exited with code {process.returncode}"
                + (f": {tail}" if tail else "."),
                returncode=process.returncode,
                stderr=tail,
            )

        log.debug(f"Remuxed '{playlist_path.name}' into '{output_path.name}'.")
        return output_path
