"""
Manages a Rich progress display: one overall task for the item queue and one
task per item currently downloading.
"""

import asyncio
import logging

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

log = logging.getLogger("course_dl")

MAX_DESCRIPTION_LENGTH = 50


class ProgressManager:
    """
    Wraps `rich.progress.Progress`. With `enabled=False` every method is a
    no-op, which keeps callers free of display checks.
    """

    def __init__(self, console: Console, enabled: bool = True):
        self.console = console
        self.enabled = enabled
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            MofNCompleteColumn(),
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self._overall_task_id: TaskID | None = None
        self._stats = {"completed": 0, "failed": 0, "skipped": 0}

    def log_message(self, message: str, level: str = "info"):
        getattr(log, level, log.info)(message)

    def initialize_session(self, total_items: int | None):
        if not self.enabled:
            return
        self._overall_task_id = self.progress.add_task(
            "[bold blue]Overall Progress", total=total_items, start=True
        )

    def add_item_task(self, description: str, total_jobs: int | None) -> TaskID | None:
        if not self.enabled:
            return None
        if len(description) > MAX_DESCRIPTION_LENGTH:
            description = description[: MAX_DESCRIPTION_LENGTH - 1] + "…"
        return self.progress.add_task(description, total=total_jobs, start=True)

    def advance_task(self, task_id: TaskID | None, count: int = 1):
        if task_id is not None and self.enabled:
            self.progress.advance(task_id, count)

    def remove_task(self, task_id: TaskID | None, success: bool = True):
        if success:
            self._stats["completed"] += 1
        else:
            self._stats["failed"] += 1
        if task_id is not None and self.enabled:
            self.progress.remove_task(task_id)
        self._update_overall()

    def increment_skipped(self, count: int = 1):
        self._stats["skipped"] += count
        self._update_overall()

    def _update_overall(self):
        if self._overall_task_id is None or not self.enabled:
            return
        self.progress.update(
            self._overall_task_id,
            completed=sum(self._stats.values()),
        )

    async def __aenter__(self):
        if self.enabled:
            self.progress.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.enabled:
            await asyncio.sleep(0.1)
            self.progress.stop()
