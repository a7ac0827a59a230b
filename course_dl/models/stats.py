"""
Dataclass for tracking download session statistics.
"""

import time
from dataclasses import dataclass, field


@dataclass
class DownloadStats:
    """Tracks statistics for a download session."""

    items_downloaded: int = 0
    items_skipped_exists: int = 0
    items_failed: int = 0
    segments_downloaded: int = 0
    total_size_downloaded: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)
    started_at: float = field(default_factory=time.monotonic, repr=False)

    def record_job(self, size: int) -> None:
        """Counts one finished key or segment transfer."""
        self.segments_downloaded += 1
        self.total_size_downloaded += size

    def record_failure(self, name: str, error: Exception) -> None:
        self.items_failed += 1
        self.failures.append((name, str(error)))

    @property
    def items_processed(self) -> int:
        return self.items_downloaded + self.items_skipped_exists + self.items_failed

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at
