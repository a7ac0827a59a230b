"""
Core application engine for orchestrating the download process.

The `DownloadManager` walks the catalog items one by one. Each HLS item runs
a `PlaylistSession`, which delegates the transfers of keys and segments to a
`DownloadCoordinator`.
"""

from .catalog import CatalogProvider, MediaItem, MediaKind, UrlListCatalog
from .coordinator import DownloadCoordinator, DownloadJob, JobStatus
from .download_manager import DownloadManager
from .session import PlaylistSession, SessionState

__all__ = [
    "CatalogProvider",
    "DownloadCoordinator",
    "DownloadJob",
    "DownloadManager",
    "JobStatus",
    "MediaItem",
    "MediaKind",
    "PlaylistSession",
    "SessionState",
    "UrlListCatalog",
]
