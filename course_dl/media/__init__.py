"""
Media Processing Layer.

This package is responsible for all media file operations: HTTP transfers
of playlists, keys and segments, and remuxing a local playlist into one file.
"""

from .downloader import Downloader, create_http_session
from .remuxer import Remuxer

__all__ = ["Downloader", "Remuxer", "create_http_session"]
