"""
Defines custom exceptions for the application to allow for more specific error handling.

Every exception names the pipeline stage it belongs to, so a failed item can be
reported as one error that identifies where it broke.
"""


class CourseDlError(Exception):
    """Base exception for all application-specific errors."""

    stage = "unknown"


class MalformedPlaylistError(CourseDlError):
    """Raised when playlist text cannot be tokenized (e.g. an unbalanced quote)."""

    stage = "parse"


class NoVariantFoundError(CourseDlError):
    """Raised when a master playlist has no variant with a usable resolution."""

    stage = "select"


class MissingAttributeError(CourseDlError):
    """Raised when a directive lacks a value the pipeline needs (e.g. a variant URI)."""

    stage = "select"


class InvalidURLError(CourseDlError):
    """Raised when a base URL or a reference cannot be parsed or resolved."""

    stage = "resolve"


class TransferFailedError(CourseDlError):
    """Raised when a single key or segment transfer fails."""

    stage = "transfer"

    def __init__(self, url: str, reason: str):
        super().__init__(f"Transfer of '{url}' failed: {reason}")
        self.url = url
        self.reason = reason


class DownloadFailedError(CourseDlError):
    """
    Raised when a download batch is aborted. All files the batch created have
    already been removed when this is raised.
    """

    stage = "download"

    def __init__(self, message: str, failures: list | None = None):
        super().__init__(message)
        self.failures = failures or []


class WriteError(CourseDlError):
    """Raised when a local playlist or output file cannot be written."""

    stage = "write"


class RemuxError(CourseDlError):
    """Raised when the external remuxer is missing or exits with a nonzero code."""

    stage = "remux"

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class ConfigurationError(CourseDlError):
    """Raised for issues related to configuration loading or validation."""

    stage = "config"
