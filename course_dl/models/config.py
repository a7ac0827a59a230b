"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pathlib import Path

from pydantic import BaseModel, field_validator, model_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

SUPPORTED_CONTAINERS = ("mp4", "mkv", "ts", "mov")


class DownloadConfig(BaseModel):
    """A validated configuration model for the application."""

    # Network Settings
    max_workers: int = 30
    request_timeout: int = 60
    verify_tls: bool = True
    ca_bundle: str = ""
    user_agent: str = DEFAULT_USER_AGENT
    referer: str = ""

    # Output Settings
    output_dir: str = "downloads"
    container: str = "mp4"
    segment_extension: str = "ts"
    ffmpeg_path: str = "ffmpeg"
    keep_segments: bool = False
    inherit_query: bool = False

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of concurrent transfers."""
        if v < 1 or v > 64:
            raise ValueError("Max workers must be between 1 and 64.")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Request timeout must be at least 1 second.")
        return v

    @field_validator("container", "segment_extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        """Normalizes an extension and rejects path separators."""
        v = v.lstrip(".").lower()
        if not v:
            raise ValueError("Extension cannot be empty.")
        if any(sep in v for sep in ("/", "\\", "..")):
            raise ValueError(f"Invalid extension: '{v}'.")
        return v

    @field_validator("container")
    @classmethod
    def validate_container(cls, v: str) -> str:
        if v not in SUPPORTED_CONTAINERS:
            raise ValueError(
                f"Container must be one of: {', '.join(SUPPORTED_CONTAINERS)}."
            )
        return v

    @field_validator("output_dir", "ffmpeg_path")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Value cannot be empty.")
        return v

    @model_validator(mode="after")
    def validate_tls_options(self) -> "DownloadConfig":
        """Checks that a CA bundle is usable and not combined with disabled TLS."""
        if self.ca_bundle:
            if not self.verify_tls:
                raise ValueError("Cannot set 'ca_bundle' while 'verify_tls' is off.")
            if not Path(self.ca_bundle).expanduser().is_file():
                raise ValueError(f"CA bundle not found: '{self.ca_bundle}'.")
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return set(cls.model_fields)
