"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pathlib import Path

from pathvalidate import is_valid_filename
from pydantic import BaseModel, field_validator

DEFAULT_BUNDLE_NAME = "data-dictionaries.zip"
DEFAULT_MANIFEST_NAME = "manifest.json"


class BundlerConfig(BaseModel):
    """A validated configuration model for the application."""

    # Catalog
    content_root: str = "public"
    manifest_name: str = DEFAULT_MANIFEST_NAME

    # Bundling
    base_url: str = ""
    bundle_name: str = DEFAULT_BUNDLE_NAME
    output_dir: str = "."
    max_workers: int = 4
    request_timeout: float = 30.0
    max_attempts: int = 3

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Logging
    log_dir: str = ""

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("content_root")
    @classmethod
    def validate_content_root(cls, v: str) -> str:
        if not v:
            raise ValueError("Content root cannot be empty.")
        return v

    @field_validator("manifest_name")
    @classmethod
    def validate_manifest_name(cls, v: str) -> str:
        """The manifest lives directly inside the content root."""
        if not v or "/" in v or "\\" in v or v.startswith("."):
            raise ValueError(
                "Manifest name must be a plain, non-hidden file name (no directories)."
            )
        return v

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("Base URL must start with http:// or https://.")
        return v.rstrip("/")

    @field_validator("bundle_name")
    @classmethod
    def validate_bundle_name(cls, v: str) -> str:
        if not v.lower().endswith(".zip"):
            raise ValueError("Bundle name must end with '.zip'.")
        if "/" in v or "\\" in v:
            raise ValueError("Bundle name cannot contain directories.")
        if not is_valid_filename(v, platform="universal"):
            raise ValueError(f"Bundle name '{v}' is not a portable file name.")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of concurrent fetches."""
        if v < 1 or v > 32:
            raise ValueError("Max workers must be between 1 and 32.")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Request timeout must be positive.")
        return v

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1 or v > 10:
            raise ValueError("Max attempts must be between 1 and 10.")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if v < 1 or v > 65535:
            raise ValueError("Port must be between 1 and 65535.")
        return v

    @property
    def content_root_path(self) -> Path:
        return Path(self.content_root).expanduser()

    @property
    def manifest_path(self) -> Path:
        return self.content_root_path / self.manifest_name

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return set(cls.model_fields)
