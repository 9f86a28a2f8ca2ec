"""
Defines custom exceptions for the application to allow for more specific error handling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from catalog_bundler.models.stats import BundleStats


class CatalogBundlerError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(CatalogBundlerError):
    """Raised for issues related to configuration loading or validation."""


class ConfigRootMissingError(CatalogBundlerError):
    """Raised when the content root directory is absent or cannot be listed."""


class ManifestUnavailableError(CatalogBundlerError):
    """Raised when a manifest cannot be fetched, read, or validated."""


class FileFetchFailedError(CatalogBundlerError):
    """Raised by a fetcher when the bytes for a single catalog path can't be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to fetch '{path}': {reason}")
        self.path = path
        self.reason = reason


class BundleEmptyError(CatalogBundlerError):
    """
    Raised when a bundling request produces nothing to deliver, either because the
    selection was empty or because every fetch failed.
    """

    def __init__(self, message: str, stats: BundleStats | None = None):
        super().__init__(message)
        self.stats = stats


class BundleInProgressError(CatalogBundlerError):
    """Raised when a bundle is requested while another one is still in flight."""
