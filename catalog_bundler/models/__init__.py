"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the core
data structures used throughout the application: configuration, the manifest
contract, and build/bundle statistics.
"""

from .config import BundlerConfig
from .manifest import FileEntry, Manifest
from .stats import BuildStats, BundleStats

__all__ = ["BuildStats", "BundleStats", "BundlerConfig", "FileEntry", "Manifest"]
