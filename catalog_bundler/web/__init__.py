"""
Web Layer.

This package publishes a content root over HTTP and retrieves manifests from
wherever they are published.
"""

from .manifest_client import (
    fetch_manifest,
    load_local_manifest_or_empty,
    load_remote_manifest_or_empty,
    read_manifest,
)
from .server import create_app, run_server

__all__ = [
    "create_app",
    "fetch_manifest",
    "load_local_manifest_or_empty",
    "load_remote_manifest_or_empty",
    "read_manifest",
    "run_server",
]
