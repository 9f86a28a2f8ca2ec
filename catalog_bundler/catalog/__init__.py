"""
Catalog Layer.

This package turns a content directory tree into a manifest and provides
filtered views over an existing manifest.
"""

from .builder import CatalogBuilder, write_manifest
from .query import CatalogRow, filter_rows, iter_rows

__all__ = ["CatalogBuilder", "CatalogRow", "filter_rows", "iter_rows", "write_manifest"]
