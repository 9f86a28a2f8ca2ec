"""
Bundle Layer.

This package fetches selected catalog files and packs them into a single
archive. The `BundleAssembler` does the work; the `BundleSession` tracks the
selection and in-flight state a caller owns.
"""

from .assembler import Bundle, BundleAssembler
from .fetchers import Fetcher, HttpFetcher, LocalFetcher
from .session import BundleSession

__all__ = [
    "Bundle",
    "BundleAssembler",
    "BundleSession",
    "Fetcher",
    "HttpFetcher",
    "LocalFetcher",
]
