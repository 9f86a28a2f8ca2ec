"""
Retrieves the manifest document, either from the web server that publishes it
or from a local content root.
"""

import asyncio
import logging
import time
from pathlib import Path

import aiohttp
from pydantic import ValidationError

from catalog_bundler.exceptions import ManifestUnavailableError
from catalog_bundler.models.config import DEFAULT_MANIFEST_NAME
from catalog_bundler.models.manifest import Manifest

log = logging.getLogger(__name__)

_NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


def manifest_url(base_url: str, manifest_name: str = DEFAULT_MANIFEST_NAME) -> str:
    return f"{base_url.rstrip('/')}/{manifest_name}"


async def fetch_manifest(
    session: aiohttp.ClientSession,
    base_url: str,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
) -> Manifest:
    """
    Fetches and validates the manifest, bypassing any HTTP cache on the way.

    Raises:
        ManifestUnavailableError: On any network, HTTP, or validation failure.
    """
    url = manifest_url(base_url, manifest_name)
    params = {"_": str(int(time.time() * 1000))}
    try:
        async with session.get(url, params=params, headers=_NO_CACHE_HEADERS) as resp:
            resp.raise_for_status()
            body = await resp.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise ManifestUnavailableError(f"Could not fetch manifest from {url}: {e}") from e

    try:
        manifest = Manifest.from_json(body)
    except ValidationError as e:
        raise ManifestUnavailableError(f"Manifest at {url} is invalid:\n{e}") from e

    log.debug(f"Fetched manifest with {manifest.file_count} file(s) from {url}.")
    return manifest


def read_manifest(path: Path) -> Manifest:
    """
    Reads a manifest file from disk.

    Raises:
        ManifestUnavailableError: If the file is missing, unreadable or invalid.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestUnavailableError(f"Could not read manifest '{path}': {e}") from e

    try:
        return Manifest.from_json(text)
    except ValidationError as e:
        raise ManifestUnavailableError(f"Manifest '{path}' is invalid:\n{e}") from e


async def load_remote_manifest_or_empty(
    base_url: str,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
    timeout: float = 30.0,
) -> Manifest:
    """Like `fetch_manifest`, but an unavailable manifest becomes an empty catalog."""
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    try:
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            return await fetch_manifest(session, base_url, manifest_name)
    except ManifestUnavailableError as e:
        log.warning(f"[yellow]⚠ {e}. Showing an empty catalog.[/yellow]")
        return Manifest.empty()


def load_local_manifest_or_empty(path: Path) -> Manifest:
    """Like `read_manifest`, but an unavailable manifest becomes an empty catalog."""
    try:
        return read_manifest(path)
    except ManifestUnavailableError as e:
        log.warning(f"[yellow]⚠ {e}. Showing an empty catalog.[/yellow]")
        return Manifest.empty()
