"""
Fetch collaborators that resolve a catalog path to its bytes, either over HTTP
or straight from a local content root.
"""

import asyncio
import logging
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import aiofiles
import aiohttp

from catalog_bundler.exceptions import FileFetchFailedError
from catalog_bundler.utils.naming import is_hidden, split_path

log = logging.getLogger(__name__)


class Fetcher(Protocol):
    """Anything that can turn a catalog path into bytes."""

    async def fetch(self, path: str) -> bytes:
        """Returns the content for `path` or raises FileFetchFailedError."""
        ...


class HttpFetcher:
    """
    Fetches catalog files from a web server with retry logic.

    Use as an async context manager; the underlying connection pool lives for
    the duration of the `async with` block.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_connections: int = 8,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_connections = max_connections
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "HttpFetcher":
        connector = aiohttp.TCPConnector(
            limit=self.max_connections,
            limit_per_host=self.max_connections,
            ttl_dns_cache=600,
            keepalive_timeout=30,
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.timeout, sock_connect=15),
        )
        log.debug(f"Opened fetch pool with limit={self.max_connections}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            log.debug("Fetch pool closed.")
        self._session = None

    def url_for(self, path: str) -> str:
        """Builds the request URL for a catalog path, percent-encoding it."""
        return self.base_url + quote("/" + path.lstrip("/"), safe="/")

    async def fetch(self, path: str) -> bytes:
        if self._session is None:
            raise RuntimeError("HttpFetcher must be used inside 'async with'.")

        url = self.url_for(path)
        last_error = ""
        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self._session.get(url) as response:
                    response.raise_for_status()
                    return await response.read()
            except aiohttp.ClientResponseError as e:
                last_error = f"HTTP {e.status}"
                if e.status < 500:
                    break
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = str(e) or type(e).__name__

            log.debug(
                f"Fetch attempt {attempt}/{self.max_attempts} for '{path}' failed: "
                f"{last_error}."
            )
            if attempt < self.max_attempts:
                await asyncio.sleep(self.base_delay * (2 ** (attempt - 1)))

        raise FileFetchFailedError(path, last_error)


class LocalFetcher:
    """Reads catalog files directly from a content root on disk."""

    def __init__(self, content_root: Path | str):
        self.content_root = Path(content_root).resolve()

    def resolve(self, path: str) -> Path:
        """
        Maps a catalog path onto the content root, refusing hidden segments and
        anything that would escape the root.
        """
        segments = split_path(path)
        if not segments or any(is_hidden(s) for s in segments):
            raise FileFetchFailedError(path, "path is not a catalog location")
        target = self.content_root.joinpath(*segments).resolve()
        if not target.is_relative_to(self.content_root):
            raise FileFetchFailedError(path, "path escapes the content root")
        return target

    async def fetch(self, path: str) -> bytes:
        target = self.resolve(path)
        try:
            async with aiofiles.open(target, "rb") as f:
                return await f.read()
        except OSError as e:
            raise FileFetchFailedError(path, e.strerror or str(e)) from e
