"""
Walks a content root once and produces the manifest describing every eligible
file, grouped by top-level category.
"""

import logging
import os
import tempfile
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from catalog_bundler.exceptions import ConfigRootMissingError
from catalog_bundler.models.manifest import FileEntry, Manifest
from catalog_bundler.models.stats import BuildStats
from catalog_bundler.utils.naming import (
    category_of,
    has_allowed_extension,
    is_hidden,
    make_entry_path,
)

log = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def sort_newest_first(entries: list[FileEntry]) -> list[FileEntry]:
    """
    Orders entries by modification time, newest first. Entries without a
    timestamp keep their discovery order and follow the timestamped ones.
    """
    timestamped = [e for e in entries if e.last_modified is not None]
    untimestamped = [e for e in entries if e.last_modified is None]
    timestamped.sort(key=lambda e: e.last_modified, reverse=True)
    return timestamped + untimestamped


class CatalogBuilder:
    """
    Builds a Manifest from a content root whose immediate sub-directories are the
    catalog categories.
    """

    def __init__(
        self, content_root: Path | str, clock: Callable[[], datetime] = utc_now
    ):
        self.content_root = Path(content_root)
        self._clock = clock
        self.stats = BuildStats()

    def build(self) -> Manifest:
        """
        Runs one full pass over the content root.

        Raises:
            ConfigRootMissingError: If the content root is absent or unreadable.
        """
        self.stats = BuildStats()
        start = time.monotonic()

        categories: dict[str, list[FileEntry]] = {}
        for category_dir in self._list_categories():
            # Categories without eligible files are still listed.
            categories[category_dir.name] = []
            for entry in self._walk(Path(category_dir.path), [category_dir.name]):
                categories[category_of(entry.path)].append(entry)

        for name, files in categories.items():
            categories[name] = sort_newest_first(files)
            log.debug(f"Category '{name}': {len(files)} eligible file(s).")

        self.stats.categories = len(categories)
        self.stats.files_indexed = sum(len(v) for v in categories.values())
        self.stats.duration_s = time.monotonic() - start

        return Manifest(generated_at=self._clock(), categories=categories)

    def _list_categories(self) -> list[os.DirEntry]:
        if not self.content_root.is_dir():
            raise ConfigRootMissingError(
                f"Content root '{self.content_root}' does not exist or is not a "
                "directory."
            )
        try:
            children = self._scan(self.content_root)
        except OSError as e:
            raise ConfigRootMissingError(
                f"Content root '{self.content_root}' cannot be read: {e}"
            ) from e

        categories = []
        for child in children:
            if is_hidden(child.name):
                continue
            try:
                if child.is_dir(follow_symlinks=False):
                    categories.append(child)
            except OSError as e:
                self._record_unreadable(child.path, e)
        return categories

    def _walk(self, directory: Path, parts: list[str]) -> list[FileEntry]:
        """Recursively collects eligible files below one category directory."""
        try:
            children = self._scan(directory)
        except OSError as e:
            self._record_unreadable(str(directory), e)
            return []

        files: list[FileEntry] = []
        for child in children:
            if is_hidden(child.name):
                self.stats.skipped_hidden += 1
                continue
            try:
                if child.is_dir(follow_symlinks=False):
                    files.extend(self._walk(Path(child.path), [*parts, child.name]))
                    continue
                if not child.is_file():
                    continue
                if not has_allowed_extension(child.name):
                    self.stats.skipped_extension += 1
                    continue
                st = child.stat()
            except OSError as e:
                self._record_unreadable(child.path, e)
                continue

            path = make_entry_path(*parts, child.name)
            files.append(
                FileEntry(
                    name=child.name,
                    path=path,
                    size=st.st_size,
                    last_modified=datetime.fromtimestamp(st.st_mtime, timezone.utc),
                )
            )
        return files

    @staticmethod
    def _scan(directory: Path) -> list[os.DirEntry]:
        # Discovery order is name order, independent of the filesystem.
        with os.scandir(directory) as it:
            return sorted(it, key=lambda entry: entry.name)

    def _record_unreadable(self, path: str, error: OSError) -> None:
        log.warning(f"[yellow]Skipping unreadable entry '{path}': {error}[/yellow]")
        self.stats.unreadable.append(path)


def write_manifest(manifest: Manifest, destination: Path) -> Path:
    """
    Writes the manifest as indented JSON. The file is replaced atomically, so
    concurrent builds resolve to whichever finishes last.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=destination.parent, prefix=".manifest-", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(manifest.to_json())
            f.write("\n")
        os.replace(tmp_name, destination)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    log.debug(f"Manifest written to '{destination}'.")
    return destination
