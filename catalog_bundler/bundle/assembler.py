"""
Turns a selection over a manifest view into a single ZIP bundle, fetching the
selected files concurrently and tolerating individual fetch failures.
"""

import asyncio
import io
import logging
import time
import zipfile
from collections.abc import Callable, Collection, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath

from catalog_bundler.bundle.fetchers import Fetcher
from catalog_bundler.exceptions import BundleEmptyError, FileFetchFailedError
from catalog_bundler.models.config import DEFAULT_BUNDLE_NAME
from catalog_bundler.models.manifest import FileEntry, Manifest
from catalog_bundler.models.stats import BundleStats
from catalog_bundler.utils.naming import archive_name_for

log = logging.getLogger(__name__)

ProgressCallback = Callable[[str, bool], None]

_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
_ZIP_LATEST = (2107, 12, 31, 23, 59, 58)


@dataclass
class Bundle:
    """A finished archive, ready to be handed to the user."""

    filename: str
    data: bytes
    members: list[str] = field(default_factory=list)
    stats: BundleStats = field(default_factory=BundleStats)

    def save(self, directory: Path | str) -> Path:
        """Writes the archive into `directory` under its delivery file name."""
        target_dir = Path(directory)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / self.filename
        target.write_bytes(self.data)
        return target


def resolve_selection(
    entries: Manifest | Iterable[FileEntry], selection: Collection[str]
) -> tuple[list[FileEntry], list[str]]:
    """
    Matches selected paths against a manifest view.

    Returns:
        The matching entries ordered by path (first occurrence wins for repeated
        paths), and the selected paths the view did not contain.
    """
    if isinstance(entries, Manifest):
        entries = entries.entries()

    wanted = set(selection)
    by_path: dict[str, FileEntry] = {}
    for entry in entries:
        if entry.path in wanted and entry.path not in by_path:
            by_path[entry.path] = entry

    resolved = [by_path[path] for path in sorted(by_path)]
    unresolved = sorted(wanted - by_path.keys())
    return resolved, unresolved


def assign_member_names(entries: list[FileEntry]) -> list[str]:
    """
    Derives archive member names for entries already ordered by path. Two files
    with the same name in different sub-directories of one category would map
    to the same member, so later ones get a ' (2)', ' (3)', ... suffix.
    """
    taken: set[str] = set()
    names = []
    for entry in entries:
        name = archive_name_for(entry.path, entry.name)
        if name in taken:
            member = PurePosixPath(name)
            counter = 2
            while name in taken:
                renamed = f"{member.stem} ({counter}){member.suffix}"
                name = str(member.with_name(renamed))
                counter += 1
        taken.add(name)
        names.append(name)
    return names


def _zip_timestamp(modified: datetime | None) -> tuple[int, int, int, int, int, int]:
    if modified is None or modified.year < 1980:
        return _ZIP_EPOCH
    if modified.year > 2107:
        return _ZIP_LATEST
    return (
        modified.year,
        modified.month,
        modified.day,
        modified.hour,
        modified.minute,
        modified.second,
    )


def write_archive(members: list[tuple[str, bytes, datetime | None]]) -> bytes:
    """Packs (name, data, modified) members into ZIP bytes, sorted by name."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data, modified in sorted(members, key=lambda m: m[0]):
            info = zipfile.ZipInfo(name, date_time=_zip_timestamp(modified))
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            zf.writestr(info, data)
    return buffer.getvalue()


class BundleAssembler:
    """
    Assembles at most one bundle per call from a manifest view and a selection.

    The fetcher is injected so the assembler can run against HTTP, a local
    content root, or a test double.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        max_concurrent: int = 4,
        bundle_name: str = DEFAULT_BUNDLE_NAME,
    ):
        """
        Args:
            fetcher: Collaborator that returns the bytes for a catalog path.
            max_concurrent: Maximum number of fetches in flight at once.
            bundle_name: File name the finished archive is delivered under.
        """
        self.fetcher = fetcher
        self.max_concurrent = max_concurrent
        self.bundle_name = bundle_name

    async def assemble(
        self,
        entries: Manifest | Iterable[FileEntry],
        selection: Collection[str],
        on_progress: ProgressCallback | None = None,
    ) -> Bundle:
        """
        Fetches every selected entry and packs the successful ones into one ZIP.

        Raises:
            BundleEmptyError: If the selection is empty, matches nothing in the
                view, or every fetch failed. No archive is produced in any of
                these cases.
        """
        if not selection:
            raise BundleEmptyError("Nothing selected; no bundle was produced.")

        start = time.monotonic()
        resolved, unresolved = resolve_selection(entries, selection)
        stats = BundleStats(requested=len(set(selection)), unresolved=unresolved)
        for path in unresolved:
            log.warning(f"[yellow]Selected path '{path}' is not in the catalog.[/yellow]")

        if not resolved:
            stats.duration_s = time.monotonic() - start
            raise BundleEmptyError(
                "None of the selected files are in the catalog; no bundle was "
                "produced.",
                stats,
            )

        log.debug(
            f"Fetching {len(resolved)} file(s) with up to {self.max_concurrent} "
            "concurrent requests..."
        )
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def fetch_single(entry: FileEntry) -> bytes | None:
            async with semaphore:
                try:
                    data = await self.fetcher.fetch(entry.path)
                except FileFetchFailedError as e:
                    log.warning(f"[yellow]⚠ Skipping '{entry.path}': {e.reason}[/yellow]")
                    data = None
            if on_progress:
                on_progress(entry.path, data is not None)
            return data

        results = await asyncio.gather(*(fetch_single(entry) for entry in resolved))

        fetched: list[tuple[FileEntry, bytes]] = []
        for entry, data in zip(resolved, results):
            if data is None:
                stats.failed.append(entry.path)
            else:
                fetched.append((entry, data))

        stats.fetched = len(fetched)
        stats.total_bytes = sum(len(data) for _, data in fetched)

        if not fetched:
            stats.duration_s = time.monotonic() - start
            raise BundleEmptyError(
                f"All {len(resolved)} selected file(s) failed to download; no "
                "bundle was produced.",
                stats,
            )

        names = assign_member_names([entry for entry, _ in fetched])
        members = [
            (name, data, entry.last_modified)
            for name, (entry, data) in zip(names, fetched)
        ]
        archive = await asyncio.to_thread(write_archive, members)
        stats.duration_s = time.monotonic() - start

        log.info(
            f"Bundled {stats.fetched}/{stats.requested} file(s) into "
            f"'{self.bundle_name}'."
        )
        return Bundle(
            filename=self.bundle_name,
            data=archive,
            members=sorted(names),
            stats=stats,
        )
