"""
Flattened, searchable views over a manifest.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from catalog_bundler.models.manifest import FileEntry, Manifest


@dataclass(frozen=True)
class CatalogRow:
    category: str
    entry: FileEntry


def iter_rows(manifest: Manifest) -> Iterator[CatalogRow]:
    for category, entries in manifest.categories.items():
        for entry in entries:
            yield CatalogRow(category, entry)


def filter_rows(rows: Iterable[CatalogRow], query: str | None) -> list[CatalogRow]:
    """
    Keeps rows whose category or file name contains the query, ignoring case.
    A blank query keeps everything.
    """
    q = (query or "").strip().lower()
    if not q:
        return list(rows)
    return [
        row
        for row in rows
        if q in row.category.lower() or q in row.entry.name.lower()
    ]
