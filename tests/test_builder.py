"""Tests for catalog_bundler.catalog.builder."""

from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from catalog_bundler.catalog import builder as builder_module
from catalog_bundler.catalog.builder import CatalogBuilder, sort_newest_first, write_manifest
from catalog_bundler.exceptions import ConfigRootMissingError
from catalog_bundler.models.manifest import FileEntry, Manifest
from catalog_bundler.utils.naming import category_of, has_allowed_extension, split_path
from tests._fixtures.content_tree import FIXED_NOW, ContentTree

T0 = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def test_builds_scenario_manifest(content_tree: ContentTree) -> None:
    content_tree.write("Equities/AAPL.csv", size=2048, mtime=T0)
    content_tree.write("Bonds/notes.txt", size=512, mtime=T0)

    manifest = content_tree.build()

    assert manifest.generated_at == FIXED_NOW
    assert manifest.categories == {
        "Bonds": [
            FileEntry(name="notes.txt", path="/Bonds/notes.txt", size=512, last_modified=T0)
        ],
        "Equities": [
            FileEntry(
                name="AAPL.csv", path="/Equities/AAPL.csv", size=2048, last_modified=T0
            )
        ],
    }


def test_filters_extensions_and_hidden_entries_at_any_depth(
    content_tree: ContentTree,
) -> None:
    content_tree.write("Rates/curve.CSV")
    content_tree.write("Rates/book.xlsx")
    content_tree.write("Rates/legacy.xls")
    content_tree.write("Rates/readme.md")
    content_tree.write("Rates/.hidden.csv")
    content_tree.write("Rates/2024/.cache/deep.csv")
    content_tree.write("Rates/2024/Q1/.secret.txt")
    content_tree.write("Rates/2024/Q1/kept.txt")
    content_tree.write(".git/config.txt")
    content_tree.write("top-level.csv")

    manifest = content_tree.build()

    assert list(manifest.categories) == ["Rates"]
    paths = {entry.path for entry in manifest.categories["Rates"]}
    assert paths == {
        "/Rates/curve.CSV",
        "/Rates/book.xlsx",
        "/Rates/legacy.xls",
        "/Rates/2024/Q1/kept.txt",
    }
    for entry in manifest.entries():
        assert has_allowed_extension(entry.name)
        assert not any(segment.startswith(".") for segment in split_path(entry.path))
        assert category_of(entry.path) == "Rates"


def test_nested_files_are_flattened_into_their_category(
    content_tree: ContentTree,
) -> None:
    content_tree.write("Equities/US/Tech/AAPL.csv")

    manifest = content_tree.build()

    assert list(manifest.categories) == ["Equities"]
    (entry,) = manifest.categories["Equities"]
    assert entry.name == "AAPL.csv"
    assert entry.path == "/Equities/US/Tech/AAPL.csv"


def test_empty_categories_are_kept(content_tree: ContentTree) -> None:
    content_tree.mkdir("Commodities")
    content_tree.write("FX/readme.pdf")

    manifest = content_tree.build()

    assert manifest.categories == {"Commodities": [], "FX": []}


def test_entries_sorted_newest_first(content_tree: ContentTree) -> None:
    content_tree.write("Equities/old.csv", mtime=T0)
    content_tree.write("Equities/new.csv", mtime=T0 + timedelta(days=2))
    content_tree.write("Equities/mid.csv", mtime=T0 + timedelta(days=1))

    names = [e.name for e in content_tree.build().categories["Equities"]]

    assert names == ["new.csv", "mid.csv", "old.csv"]


def test_sort_keeps_untimestamped_entries_in_discovery_order() -> None:
    entries = [
        FileEntry(name="b.csv", path="/C/b.csv", size=1),
        FileEntry(name="old.csv", path="/C/old.csv", size=1, last_modified=T0),
        FileEntry(name="a.csv", path="/C/a.csv", size=1),
        FileEntry(
            name="new.csv",
            path="/C/new.csv",
            size=1,
            last_modified=T0 + timedelta(hours=1),
        ),
    ]

    names = [e.name for e in sort_newest_first(entries)]

    assert names == ["new.csv", "old.csv", "b.csv", "a.csv"]


def test_sort_is_stable_for_equal_timestamps(content_tree: ContentTree) -> None:
    for name in ("c.csv", "a.csv", "b.csv"):
        content_tree.write(f"Equities/{name}", mtime=T0)

    names = [e.name for e in content_tree.build().categories["Equities"]]

    assert names == ["a.csv", "b.csv", "c.csv"]


def test_two_builds_of_an_unchanged_tree_are_identical(
    content_tree: ContentTree,
) -> None:
    content_tree.write("Equities/AAPL.csv", mtime=T0)
    content_tree.write("Equities/2024/MSFT.csv", mtime=T0 + timedelta(minutes=5))
    content_tree.write("Bonds/notes.txt", mtime=T0)

    first = CatalogBuilder(content_tree.root).build()
    second = CatalogBuilder(
        content_tree.root, clock=lambda: FIXED_NOW + timedelta(hours=1)
    ).build()

    assert first.categories == second.categories
    assert first.generated_at != second.generated_at


def test_missing_root_is_fatal(tmp_path: Path) -> None:
    missing = tmp_path / "missing"

    with pytest.raises(ConfigRootMissingError) as excinfo:
        CatalogBuilder(missing).build()

    assert str(missing) in str(excinfo.value)


def test_root_that_is_a_file_is_fatal(tmp_path: Path) -> None:
    not_a_dir = tmp_path / "public"
    not_a_dir.write_text("oops", encoding="utf-8")

    with pytest.raises(ConfigRootMissingError):
        CatalogBuilder(not_a_dir).build()


def test_unreadable_subdirectory_is_skipped(
    content_tree: ContentTree, monkeypatch: pytest.MonkeyPatch
) -> None:
    content_tree.write("Equities/AAPL.csv")
    content_tree.write("Equities/locked/secret.csv")
    content_tree.write("Bonds/notes.txt")
    locked = content_tree.root / "Equities" / "locked"

    real_scandir = os.scandir

    def fake_scandir(path):
        if Path(path) == locked:
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(builder_module.os, "scandir", fake_scandir)

    builder = CatalogBuilder(content_tree.root)
    manifest = builder.build()

    assert [e.path for e in manifest.categories["Equities"]] == ["/Equities/AAPL.csv"]
    assert [e.path for e in manifest.categories["Bonds"]] == ["/Bonds/notes.txt"]
    assert builder.stats.unreadable == [str(locked)]


_real_scandir = os.scandir


class _FailingStatEntry:
    """Wraps a DirEntry whose stat() call fails."""

    def __init__(self, entry: os.DirEntry) -> None:
        self._entry = entry
        self.name = entry.name
        self.path = entry.path

    def is_dir(self, follow_symlinks: bool = True) -> bool:
        return self._entry.is_dir(follow_symlinks=follow_symlinks)

    def is_file(self, follow_symlinks: bool = True) -> bool:
        return self._entry.is_file(follow_symlinks=follow_symlinks)

    def stat(self, follow_symlinks: bool = True) -> os.stat_result:
        raise PermissionError(13, "Permission denied", self.path)


class _ScandirWithFailingStat:
    def __init__(self, path, failing: set[str]) -> None:
        self._inner = _real_scandir(path)
        self._failing = failing

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self._inner.close()

    def __iter__(self):
        for entry in self._inner:
            yield _FailingStatEntry(entry) if entry.name in self._failing else entry


def test_unreadable_file_is_skipped(
    content_tree: ContentTree, monkeypatch: pytest.MonkeyPatch
) -> None:
    content_tree.write("Equities/AAPL.csv")
    content_tree.write("Equities/MSFT.csv")
    content_tree.write("Bonds/notes.txt")
    monkeypatch.setattr(
        builder_module.os,
        "scandir",
        lambda path: _ScandirWithFailingStat(path, {"MSFT.csv"}),
    )

    builder = CatalogBuilder(content_tree.root)
    manifest = builder.build()

    assert [e.path for e in manifest.categories["Equities"]] == ["/Equities/AAPL.csv"]
    assert [e.path for e in manifest.categories["Bonds"]] == ["/Bonds/notes.txt"]
    assert builder.stats.unreadable == [
        str(content_tree.root / "Equities" / "MSFT.csv")
    ]


def test_unlistable_root_is_fatal(
    content_tree: ContentTree, monkeypatch: pytest.MonkeyPatch
) -> None:
    def fake_scandir(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(builder_module.os, "scandir", fake_scandir)

    with pytest.raises(ConfigRootMissingError):
        CatalogBuilder(content_tree.root).build()


def test_build_stats_are_collected(content_tree: ContentTree) -> None:
    content_tree.write("Equities/AAPL.csv")
    content_tree.write("Equities/.DS_Store")
    content_tree.write("Equities/chart.png")
    content_tree.mkdir("Empty")

    builder = CatalogBuilder(content_tree.root)
    builder.build()

    assert builder.stats.categories == 2
    assert builder.stats.files_indexed == 1
    assert builder.stats.skipped_hidden == 1
    assert builder.stats.skipped_extension == 1
    assert builder.stats.unreadable == []


def test_write_manifest_produces_camel_case_json(
    content_tree: ContentTree, tmp_path: Path
) -> None:
    content_tree.write("Equities/AAPL.csv", size=2048, mtime=T0)
    destination = content_tree.root / "manifest.json"

    write_manifest(content_tree.build(), destination)

    data = json.loads(destination.read_text(encoding="utf-8"))
    assert data == {
        "generatedAt": "2025-01-01T12:00:00.000Z",
        "categories": {
            "Equities": [
                {
                    "name": "AAPL.csv",
                    "path": "/Equities/AAPL.csv",
                    "size": 2048,
                    "lastModified": "2024-03-01T09:30:00.000Z",
                }
            ]
        },
    }
    assert Manifest.from_json(destination.read_text(encoding="utf-8")) == content_tree.build()
    assert not list(content_tree.root.glob(".manifest-*.tmp"))


def test_manifest_file_is_not_indexed_on_rebuild(content_tree: ContentTree) -> None:
    content_tree.write("Bonds/notes.txt")
    write_manifest(content_tree.build(), content_tree.root / "manifest.json")

    manifest = content_tree.build()

    assert manifest.file_count == 1
