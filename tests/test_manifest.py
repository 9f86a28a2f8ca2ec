"""Tests for catalog_bundler.models.manifest and catalog_bundler.catalog.query."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from catalog_bundler.catalog.query import filter_rows, iter_rows
from catalog_bundler.models.manifest import FileEntry, Manifest

SAMPLE = {
    "generatedAt": "2025-01-01T12:00:00.000Z",
    "categories": {
        "Equities": [
            {
                "name": "AAPL.csv",
                "path": "/Equities/AAPL.csv",
                "size": 2048,
                "lastModified": "2024-03-01T09:30:00.123Z",
            }
        ],
        "Bonds": [{"name": "notes.txt", "path": "/Bonds/notes.txt", "size": 512}],
    },
}


def test_parses_manifest_document() -> None:
    manifest = Manifest.from_json(json.dumps(SAMPLE))

    assert manifest.generated_at == datetime(2025, 1, 1, 12, tzinfo=timezone.utc)
    (aapl,) = manifest.categories["Equities"]
    assert aapl.last_modified == datetime(
        2024, 3, 1, 9, 30, 0, 123000, tzinfo=timezone.utc
    )
    assert aapl.category == "Equities"
    (notes,) = manifest.categories["Bonds"]
    assert notes.last_modified is None
    assert manifest.file_count == 2


def test_serialises_back_to_the_same_document() -> None:
    manifest = Manifest.from_json(json.dumps(SAMPLE))

    assert json.loads(manifest.to_json()) == SAMPLE


def test_empty_manifest() -> None:
    manifest = Manifest.empty()

    assert manifest.categories == {}
    assert manifest.entries() == []
    assert json.loads(manifest.to_json()) == {"categories": {}}


def test_rejects_entry_under_wrong_category() -> None:
    document = {
        "generatedAt": "2025-01-01T00:00:00Z",
        "categories": {
            "Bonds": [{"name": "AAPL.csv", "path": "/Equities/AAPL.csv", "size": 1}]
        },
    }

    with pytest.raises(ValidationError, match="belongs to 'Equities'"):
        Manifest.from_json(json.dumps(document))


def test_rejects_duplicate_paths() -> None:
    entry = {"name": "AAPL.csv", "path": "/Equities/AAPL.csv", "size": 1}
    document = {"categories": {"Equities": [entry, entry]}}

    with pytest.raises(ValidationError, match="Duplicate manifest path"):
        Manifest.from_json(json.dumps(document))


@pytest.mark.parametrize(
    "entry",
    [
        {"name": "", "path": "/Equities/", "size": 1},
        {"name": "AAPL.csv", "path": "/AAPL.csv", "size": 1},
        {"name": "MSFT.csv", "path": "/Equities/AAPL.csv", "size": 1},
        {"name": "AAPL.csv", "path": "/Equities/AAPL.csv", "size": -1},
    ],
)
def test_rejects_malformed_entries(entry: dict) -> None:
    with pytest.raises(ValidationError):
        FileEntry.model_validate(entry)


def test_entries_are_immutable() -> None:
    entry = FileEntry(name="a.csv", path="/Rates/a.csv", size=1)

    with pytest.raises(ValidationError):
        entry.size = 2


def test_filter_rows_matches_category_or_name_case_insensitively() -> None:
    manifest = Manifest.from_json(json.dumps(SAMPLE))
    rows = list(iter_rows(manifest))

    assert [r.entry.name for r in filter_rows(rows, "  aapl ")] == ["AAPL.csv"]
    assert [r.category for r in filter_rows(rows, "BOND")] == ["Bonds"]
    assert len(filter_rows(rows, "")) == 2
    assert len(filter_rows(rows, None)) == 2
    assert filter_rows(rows, "nothing") == []
