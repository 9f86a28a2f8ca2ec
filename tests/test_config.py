"""Tests for configuration loading and the structured logger."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from catalog_bundler.exceptions import ConfigurationError
from catalog_bundler.models.config import BundlerConfig
from catalog_bundler.storage.config_manager import ConfigManager
from catalog_bundler.utils.structured_logger import create_structured_logger


def test_missing_config_file_means_defaults(tmp_path: Path) -> None:
    config = ConfigManager(tmp_path / "config.ini").load_config()

    assert config.content_root == "public"
    assert config.manifest_name == "manifest.json"
    assert config.bundle_name == "data-dictionaries.zip"
    assert config.manifest_path == Path("public") / "manifest.json"


def test_ini_values_and_cli_overrides(tmp_path: Path) -> None:
    config_file = tmp_path / "config.ini"
    config_file.write_text(
        "[DEFAULT]\n"
        "content_root = /srv/data\n"
        "base_url = https://data.example.test/\n"
        "max_workers = 6\n"
        "request_timeout = 12.5\n",
        encoding="utf-8",
    )

    config = ConfigManager(config_file).load_config({"max_workers": 2})

    assert config.content_root == "/srv/data"
    assert config.base_url == "https://data.example.test"
    assert config.request_timeout == 12.5
    assert config.max_workers == 2


def test_existing_config_is_migrated_with_missing_keys(tmp_path: Path) -> None:
    config_file = tmp_path / "config.ini"
    config_file.write_text("[DEFAULT]\ncontent_root = data\n", encoding="utf-8")

    ConfigManager(config_file).load_config()

    text = config_file.read_text(encoding="utf-8")
    assert "content_root = data" in text
    assert "bundle_name = data-dictionaries.zip" in text
    assert "max_workers = 4" in text


def test_save_new_config_round_trips(tmp_path: Path) -> None:
    config_file = tmp_path / "nested" / "config.ini"
    manager = ConfigManager(config_file)

    manager.save_new_config({"content_root": "catalog", "port": 9000})

    config = ConfigManager(config_file).load_config()
    assert config.content_root == "catalog"
    assert config.port == 9000
    assert config.bundle_name == "data-dictionaries.zip"


@pytest.mark.parametrize(
    "options",
    [
        {"max_workers": 0},
        {"max_workers": 64},
        {"bundle_name": "bundle.tar"},
        {"bundle_name": "data:dictionaries.zip"},
        {"bundle_name": "CON.zip"},
        {"manifest_name": "sub/manifest.json"},
        {"base_url": "ftp://example.test"},
        {"request_timeout": 0},
    ],
)
def test_invalid_settings_raise_configuration_error(
    tmp_path: Path, options: dict
) -> None:
    with pytest.raises(ConfigurationError):
        ConfigManager(tmp_path / "config.ini").load_config(options)


def test_non_numeric_ini_value_is_reported(tmp_path: Path) -> None:
    config_file = tmp_path / "config.ini"
    config_file.write_text("[DEFAULT]\nmax_workers = many\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="max_workers"):
        ConfigManager(config_file).load_config()


def test_ini_keys_cover_every_field() -> None:
    assert BundlerConfig.get_ini_keys() == set(BundlerConfig.model_fields)


def test_structured_logger_writes_json_lines(tmp_path: Path) -> None:
    base, build_logger, bundle_logger = create_structured_logger(
        log_dir=tmp_path / "logs", enable_json=True, enable_console=False
    )
    with base:
        build_logger.build_completed("public/manifest.json", 2, 5, 0, 0.1234)
        bundle_logger.bundle_empty(requested=1, failed=1, unresolved=0)

    (log_file,) = (tmp_path / "logs").glob("catalog_bundler_*.jsonl")
    events = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert [e["event"] for e in events] == ["build_completed", "bundle_empty"]
    assert events[0]["files"] == 5
    assert events[0]["duration_s"] == 0.12
    assert events[1]["level"] == "WARNING"
