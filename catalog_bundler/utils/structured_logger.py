"""
Structured logging system for better log analysis and debugging.
Provides JSON-formatted logs with context and metadata.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class StructuredLogger:
    """
    Logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("catalog_bundler")
        logger.info("bundle_completed",
                    requested=3,
                    fetched=2,
                    size_bytes=40960)
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
            enable_json: Enable JSON file logging
            enable_console: Enable console output
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None
        self.enable_console = enable_console

        self._logger = logging.getLogger(name)

        self._json_file = None
        self.json_log_path: Path | None = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.json_log_path = log_dir / f"catalog_bundler_{timestamp}.jsonl"
            self._json_file = open(self.json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
            "start_time": datetime.now().isoformat(),
        }

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(kwargs)

    def _format_message(self, event: str, **context) -> str:
        parts = [f"[{event}]"]
        for key, value in context.items():
            if key not in ("level", "timestamp"):
                parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, TypeError, ValueError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _emit(self, level: int, event: str, **context) -> None:
        if self.enable_console:
            self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        self._emit(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._emit(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self._emit(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self._emit(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class BuildLogger:
    """Specialized logger for catalog build events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def build_started(self, content_root: str):
        self.logger.debug("build_started", content_root=content_root)

    def entry_unreadable(self, path: str):
        self.logger.warning("entry_unreadable", path=path)

    def build_completed(
        self,
        manifest_path: str,
        categories: int,
        files: int,
        unreadable: int,
        duration_s: float,
    ):
        self.logger.info(
            "build_completed",
            manifest_path=manifest_path,
            categories=categories,
            files=files,
            unreadable=unreadable,
            duration_s=round(duration_s, 2),
        )

    def build_failed(self, content_root: str, error: str):
        self.logger.error("build_failed", content_root=content_root, error=error)


class BundleLogger:
    """Specialized logger for bundle assembly events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def bundle_started(self, source: str, selected: int, max_workers: int):
        self.logger.debug(
            "bundle_started", source=source, selected=selected, max_workers=max_workers
        )

    def file_fetch_failed(self, path: str):
        self.logger.warning("file_fetch_failed", path=path)

    def bundle_completed(
        self,
        bundle_path: str,
        requested: int,
        fetched: int,
        size_bytes: int,
        duration_s: float,
    ):
        self.logger.info(
            "bundle_completed",
            bundle_path=bundle_path,
            requested=requested,
            fetched=fetched,
            size_mb=round(size_bytes / (1024 * 1024), 2),
            duration_s=round(duration_s, 2),
        )

    def bundle_empty(self, requested: int, failed: int, unresolved: int):
        self.logger.warning(
            "bundle_empty", requested=requested, failed=failed, unresolved=unresolved
        )


def create_structured_logger(
    log_dir: Path | None = None, enable_json: bool = False, enable_console: bool = True
) -> tuple[StructuredLogger, BuildLogger, BundleLogger]:
    """
    Create all structured loggers.

    Returns:
        Tuple of (base_logger, build_logger, bundle_logger)
    """
    base = StructuredLogger(
        "catalog_bundler.events",
        log_dir=log_dir,
        enable_json=enable_json,
        enable_console=enable_console,
    )
    return base, BuildLogger(base), BundleLogger(base)
