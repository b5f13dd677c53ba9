"""Centralized logging setup for nfprom."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Literal

from nfprom.logging.json_formatter import ContextTextFormatter, StructuredJSONFormatter

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def _env_flag(
    name: str,
    default: str = "0",
) -> bool:
    raw_value = os.environ.get(name, default)
    return str(raw_value).strip().lower() in {"1", "true", "yes", "on"}


def _build_formatter(log_format: Literal["text", "json"]) -> logging.Formatter:
    if log_format == "json":
        return StructuredJSONFormatter(ensure_ascii=False, sort_keys=True)
    return ContextTextFormatter(DEFAULT_FORMAT)


def configure_logging(
    level: str | int = "INFO",
    log_format: Literal["text", "json"] = "text",
    log_dir: Path | None = None,
) -> None:
    """
    Configure console logging and, optionally, a rotating log file.

    Args:
        level: Root log level name or number
        log_format: ``text`` for human-readable lines, ``json`` for one JSON object per line
        log_dir: When set, also write ``nfprom.log`` there with size-based rotation
    """
    if isinstance(level, str):
        logging_level = logging.getLevelName(level.upper())
    else:
        logging_level = level
    if _env_flag("NFPROM_DEBUG"):
        logging_level = logging.DEBUG

    root = logging.getLogger()
    root.setLevel(logging_level)
    formatter = _build_formatter(log_format)

    # Check for console StreamHandlers (exclude file handlers and test fixtures)
    console_handlers = [
        h
        for h in root.handlers
        if isinstance(h, logging.StreamHandler)
        and not isinstance(h, logging.handlers.RotatingFileHandler)
        and type(h).__name__ not in {"LogCaptureHandler", "_LiveLoggingNullHandler"}
    ]
    if console_handlers:
        for handler in console_handlers:
            handler.setFormatter(formatter)
    else:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

    if log_dir is None:
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = str(log_dir / "nfprom.log")
    existing_targets = {
        getattr(handler, "baseFilename", None)
        for handler in root.handlers
        if hasattr(handler, "baseFilename")
    }
    if log_path not in existing_targets:
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


__all__ = ["configure_logging", "DEFAULT_FORMAT"]
