"""JSON logging formatter with process context support."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from .context import get_log_context


class StructuredJSONFormatter(logging.Formatter):
    """JSON formatter that includes the process context and structured extras."""

    def __init__(
        self,
        *,
        ensure_ascii: bool = False,
        default: Any = str,
        sort_keys: bool = False,
        timestamp_format: str = "%Y-%m-%dT%H:%M:%S.%fZ",
    ) -> None:
        """Initialize the JSON formatter.

        Args:
            ensure_ascii: Whether to ensure ASCII encoding in JSON output
            default: Default function for JSON serialization of non-serializable objects
            sort_keys: Whether to sort keys in the JSON output
            timestamp_format: Format string for timestamps
        """
        super().__init__()
        self.ensure_ascii = ensure_ascii
        self.default = default
        self.sort_keys = sort_keys
        self.timestamp_format = timestamp_format

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as one JSON object.

        Args:
            record: The log record to format

        Returns:
            JSON-formatted log entry as a string
        """
        log_entry: dict[str, Any] = {
            "timestamp": self._format_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName if record.funcName is not None else "<module>",
            "line": record.lineno,
            "thread": record.thread,
        }

        context = get_log_context()
        if context:
            log_entry.update(context)

        if record.exc_info:
            log_entry["exception"] = self._format_exception(record.exc_info)

        if record.stack_info:
            log_entry["stack_trace"] = record.stack_info

        # StructuredLogger passes its keyword fields here
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            for key, value in extra.items():
                if key not in log_entry:
                    log_entry[key] = value

        try:
            return json.dumps(
                log_entry,
                ensure_ascii=self.ensure_ascii,
                default=self.default,
                sort_keys=self.sort_keys,
            )
        except (TypeError, ValueError) as exc:
            fallback_entry = {
                "timestamp": log_entry["timestamp"],
                "level": log_entry["level"],
                "logger": log_entry["logger"],
                "message": f"JSON serialization failed: {exc}",
                "original_message": str(log_entry.get("message", "")),
            }
            return json.dumps(fallback_entry, ensure_ascii=self.ensure_ascii)

    def _format_timestamp(self, created: float) -> str:
        dt = datetime.fromtimestamp(created, UTC)
        return dt.strftime(self.timestamp_format)

    def _format_exception(self, exc_info: Any) -> dict[str, Any]:
        if not exc_info:
            return {}

        exc_type, exc_value, _ = exc_info

        return {
            "type": exc_type.__name__ if exc_type else "Unknown",
            "message": str(exc_value) if exc_value else "",
            "module": getattr(exc_type, "__module__", "") if exc_type else "",
        }


class ContextTextFormatter(logging.Formatter):
    """Plain text formatter that prefixes each line with ``[role:pid]``."""

    def format(self, record: logging.LogRecord) -> str:
        context = get_log_context()
        role = context.get("role")
        line = super().format(record)
        if role is None:
            return line
        return f"[{role}:{context.get('pid', '-')}] {line}"


__all__ = ["StructuredJSONFormatter", "ContextTextFormatter"]
