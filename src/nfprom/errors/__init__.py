"""
Centralized error handling for nfprom

Every failure the exporter can hit is expressed as an ``ExporterError``
subclass. Parsers and adapters raise; callers decide whether a failure is
recoverable (one malformed line) or fatal (firewall source unreachable,
privilege drop failed, server child died).
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:  # pragma: no cover
    from nfprom.utilities.logging_patterns import StructuredLogger

_logger: Optional["StructuredLogger"] = None


def _get_logger() -> "StructuredLogger":
    global _logger
    if _logger is None:
        from nfprom.utilities.logging_patterns import get_logger as _get_structured_logger

        _logger = _get_structured_logger(__name__, component="errors")
    return _logger


class ExporterError(Exception):
    """Base exception class for all exporter errors"""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        recoverable: bool = True,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.recoverable = recoverable
        self.timestamp = datetime.now()
        self.original_error = original_error

    def add_context(self, **kwargs: Any) -> "ExporterError":
        """Add additional context to the error"""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
        }


class ConfigurationError(ExporterError):
    """Raised when there are configuration issues"""

    def __init__(self, message: str, config_key: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, error_code="CONFIG_ERROR", recoverable=False, **kwargs)
        if config_key:
            self.add_context(config_key=config_key)


class ParseError(ExporterError):
    """Raised when a single rule line cannot be parsed; the scan continues"""

    def __init__(
        self, message: str, line_number: int | None = None, line: str | None = None, **kwargs: Any
    ) -> None:
        super().__init__(message, error_code="PARSE_ERROR", **kwargs)
        if line_number is not None:
            self.add_context(line_number=line_number)
        if line is not None:
            self.add_context(line=line)


class SourceUnavailableError(ExporterError):
    """Raised when the firewall rule source cannot be invoked or read"""

    def __init__(self, message: str, source: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, error_code="SOURCE_UNAVAILABLE", recoverable=False, **kwargs)
        if source:
            self.add_context(source=source)


class RelayError(ExporterError):
    """Raised when the snapshot file cannot be exchanged"""

    def __init__(self, message: str, path: str | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "RELAY_ERROR")
        super().__init__(message, **kwargs)
        if path:
            self.add_context(path=path)


class SnapshotReadError(RelayError):
    """Snapshot missing, unreadable or corrupt"""

    def __init__(self, message: str, path: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, path=path, error_code="SNAPSHOT_READ_ERROR", **kwargs)


class SnapshotWriteError(RelayError):
    """Snapshot could not be serialized or replaced on disk"""

    def __init__(self, message: str, path: str | None = None, **kwargs: Any) -> None:
        super().__init__(
            message, path=path, error_code="SNAPSHOT_WRITE_ERROR", recoverable=False, **kwargs
        )


class PrivilegeDropError(ExporterError):
    """Raised when the server process cannot give up its privileges"""

    def __init__(self, message: str, identity: str | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "PRIVILEGE_DROP_ERROR")
        super().__init__(message, recoverable=False, **kwargs)
        if identity is not None:
            self.add_context(identity=identity)


class GroupLookupError(PrivilegeDropError):
    """Group name could not be resolved to a gid"""

    def __init__(self, message: str, identity: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, identity=identity, error_code="GROUP_LOOKUP_FAILED", **kwargs)


class UserLookupError(PrivilegeDropError):
    """User name could not be resolved to a uid"""

    def __init__(self, message: str, identity: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, identity=identity, error_code="USER_LOOKUP_FAILED", **kwargs)


class InvalidIdentityError(PrivilegeDropError):
    """Numeric uid/gid is malformed or out of range"""

    def __init__(self, message: str, identity: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, identity=identity, error_code="INVALID_IDENTITY", **kwargs)


class SetGroupError(PrivilegeDropError):
    """The setgid/setgroups system call failed"""

    def __init__(self, message: str, identity: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, identity=identity, error_code="SETGID_FAILED", **kwargs)


class SetUserError(PrivilegeDropError):
    """The setuid system call failed"""

    def __init__(self, message: str, identity: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, identity=identity, error_code="SETUID_FAILED", **kwargs)


class ServerExitedError(ExporterError):
    """Raised in the poller when the metrics server child is gone"""

    def __init__(
        self, message: str, pid: int | None = None, returncode: int | None = None, **kwargs: Any
    ) -> None:
        super().__init__(message, error_code="SERVER_EXITED", recoverable=False, **kwargs)
        self.returncode = returncode
        if pid is not None:
            self.add_context(pid=pid, returncode=returncode)


def log_error(error: ExporterError, level: int = logging.ERROR) -> None:
    """Log an error with full context"""
    _get_logger().log(
        level, f"{error.error_code}: {error.message}", error_data=error.to_dict()
    )


__all__ = [
    "ExporterError",
    "ConfigurationError",
    "ParseError",
    "SourceUnavailableError",
    "RelayError",
    "SnapshotReadError",
    "SnapshotWriteError",
    "PrivilegeDropError",
    "GroupLookupError",
    "UserLookupError",
    "InvalidIdentityError",
    "SetGroupError",
    "SetUserError",
    "ServerExitedError",
    "log_error",
]
