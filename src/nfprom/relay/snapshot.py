"""
Snapshot relay between the privileged poller and the unprivileged server.

The poller serializes each batch of counter records to one JSON file and the
server reads it back on every scrape. The file is a JSON array of::

    {"Packets": 12, "Bytes": 3456, "Labels": ["port", "proto"],
     "Fields": {"port": "22", "proto": "tcp"}}

Writes go to a temporary file in the same directory which is then renamed
over the target, so a reader sees either the previous or the new snapshot.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from nfprom.domain import CounterRecord, LabelSchema, is_label_name
from nfprom.domain.models import MAX_COUNTER
from nfprom.errors import SnapshotReadError, SnapshotWriteError
from nfprom.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="relay")

SNAPSHOT_FILE_MODE = 0o644


class SnapshotEntry(BaseModel):
    """Wire form of one counter record."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    packets: int = Field(alias="Packets", ge=0, le=MAX_COUNTER)
    byte_count: int = Field(alias="Bytes", ge=0, le=MAX_COUNTER)
    labels: list[str] | None = Field(default=None, alias="Labels")
    label_fields: dict[str, str] | None = Field(default=None, alias="Fields")

    @field_validator("label_fields")
    @classmethod
    def _check_label_names(cls, value: dict[str, str] | None) -> dict[str, str] | None:
        for name in value or {}:
            if not is_label_name(name):
                raise ValueError(f"invalid label name {name!r}")
        return value

    @classmethod
    def from_record(cls, record: CounterRecord) -> SnapshotEntry:
        return cls(
            packets=record.packets,
            byte_count=record.bytes,
            labels=list(record.label_order),
            label_fields=dict(record.fields),
        )

    def to_record(self) -> CounterRecord:
        return CounterRecord(
            packets=self.packets, bytes=self.byte_count, fields=self.label_fields or {}
        )


_ENTRIES = TypeAdapter(list[SnapshotEntry])


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One complete batch of records and the label schema derived from it."""

    records: tuple[CounterRecord, ...]
    schema: LabelSchema

    @classmethod
    def from_records(cls, records: Iterable[CounterRecord]) -> Snapshot:
        batch = tuple(records)
        return cls(records=batch, schema=LabelSchema.from_records(batch))

    def to_json(self) -> bytes:
        return _ENTRIES.dump_json(
            [SnapshotEntry.from_record(record) for record in self.records], by_alias=True
        )

    @classmethod
    def from_json(cls, data: bytes | str) -> Snapshot:
        """
        Raises:
            ValidationError: ``data`` is not a well-formed snapshot.
        """
        entries = _ENTRIES.validate_json(data)
        return cls.from_records(entry.to_record() for entry in entries)


class SnapshotRelay:
    """Reads and atomically replaces the snapshot file at ``path``."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def write(self, snapshot: Snapshot) -> None:
        """Replace the snapshot file with ``snapshot``.

        Raises:
            SnapshotWriteError: the temporary file could not be written or renamed.
        """
        payload = snapshot.to_json()
        directory = self.path.parent
        temp_path: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=directory,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                # mkstemp creates 0600; the server runs as another user
                os.fchmod(handle.fileno(), SNAPSHOT_FILE_MODE)
                os.fsync(handle.fileno())
            os.replace(temp_path, self.path)
        except OSError as exc:
            if temp_path is not None:
                try:
                    os.unlink(temp_path)
                except OSError as cleanup_error:
                    logger.debug(f"Failed to clean up temp file {temp_path}: {cleanup_error}")
            raise SnapshotWriteError(
                f"could not write snapshot to '{self.path}': {exc}",
                path=str(self.path),
                original_error=exc,
            ) from exc
        logger.debug(
            f"Wrote snapshot with {len(snapshot.records)} records",
            path=str(self.path),
            records=len(snapshot.records),
        )

    def read(self) -> Snapshot:
        """Load the current snapshot.

        Raises:
            SnapshotReadError: the file is missing, unreadable or corrupt.
        """
        try:
            data = self.path.read_bytes()
        except OSError as exc:
            raise SnapshotReadError(
                f"could not read snapshot file at {self.path}: {exc}",
                path=str(self.path),
                original_error=exc,
            ) from exc
        try:
            return Snapshot.from_json(data)
        except (ValidationError, ValueError) as exc:
            raise SnapshotReadError(
                f"could not parse snapshot file at {self.path}: {exc}",
                path=str(self.path),
                original_error=exc,
            ) from exc


__all__ = ["Snapshot", "SnapshotEntry", "SnapshotRelay", "SNAPSHOT_FILE_MODE"]
