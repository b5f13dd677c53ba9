"""Periodic snapshot refresh in the privileged process."""

from __future__ import annotations

import threading

from nfprom.logging import log_context
from nfprom.relay import Snapshot, SnapshotRelay
from nfprom.sources import RuleSource
from nfprom.utilities.logging_patterns import get_logger, log_operation

logger = get_logger(__name__, component="poller")


class Poller:
    """Fetches ``source`` and writes a fresh snapshot every ``interval`` seconds.

    Source and write failures propagate: the loop never replaces a snapshot
    with an empty one because a read failed.
    """

    def __init__(
        self,
        source: RuleSource,
        relay: SnapshotRelay,
        interval: float = 15.0,
        stop_event: threading.Event | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.source = source
        self.relay = relay
        self.interval = interval
        self._stop = stop_event or threading.Event()
        self.cycles = 0

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def poll_once(self) -> Snapshot:
        with log_context(cycle=self.cycles + 1):
            with log_operation("poll", logger, source=self.source.name):
                records = self.source.fetch()
                snapshot = Snapshot.from_records(records)
                self.relay.write(snapshot)
            for record in snapshot.records:
                logger.debug(f"Collected {record}")
        self.cycles += 1
        return snapshot

    def run(self, max_cycles: int | None = None) -> None:
        """Poll until stopped (or for ``max_cycles`` cycles)."""
        logger.info(
            f"Polling {self.source.name} every {self.interval}s into {self.relay.path}",
            source=self.source.name,
            interval=self.interval,
        )
        while not self._stop.is_set():
            self.poll_once()
            if max_cycles is not None and self.cycles >= max_cycles:
                return
            # wakes early when the server child dies
            self._stop.wait(self.interval)


__all__ = ["Poller"]
