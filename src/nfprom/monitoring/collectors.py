"""
Prometheus collectors for firewall counters.

All collectors expose the same two families, ``<namespace>_packets_total``
and ``<namespace>_bytes_total``, rebuilt from scratch on every scrape:

- ``SourceCollector`` runs a firewall source synchronously (the scraping
  process needs the firewall privilege) and uses the fixed five-label schema.
- ``SnapshotCollector`` reads the relay snapshot and uses the sorted union of
  the records' label names as the schema.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

from prometheus_client.core import CounterMetricFamily
from prometheus_client.registry import Collector

from nfprom.domain import FIXED_LABELS, CounterRecord, LabelSchema
from nfprom.errors import SnapshotReadError
from nfprom.relay import SnapshotRelay
from nfprom.sources import RuleSource
from nfprom.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="collectors")

PACKETS_HELP = "Total number of packets on this port/proto/direction"
BYTES_HELP = "Total number of bytes on this port/proto/direction"


class CounterFamilies:
    """Packets/bytes family pair sharing one label schema."""

    def __init__(self, namespace: str, labels: Sequence[str]) -> None:
        self.labels = list(labels)
        self.packets = CounterMetricFamily(
            f"{namespace}_packets_total", PACKETS_HELP, labels=self.labels
        )
        self.bytes = CounterMetricFamily(
            f"{namespace}_bytes_total", BYTES_HELP, labels=self.labels
        )

    def add(self, record: CounterRecord, label_values: Sequence[str]) -> None:
        if len(label_values) != len(self.labels):
            raise ValueError(
                f"record {record} has {len(label_values)} label values, schema has {len(self.labels)}"
            )
        self.packets.add_metric(list(label_values), float(record.packets))
        self.bytes.add_metric(list(label_values), float(record.bytes))

    def __iter__(self) -> Iterator[CounterMetricFamily]:
        yield self.packets
        yield self.bytes


def fixed_label_values(record: CounterRecord) -> tuple[str, ...]:
    return tuple(record.fields.get(name, "") for name in FIXED_LABELS)


class SourceCollector(Collector):
    """Polls ``source`` on every scrape.

    A source failure propagates out of ``collect`` so the scrape fails
    instead of reporting an empty firewall.
    """

    def __init__(self, source: RuleSource, namespace: str = "nfprom") -> None:
        self.source = source
        self.namespace = namespace

    def describe(self) -> Iterable[CounterMetricFamily]:
        return list(CounterFamilies(self.namespace, FIXED_LABELS))

    def collect(self) -> Iterable[CounterMetricFamily]:
        families = CounterFamilies(self.namespace, FIXED_LABELS)
        for record in self.source.fetch():
            families.add(record, fixed_label_values(record))
        return list(families)


class SnapshotCollector(Collector):
    """Serves the latest snapshot written by the poller.

    Records lacking a schema label get ``missing_label_value`` for it, so
    every sample of a family carries the same label names. An unreadable
    snapshot yields no samples.
    """

    def __init__(
        self,
        relay: SnapshotRelay,
        namespace: str = "nfprom",
        missing_label_value: str = "",
    ) -> None:
        self.relay = relay
        self.namespace = namespace
        self.missing_label_value = missing_label_value

    def describe(self) -> Iterable[CounterMetricFamily]:
        # labels are only known once a snapshot has been read
        return list(CounterFamilies(self.namespace, ()))

    def collect(self) -> Iterable[CounterMetricFamily]:
        try:
            snapshot = self.relay.read()
        except SnapshotReadError as exc:
            logger.warning(f"Serving no samples: {exc.message}", path=str(self.relay.path))
            return []
        return list(self.families_for(snapshot.records, snapshot.schema))

    def families_for(
        self, records: Iterable[CounterRecord], schema: LabelSchema
    ) -> CounterFamilies:
        families = CounterFamilies(self.namespace, schema.names)
        for record in records:
            families.add(record, record.label_values(schema, self.missing_label_value))
        return families


__all__ = [
    "CounterFamilies",
    "SourceCollector",
    "SnapshotCollector",
    "PACKETS_HELP",
    "BYTES_HELP",
]
