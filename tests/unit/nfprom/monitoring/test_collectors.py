from __future__ import annotations

from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from nfprom.domain import CounterRecord
from nfprom.errors import SourceUnavailableError
from nfprom.monitoring import SnapshotCollector, SourceCollector
from nfprom.relay import Snapshot, SnapshotRelay
from nfprom.sources.nft_netlink import parse_comment


def sample(registry: CollectorRegistry, name: str, **labels: str) -> float | None:
    return registry.get_sample_value(name, labels)


@pytest.fixture
def relay(tmp_path: Path) -> SnapshotRelay:
    return SnapshotRelay(tmp_path / "nftdata.json")


def test_snapshot_collector_fills_missing_labels(
    relay: SnapshotRelay, accounting_records: list[CounterRecord]
) -> None:
    relay.write(Snapshot.from_records(accounting_records))
    registry = CollectorRegistry()
    registry.register(SnapshotCollector(relay, "nftables", missing_label_value="none"))

    assert sample(
        registry, "nftables_packets_total", direction="none", port="22", proto="tcp"
    ) == 10
    assert sample(
        registry, "nftables_bytes_total", direction="in", port="none", proto="udp"
    ) == 500


def test_snapshot_collector_default_placeholder_is_empty(
    relay: SnapshotRelay, accounting_records: list[CounterRecord]
) -> None:
    relay.write(Snapshot.from_records(accounting_records))
    registry = CollectorRegistry()
    registry.register(SnapshotCollector(relay, "nftables"))

    assert sample(registry, "nftables_bytes_total", direction="", port="22", proto="tcp") == 1000


def test_snapshot_collector_serves_nothing_without_snapshot(relay: SnapshotRelay) -> None:
    registry = CollectorRegistry()
    registry.register(SnapshotCollector(relay, "nftables"))

    assert b"nftables_packets_total" not in generate_latest(registry)


def test_snapshot_collector_reflects_latest_snapshot(
    relay: SnapshotRelay, accounting_records: list[CounterRecord]
) -> None:
    registry = CollectorRegistry()
    registry.register(SnapshotCollector(relay, "nftables"))
    relay.write(Snapshot.from_records(accounting_records[:1]))
    assert sample(registry, "nftables_packets_total", port="22", proto="tcp") == 10

    relay.write(Snapshot.from_records([CounterRecord(11, 1100, {"port": "22", "proto": "tcp"})]))

    assert sample(registry, "nftables_packets_total", port="22", proto="tcp") == 11


def test_source_collector_uses_fixed_labels(static_source) -> None:
    record = CounterRecord(
        packets=272282,
        bytes=51019430,
        fields={
            "l2proto": "ipv4",
            "l3proto": "tcp",
            "address": "",
            "port": "22",
            "direction": "out",
        },
    )
    registry = CollectorRegistry()
    registry.register(SourceCollector(static_source([record]), "iptables"))

    output = generate_latest(registry).decode()

    assert "# HELP iptables_packets_total Total number of packets on this port/proto/direction" in output
    assert "# TYPE iptables_bytes_total counter" in output
    assert (
        sample(
            registry,
            "iptables_bytes_total",
            l2proto="ipv4",
            l3proto="tcp",
            address="",
            port="22",
            direction="out",
        )
        == 51019430
    )


def test_source_collector_polls_on_every_scrape(static_source) -> None:
    source = static_source([])
    registry = CollectorRegistry()
    registry.register(SourceCollector(source, "iptables"))
    fetches_after_register = source.fetches

    generate_latest(registry)
    generate_latest(registry)

    assert source.fetches == fetches_after_register + 2


def test_source_collector_failure_propagates() -> None:
    class Failing:
        name = "failing"

        def fetch(self):
            raise SourceUnavailableError("iptables-save not found")

    registry = CollectorRegistry()
    registry.register(SourceCollector(Failing(), "iptables"))

    with pytest.raises(SourceUnavailableError):
        generate_latest(registry)


def test_comment_with_invalid_label_name_scrapes_cleanly(relay: SnapshotRelay) -> None:
    fields = parse_comment("nft(=x;port=22)")
    assert fields is not None
    relay.write(Snapshot.from_records([CounterRecord(packets=1, bytes=64, fields=fields)]))
    registry = CollectorRegistry()
    registry.register(SnapshotCollector(relay, "nfprom"))

    output = generate_latest(registry).decode()

    assert "{=" not in output
    assert sample(registry, "nfprom_packets_total", port="22") == 1


def test_snapshot_with_invalid_label_name_serves_nothing(relay: SnapshotRelay) -> None:
    relay.path.write_text('[{"Packets": 1, "Bytes": 64, "Fields": {"": "x", "port": "22"}}]')
    registry = CollectorRegistry()
    registry.register(SnapshotCollector(relay, "nfprom"))

    assert b"nfprom_packets_total" not in generate_latest(registry)
