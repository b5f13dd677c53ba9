from __future__ import annotations

import json
import urllib.error
import urllib.request
from collections.abc import Iterator

import pytest
from prometheus_client import CollectorRegistry
from prometheus_client.parser import text_string_to_metric_families

from nfprom.domain import CounterRecord
from nfprom.monitoring import MetricsServer, SourceCollector


@pytest.fixture
def server(static_source) -> Iterator[MetricsServer]:
    record = CounterRecord(
        packets=12,
        bytes=3456,
        fields={"l2proto": "ipv4", "l3proto": "udp", "address": "", "port": "53", "direction": "in"},
    )
    registry = CollectorRegistry()
    registry.register(SourceCollector(static_source([record]), "iptables"))
    metrics_server = MetricsServer(
        "127.0.0.1",
        0,
        registry=registry,
        health_check=lambda: {"snapshot": {"readable": True, "records": 1}},
    )
    metrics_server.start()
    yield metrics_server
    metrics_server.stop()


def fetch(server: MetricsServer, path: str) -> tuple[int, dict[str, str], bytes]:
    host, port = server.server_address
    with urllib.request.urlopen(f"http://{host}:{port}{path}", timeout=5) as response:
        return response.status, dict(response.headers), response.read()


def test_metrics_endpoint(server: MetricsServer) -> None:
    status, headers, body = fetch(server, "/metrics")

    assert status == 200
    assert headers["Content-Type"].startswith("text/plain")
    samples = [
        sample
        for family in text_string_to_metric_families(body.decode())
        for sample in family.samples
        if sample.name == "iptables_packets_total"
    ]
    assert [(sample.labels, sample.value) for sample in samples] == [
        (
            {"l2proto": "ipv4", "l3proto": "udp", "address": "", "port": "53", "direction": "in"},
            12.0,
        )
    ]


def test_health_endpoint(server: MetricsServer) -> None:
    status, headers, body = fetch(server, "/health")

    assert status == 200
    assert headers["Content-Type"] == "application/json"
    assert json.loads(body) == {"status": "ok", "snapshot": {"readable": True, "records": 1}}


def test_unknown_path_is_not_found(server: MetricsServer) -> None:
    with pytest.raises(urllib.error.HTTPError) as exc_info:
        fetch(server, "/")

    assert exc_info.value.code == 404


def test_collector_error_is_server_error() -> None:
    class Failing:
        name = "failing"

        def fetch(self):
            raise RuntimeError("boom")

    registry = CollectorRegistry()
    registry.register(SourceCollector(Failing(), "iptables"))
    metrics_server = MetricsServer("127.0.0.1", 0, registry=registry)
    metrics_server.start()
    try:
        with pytest.raises(urllib.error.HTTPError) as exc_info:
            fetch(metrics_server, "/metrics")
    finally:
        metrics_server.stop()

    assert exc_info.value.code == 500


def test_server_address_reports_bound_port() -> None:
    metrics_server = MetricsServer("127.0.0.1", 0)
    assert metrics_server.server_address == ("127.0.0.1", 0)

    metrics_server.start()
    try:
        assert metrics_server.server_address[1] > 0
    finally:
        metrics_server.stop()
