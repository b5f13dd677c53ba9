"""Shared fixtures for nfprom unit tests."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from nfprom.domain import CounterRecord

IPTABLES_SAVE = """\
# Generated by iptables-save v1.8.7 on Sun Oct 18 10:00:00 2026
*filter
:INPUT ACCEPT [1000:200000]
:FORWARD DROP [0:0]
:OUTPUT ACCEPT [900:180000]
:prometheus - [0:0]
[272282:51019430] -A INPUT -j prometheus
[272282:51019430] -A prometheus -s 88.99.5.140/32 -p tcp -m tcp --sport 22 -j ACCEPT
[231097:107682563] -A prometheus -d 88.99.5.140/32 -p tcp -m tcp --dport 22 -j ACCEPT
[12:3456] -A prometheus -d 88.99.5.140/32 -p udp -m udp --dport 53
[0:0] -A prometheus -j RETURN
COMMIT
# Completed on Sun Oct 18 10:00:00 2026
"""

NFT_LISTING = """\
table inet firewall {
\tchain accounting {
\t\ttype filter hook input priority filter; policy accept;
\t\tip saddr 88.99.5.140 tcp sport 22 counter packets 1204 bytes 98324
\t\tip6 daddr 2a01:4f8::1 udp dport 53 counter packets 17 bytes 1400
\t\ticmp type echo-request counter packets 3 bytes 252
\t\treturn
\t}
}
"""


class FakeRunner:
    """Command runner returning canned output per command name."""

    def __init__(self, outputs: dict[str, str]) -> None:
        self.outputs = outputs
        self.calls: list[list[str]] = []

    def __call__(self, argv: Sequence[str]) -> str:
        self.calls.append(list(argv))
        for token in argv:
            if token in self.outputs:
                return self.outputs[token]
        raise AssertionError(f"unexpected command {argv}")


class StaticSource:
    """Rule source returning the same records on every fetch."""

    name = "static"

    def __init__(self, records: Sequence[CounterRecord]) -> None:
        self.records = list(records)
        self.fetches = 0

    def fetch(self) -> list[CounterRecord]:
        self.fetches += 1
        return list(self.records)


@pytest.fixture
def iptables_save_output() -> str:
    return IPTABLES_SAVE


@pytest.fixture
def nft_listing() -> str:
    return NFT_LISTING


@pytest.fixture
def accounting_records() -> list[CounterRecord]:
    return [
        CounterRecord(packets=10, bytes=1000, fields={"proto": "tcp", "port": "22"}),
        CounterRecord(packets=5, bytes=500, fields={"proto": "udp", "direction": "in"}),
    ]


@pytest.fixture
def fake_runner() -> type[FakeRunner]:
    return FakeRunner


@pytest.fixture
def static_source() -> type[StaticSource]:
    return StaticSource
