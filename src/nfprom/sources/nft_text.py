"""
``nft list chain`` text adapter.

Parses the pretty-printed chain listing line by line::

    ip saddr 88.99.5.140 tcp sport 22 counter packets 1204 bytes 98324

The address family label is inferred per rule from the address itself.
"""

from __future__ import annotations

from collections.abc import Iterator
from functools import partial

from nfprom.domain import CounterRecord, parse_counter
from nfprom.errors import ParseError
from nfprom.sources.commands import CommandRunner, run_command
from nfprom.sources.grammar import Endpoint, OneOf, match_endpoint, token_after
from nfprom.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="nft_text")

PROTOCOL = OneOf(frozenset({"tcp", "udp", "icmp"}), default="unknown")
ENDPOINTS = (
    Endpoint("saddr", direction="out", port_marker="sport"),
    Endpoint("daddr", direction="in", port_marker="dport"),
)


def is_structural(line: str) -> bool:
    return not line or "{" in line or "}" in line or line == "return"


def has_counter(tokens: list[str]) -> bool:
    return "packets" in tokens


def parse_counters(tokens: list[str]) -> tuple[int, int]:
    """Read the values following ``packets`` and ``bytes``."""
    packets = token_after(tokens, "packets")
    if packets is None:
        raise ParseError("could not parse packet counter: no value after 'packets'")
    byte_count = token_after(tokens, "bytes")
    if byte_count is None:
        raise ParseError("could not parse byte counter: no value after 'bytes'")
    return parse_counter(packets, "packet counter"), parse_counter(byte_count, "byte counter")


def l2proto_for(address: str) -> str:
    return "ipv6" if ":" in address else "ipv4"


def parse_rule(tokens: list[str]) -> CounterRecord:
    packets, byte_count = parse_counters(tokens)
    endpoint = match_endpoint(tokens, ENDPOINTS)
    return CounterRecord(
        packets=packets,
        bytes=byte_count,
        fields={
            "l2proto": l2proto_for(endpoint.address),
            "l3proto": PROTOCOL.apply(tokens),
            "address": endpoint.address,
            "port": endpoint.port,
            "direction": endpoint.direction,
        },
    )


def parse_chain_listing(text: str) -> Iterator[CounterRecord]:
    """Yield a record per counted rule in ``text``."""
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if is_structural(line):
            continue
        tokens = line.split()
        if not has_counter(tokens):
            # hook/policy declarations and rules without a counter statement
            logger.debug(f"Skipping line {lineno} without counter", line_number=lineno)
            continue
        try:
            yield parse_rule(tokens)
        except ParseError as exc:
            logger.warning(
                f"Malformed packet/byte count on line {lineno}: {exc.message}",
                line_number=lineno,
            )


class NftTextSource:
    """Runs ``nft list chain <family> <table> <chain>`` and parses the listing."""

    name = "nft-text"

    def __init__(
        self,
        family: str = "inet",
        table: str = "firewall",
        chain: str = "accounting",
        *,
        command_prefix: list[str] | None = None,
        timeout: float = 10.0,
        runner: CommandRunner | None = None,
    ) -> None:
        self.family = family
        self.table = table
        self.chain = chain
        self._prefix = list(command_prefix or [])
        self._runner = runner or partial(run_command, timeout=timeout)

    @property
    def command(self) -> list[str]:
        return [*self._prefix, "nft", "list", "chain", self.family, self.table, self.chain]

    def fetch(self) -> list[CounterRecord]:
        """
        Raises:
            SourceUnavailableError: ``nft`` could not be run or read.
        """
        return list(parse_chain_listing(self._runner(self.command)))


__all__ = ["NftTextSource", "parse_chain_listing", "parse_counters", "parse_rule", "l2proto_for"]
