"""
iptables-save accounting adapter.

Reads ``iptables-save -c`` output and turns the rules of one chain into
counter records. A rule line looks like::

    [272282:51019430] -A prometheus -s 88.99.5.140/32 -p tcp -m tcp --sport 22 -j ACCEPT

The bracketed pair holds the packet and byte counters; ``-s``/``--sport``
marks outgoing traffic and ``-d``/``--dport`` incoming traffic.
"""

from __future__ import annotations

from collections.abc import Iterator
from functools import partial
from typing import Literal

from nfprom.domain import CounterRecord, parse_counter
from nfprom.errors import ParseError
from nfprom.sources.commands import CommandRunner, run_command
from nfprom.sources.grammar import Capture, Endpoint, match_endpoint
from nfprom.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="iptables")

AddressFamily = Literal["ipv4", "ipv6"]

SAVE_COMMANDS: dict[str, list[str]] = {
    "ipv4": ["iptables-save", "-c", "-t", "filter"],
    "ipv6": ["ip6tables-save", "-c", "-t", "filter"],
}

PROTOCOL = Capture("-p", default="unknown")
ENDPOINTS = (
    Endpoint("-s", direction="out", port_marker="--sport"),
    Endpoint("-d", direction="in", port_marker="--dport"),
)

RETURN_TARGET = "RETURN"


def parse_counter_token(token: str) -> tuple[int, int]:
    """Parse ``[packets:bytes]``."""
    if len(token) < 2 or token[0] != "[" or token[-1] != "]":
        raise ParseError(f"could not parse {token!r} as [packets:bytes]")
    parts = token[1:-1].split(":")
    if len(parts) != 2:
        raise ParseError(f"could not parse {token!r} as [packets:bytes]: {parts}")
    return parse_counter(parts[0], "packets"), parse_counter(parts[1], "bytes")


def is_chain_rule(tokens: list[str], chain: str) -> bool:
    """True for rule lines of ``chain`` whose target is not RETURN."""
    if len(tokens) < 4 or tokens[2] != chain:
        return False
    return len(tokens) < 5 or tokens[4] != RETURN_TARGET


def parse_rule(tokens: list[str], l2proto: str) -> CounterRecord:
    packets, byte_count = parse_counter_token(tokens[0])
    endpoint = match_endpoint(tokens, ENDPOINTS)
    return CounterRecord(
        packets=packets,
        bytes=byte_count,
        fields={
            "l2proto": l2proto,
            "l3proto": PROTOCOL.apply(tokens),
            "address": endpoint.address,
            "port": endpoint.port,
            "direction": endpoint.direction,
        },
    )


def parse_save_output(text: str, chain: str, l2proto: str) -> Iterator[CounterRecord]:
    """Yield a record per accounted rule of ``chain``; malformed lines are logged and skipped."""
    for lineno, line in enumerate(text.splitlines(), start=1):
        tokens = line.split()
        if not is_chain_rule(tokens, chain):
            continue
        try:
            yield parse_rule(tokens, l2proto)
        except ParseError as exc:
            logger.warning(
                f"Malformed packet/byte count on line {lineno}: {exc.message}",
                line_number=lineno,
                l2proto=l2proto,
            )


class IptablesSource:
    """Dumps the filter table per address family and parses one chain."""

    name = "iptables"

    def __init__(
        self,
        chain: str = "prometheus",
        *,
        ipv4: bool = True,
        ipv6: bool = False,
        command_prefix: list[str] | None = None,
        timeout: float = 10.0,
        runner: CommandRunner | None = None,
    ) -> None:
        self.chain = chain
        self.families: list[AddressFamily] = []
        if ipv4:
            self.families.append("ipv4")
        if ipv6:
            self.families.append("ipv6")
        self._prefix = list(command_prefix or [])
        self._runner = runner or partial(run_command, timeout=timeout)

    def command_for(self, l2proto: AddressFamily) -> list[str]:
        return [*self._prefix, *SAVE_COMMANDS[l2proto]]

    def fetch(self) -> list[CounterRecord]:
        """Read all enabled address families.

        Raises:
            SourceUnavailableError: a dump command could not be run or read.
        """
        records: list[CounterRecord] = []
        for l2proto in self.families:
            output = self._runner(self.command_for(l2proto))
            records.extend(parse_save_output(output, self.chain, l2proto))
        return records


__all__ = [
    "IptablesSource",
    "parse_counter_token",
    "parse_rule",
    "parse_save_output",
    "is_chain_rule",
]
