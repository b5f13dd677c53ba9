"""Counter records and the label schema derived from a batch of them."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from nfprom.errors import ParseError

# Labels produced by the iptables and nft-text adapters, in emission order.
FIXED_LABELS: tuple[str, ...] = ("l2proto", "l3proto", "address", "port", "direction")

MAX_COUNTER = 2**64 - 1

LABEL_NAME = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")

# nftables address families and their NFPROTO_* numbers
NFT_FAMILIES: dict[str, int] = {
    "inet": 1,
    "ip": 2,
    "arp": 3,
    "netdev": 5,
    "bridge": 7,
    "ip6": 10,
}


def is_label_name(name: str) -> bool:
    return LABEL_NAME.fullmatch(name) is not None


def parse_counter(text: str, what: str = "counter") -> int:
    """Parse an unsigned 64-bit kernel counter."""
    if not (text.isascii() and text.isdigit()):
        raise ParseError(f"could not parse {text!r} as {what}")
    value = int(text)
    if value > MAX_COUNTER:
        raise ParseError(f"{what} {text} does not fit in 64 bits")
    return value


@dataclass(frozen=True, slots=True)
class CounterRecord:
    """Counters and labels of one accounted firewall rule, read in one cycle."""

    packets: int
    bytes: int
    fields: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0 <= self.packets <= MAX_COUNTER or not 0 <= self.bytes <= MAX_COUNTER:
            raise ValueError("packet and byte counters must be unsigned 64-bit values")
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def label_order(self) -> tuple[str, ...]:
        return tuple(sorted(self.fields))

    def label_values(self, schema: LabelSchema, missing: str = "") -> tuple[str, ...]:
        """Values for every label of ``schema``, ``missing`` where this record has none."""
        return tuple(self.fields.get(name, missing) for name in schema.names)

    def __str__(self) -> str:
        parts = [f"{key}={value};" for key, value in sorted(self.fields.items())]
        parts.append(f"By={self.bytes};Pk={self.packets}")
        return "".join(parts)


@dataclass(frozen=True, slots=True)
class LabelSchema:
    """Sorted label names every sample of one batch carries."""

    names: tuple[str, ...]

    @classmethod
    def from_records(cls, records: Iterable[CounterRecord]) -> LabelSchema:
        keys: set[str] = set()
        for record in records:
            keys.update(record.fields)
        return cls(tuple(sorted(keys)))

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self):
        return iter(self.names)


__all__ = [
    "CounterRecord",
    "LabelSchema",
    "FIXED_LABELS",
    "MAX_COUNTER",
    "NFT_FAMILIES",
    "is_label_name",
    "parse_counter",
]
