"""
nftables netlink adapter.

Queries the rules of one table/chain over netlink and builds records from the
rule comments. A rule is exported when its comment has the form
``nft(key=value;key=value)``; every pair becomes a label. Example::

    nft add rule inet firewall accounting tcp dport 22 counter \\
        comment "nft(proto=tcp;port=22;direction=in)"

Counters come from the rule's ``counter`` expression, zero when it has none.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from nfprom.domain import NFT_FAMILIES, CounterRecord, is_label_name
from nfprom.errors import SourceUnavailableError
from nfprom.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="nft_netlink")

# NFTNL_UDATA_RULE_COMMENT
COMMENT_TAG = 0

COMMENT_PREFIX = "nft("
COMMENT_SUFFIX = ")"

_HEX_OCTETS = re.compile(r"[0-9a-fA-F]{2}(:[0-9a-fA-F]{2})*")


@dataclass(frozen=True, slots=True)
class NftExpression:
    """One match/action expression of a rule, e.g. ``counter`` with its attributes."""

    name: str
    attrs: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class NftRule:
    table: str
    chain: str
    comment: str = ""
    expressions: tuple[NftExpression, ...] = ()


def extract_comment(userdata: bytes) -> str:
    """Decode the comment TLV at the start of a rule's user data.

    Byte 0 is the type tag, byte 1 the payload length. Anything but a complete
    comment TLV decodes to an empty string.
    """
    if len(userdata) < 2 or userdata[0] != COMMENT_TAG:
        return ""
    length = userdata[1]
    if len(userdata) < length + 2:
        return ""
    payload = userdata[2 : 2 + length].rstrip(b"\x00")
    return payload.decode("utf-8", errors="replace")


def parse_comment(comment: str) -> dict[str, str] | None:
    """Label fields from an ``nft(k=v;...)`` comment, ``None`` when not wrapped that way.

    Tokens without exactly one ``=`` and keys that are not valid Prometheus
    label names are skipped.
    """
    if not (comment.startswith(COMMENT_PREFIX) and comment.endswith(COMMENT_SUFFIX)):
        return None
    if len(comment) < len(COMMENT_PREFIX) + len(COMMENT_SUFFIX):
        return None
    fields: dict[str, str] = {}
    for token in comment[len(COMMENT_PREFIX) : -len(COMMENT_SUFFIX)].split(";"):
        parts = token.split("=")
        if len(parts) != 2:
            continue
        key, value = parts
        if not is_label_name(key):
            logger.warning(f"Ignoring invalid label name {key!r} in comment {comment!r}")
            continue
        fields[key] = value
    return fields


def counters_of(expressions: Iterable[NftExpression]) -> tuple[int, int]:
    """``(packets, bytes)`` of the last counter expression, zeros without one."""
    packets, byte_count = 0, 0
    for expression in expressions:
        if expression.name == "counter":
            packets = int(expression.attrs.get("packets", 0) or 0)
            byte_count = int(expression.attrs.get("bytes", 0) or 0)
    return packets, byte_count


def rule_to_record(rule: NftRule) -> CounterRecord | None:
    fields = parse_comment(rule.comment)
    if fields is None:
        return None
    packets, byte_count = counters_of(rule.expressions)
    return CounterRecord(packets=packets, bytes=byte_count, fields=fields)


def records_from_rules(rules: Iterable[NftRule]) -> list[CounterRecord]:
    records = []
    for rule in rules:
        record = rule_to_record(rule)
        if record is not None:
            records.append(record)
    return records


# --- pyroute2 message conversion ---------------------------------------------


def comment_from_userdata(value: Any) -> str:
    """Rule comment from a decoded ``NFTA_RULE_USERDATA`` attribute.

    Recent pyroute2 releases decode the comment TLV themselves and return the
    text. Older ones, and attributes they fail to decode, give the raw TLV as
    bytes or as colon separated hex octets.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        if _HEX_OCTETS.fullmatch(value):
            return extract_comment(bytes.fromhex(value.replace(":", "")))
        return value.rstrip("\x00")
    if isinstance(value, bytes | bytearray):
        return extract_comment(bytes(value))
    return ""


def _expression_from_nla(nla: Any) -> NftExpression:
    name = nla.get_attr("NFTA_EXPR_NAME") or ""
    data = nla.get_attr("NFTA_EXPR_DATA")
    attrs: dict[str, Any] = {}
    if name == "counter" and data is not None:
        attrs["packets"] = data.get_attr("NFTA_COUNTER_PACKETS") or 0
        attrs["bytes"] = data.get_attr("NFTA_COUNTER_BYTES") or 0
    return NftExpression(name=name, attrs=attrs)


def rule_from_message(message: Any) -> NftRule:
    """Convert a pyroute2 ``NFT_MSG_NEWRULE`` message."""
    return NftRule(
        table=message.get_attr("NFTA_RULE_TABLE") or "",
        chain=message.get_attr("NFTA_RULE_CHAIN") or "",
        comment=comment_from_userdata(message.get_attr("NFTA_RULE_USERDATA")),
        expressions=tuple(
            _expression_from_nla(nla) for nla in message.get_attr("NFTA_RULE_EXPRESSIONS") or ()
        ),
    )


def _open_netlink(family: int) -> Any:
    from pyroute2.nftables.main import NFTables

    return NFTables(nfgen_family=family)


class NftNetlinkSource:
    """Reads accounting rules straight from the kernel; needs CAP_NET_ADMIN."""

    name = "nft-netlink"

    def __init__(
        self,
        table: str = "firewall",
        chain: str = "accounting",
        family: str = "inet",
        *,
        connect: Callable[[int], Any] | None = None,
    ) -> None:
        if family not in NFT_FAMILIES:
            raise ValueError(f"unknown nftables family {family!r}")
        self.table = table
        self.chain = chain
        self.family = family
        self._connect = connect or _open_netlink

    def list_rules(self) -> list[NftRule]:
        """Rules of the configured table and chain.

        Raises:
            SourceUnavailableError: the netlink socket could not be opened or queried.
        """
        try:
            connection = self._connect(NFT_FAMILIES[self.family])
        except Exception as exc:
            raise SourceUnavailableError(
                f"could not connect to netfilter/netlink endpoint: {exc}",
                source=self.name,
                original_error=exc,
            ) from exc
        try:
            messages: Sequence[Any] = list(connection.get_rules())
            rules = [rule_from_message(message) for message in messages]
        except Exception as exc:
            raise SourceUnavailableError(
                f"could not collect chain {self.chain} from table {self.table}: {exc}",
                source=self.name,
                original_error=exc,
            ) from exc
        finally:
            connection.close()
        return [rule for rule in rules if rule.table == self.table and rule.chain == self.chain]

    def fetch(self) -> list[CounterRecord]:
        return records_from_rules(self.list_rules())


__all__ = [
    "NftExpression",
    "NftRule",
    "NftNetlinkSource",
    "extract_comment",
    "parse_comment",
    "counters_of",
    "rule_to_record",
    "records_from_rules",
    "rule_from_message",
    "comment_from_userdata",
]
