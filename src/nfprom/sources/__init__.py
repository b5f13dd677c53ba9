"""
Firewall counter sources.

Each source turns one kind of firewall state into counter records:

- ``iptables``: ``iptables-save -c`` text for one chain
- ``nft-text``: ``nft list chain`` text
- ``nft-netlink``: rule objects queried over netlink, labelled by rule comments
"""

from __future__ import annotations

from typing import Literal, Protocol

from nfprom.domain import CounterRecord
from nfprom.settings import ExporterSettings

from .iptables import IptablesSource
from .nft_netlink import NftNetlinkSource
from .nft_text import NftTextSource

SourceKind = Literal["iptables", "nft-text", "nft-netlink"]


class RuleSource(Protocol):
    name: str

    def fetch(self) -> list[CounterRecord]: ...


def build_source(settings: ExporterSettings, kind: SourceKind) -> RuleSource:
    """Create the source ``kind`` configured from ``settings``."""
    if kind == "iptables":
        return IptablesSource(
            settings.iptables_chain,
            ipv4=settings.ipv4,
            ipv6=settings.ipv6,
            command_prefix=settings.command_prefix(),
            timeout=settings.command_timeout,
        )
    if kind == "nft-text":
        return NftTextSource(
            settings.nft_family,
            settings.nft_table,
            settings.nft_chain,
            command_prefix=settings.command_prefix(),
            timeout=settings.command_timeout,
        )
    if kind == "nft-netlink":
        return NftNetlinkSource(settings.nft_table, settings.nft_chain, settings.nft_family)
    raise ValueError(f"unknown source kind {kind!r}")


__all__ = [
    "RuleSource",
    "SourceKind",
    "build_source",
    "IptablesSource",
    "NftTextSource",
    "NftNetlinkSource",
]
