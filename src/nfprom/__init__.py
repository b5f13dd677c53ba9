"""
nfprom - netfilter accounting counters for Prometheus

Exports per-rule packet/byte counters from iptables or nftables accounting
chains, with the firewall access confined to a privileged poller process and
the network-facing metrics server running unprivileged.
"""

from __future__ import annotations

__version__ = "0.2.0"

__all__ = ["__version__"]
