"""
Token grammar for firewall rule lines.

A rule line is split on whitespace and read by small declarative rules
("find token X, capture the token after it"). Every rule takes the first
match only; later occurrences of the same marker are ignored.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Capture:
    """Capture the token following ``marker``."""

    marker: str
    default: str = ""

    def apply(self, tokens: Sequence[str]) -> str:
        value = token_after(tokens, self.marker)
        return self.default if value is None else value


@dataclass(frozen=True, slots=True)
class OneOf:
    """Capture the first token that is one of ``choices``."""

    choices: frozenset[str]
    default: str = ""

    def apply(self, tokens: Sequence[str]) -> str:
        for token in tokens:
            if token in self.choices:
                return token
        return self.default


@dataclass(frozen=True, slots=True)
class Endpoint:
    """``marker <address>`` paired with a later ``port_marker <port>``."""

    marker: str
    direction: str
    port_marker: str


@dataclass(frozen=True, slots=True)
class EndpointMatch:
    direction: str = ""
    address: str = ""
    port: str = ""


NO_ENDPOINT = EndpointMatch()


def token_after(tokens: Sequence[str], marker: str) -> str | None:
    """Token directly after the first ``marker``, ``None`` if either is absent."""
    for idx, token in enumerate(tokens):
        if token == marker:
            return tokens[idx + 1] if idx + 1 < len(tokens) else None
    return None


def match_endpoint(tokens: Sequence[str], endpoints: Iterable[Endpoint]) -> EndpointMatch:
    """Resolve direction, address and port from the first endpoint marker in ``tokens``.

    Only the first source/destination marker in the line counts. A marker
    without an address or without its paired port yields ``NO_ENDPOINT``.
    """
    by_marker = {endpoint.marker: endpoint for endpoint in endpoints}
    for idx, token in enumerate(tokens):
        endpoint = by_marker.get(token)
        if endpoint is None:
            continue
        if idx + 1 >= len(tokens):
            return NO_ENDPOINT
        port = token_after(tokens, endpoint.port_marker)
        if port is None:
            return NO_ENDPOINT
        return EndpointMatch(direction=endpoint.direction, address=tokens[idx + 1], port=port)
    return NO_ENDPOINT


__all__ = [
    "Capture",
    "OneOf",
    "Endpoint",
    "EndpointMatch",
    "NO_ENDPOINT",
    "token_after",
    "match_endpoint",
]
