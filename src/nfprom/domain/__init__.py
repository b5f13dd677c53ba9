"""Domain models shared by the adapters, the relay and the collectors."""

from .models import (
    FIXED_LABELS,
    NFT_FAMILIES,
    CounterRecord,
    LabelSchema,
    is_label_name,
    parse_counter,
)

__all__ = [
    "CounterRecord",
    "LabelSchema",
    "FIXED_LABELS",
    "NFT_FAMILIES",
    "is_label_name",
    "parse_counter",
]
