"""Hypothesis strategies for exporter invariants."""

from __future__ import annotations

from hypothesis import strategies as st

from nfprom.domain.models import MAX_COUNTER, CounterRecord

counter_strategy = st.integers(min_value=0, max_value=MAX_COUNTER)

label_name_strategy = st.from_regex(r"[a-zA-Z_][a-zA-Z0-9_]{0,15}", fullmatch=True)

# Anything JSON can carry; surrogates cannot be encoded.
label_value_strategy = st.text(
    max_size=30, alphabet=st.characters(blacklist_categories=("Cs",))
)

# Values that survive the k=v;... comment syntax.
comment_value_strategy = st.text(
    max_size=30,
    alphabet=st.characters(blacklist_categories=("Cs",), blacklist_characters="=;"),
)

fields_strategy = st.dictionaries(label_name_strategy, label_value_strategy, max_size=6)

comment_fields_strategy = st.dictionaries(
    label_name_strategy, comment_value_strategy, max_size=6
)

record_strategy = st.builds(
    CounterRecord, packets=counter_strategy, bytes=counter_strategy, fields=fields_strategy
)

records_strategy = st.lists(record_strategy, max_size=8)
