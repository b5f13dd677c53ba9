from __future__ import annotations

import json
import logging
import threading

from nfprom.logging import log_context, set_process_role
from nfprom.logging.json_formatter import ContextTextFormatter, StructuredJSONFormatter


def make_record(text: str = "Wrote snapshot", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="nfprom.relay.snapshot",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=text,
        args=(),
        exc_info=None,
    )
    if extra:
        record.extra = extra
    return record


def test_json_includes_extras_and_context() -> None:
    set_process_role("poller")

    entry = json.loads(
        StructuredJSONFormatter().format(make_record(records=2, component="relay"))
    )

    assert entry["message"] == "Wrote snapshot"
    assert entry["level"] == "INFO"
    assert entry["records"] == 2
    assert entry["component"] == "relay"
    assert entry["role"] == "poller"
    assert isinstance(entry["pid"], int)


def test_extras_do_not_override_core_fields() -> None:
    entry = json.loads(StructuredJSONFormatter().format(make_record(message="spoofed")))

    assert entry["message"] == "Wrote snapshot"


def test_log_context_is_temporary() -> None:
    formatter = StructuredJSONFormatter()

    with log_context(cycle=3):
        inside = json.loads(formatter.format(make_record()))
    outside = json.loads(formatter.format(make_record()))

    assert inside["cycle"] == 3
    assert "cycle" not in outside


def test_text_formatter_prefixes_role() -> None:
    formatter = ContextTextFormatter("%(levelname)s %(message)s")

    assert formatter.format(make_record()) == "INFO Wrote snapshot"

    set_process_role("server")
    assert formatter.format(make_record()).startswith("[server:")
    assert formatter.format(make_record()).endswith("] INFO Wrote snapshot")


def test_process_role_applies_to_worker_threads() -> None:
    set_process_role("server")
    json_formatter = StructuredJSONFormatter()
    text_formatter = ContextTextFormatter("%(message)s")
    lines: dict[str, str] = {}

    def handle_scrape() -> None:
        record = make_record("Serving no samples")
        lines["json"] = json_formatter.format(record)
        lines["text"] = text_formatter.format(record)

    worker = threading.Thread(target=handle_scrape)
    worker.start()
    worker.join(5)

    entry = json.loads(lines["json"])
    assert entry["role"] == "server"
    assert isinstance(entry["pid"], int)
    assert lines["text"].startswith("[server:")
