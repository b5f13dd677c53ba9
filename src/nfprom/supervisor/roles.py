"""
Entry points for the three process roles.

- poller: keeps root, spawns the server child, refreshes the snapshot forever
- server: drops to the configured user/group and serves the snapshot
- direct: single process serving a firewall source on every scrape
"""

from __future__ import annotations

import signal
import threading
from collections.abc import Callable
from types import FrameType
from typing import Any

from prometheus_client import CollectorRegistry

from nfprom.errors import ServerExitedError, SnapshotReadError
from nfprom.logging import set_process_role
from nfprom.monitoring import MetricsServer, SnapshotCollector, SourceCollector
from nfprom.relay import SnapshotRelay
from nfprom.settings import ExporterSettings
from nfprom.sources import RuleSource, SourceKind, build_source
from nfprom.supervisor.launcher import ServerProcess, server_command
from nfprom.supervisor.poller import Poller
from nfprom.supervisor.privileges import drop_privileges
from nfprom.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="supervisor")

Spawner = Callable[[ExporterSettings], ServerProcess]


def _spawn_server(settings: ExporterSettings) -> ServerProcess:
    return ServerProcess.spawn(server_command(settings))


def _exit_on_sigterm(signum: int, frame: FrameType | None) -> None:
    raise SystemExit(128 + signum)


def run_poller(
    settings: ExporterSettings,
    *,
    source: RuleSource | None = None,
    spawn: Spawner = _spawn_server,
    handle_signals: bool = True,
) -> None:
    """Run the privileged half of the exporter until the server child dies.

    Raises:
        ServerExitedError: the server child exited (always the normal way out).
        SourceUnavailableError: the firewall could not be queried.
        SnapshotWriteError: the snapshot could not be written.
    """
    set_process_role("poller")
    if handle_signals:
        signal.signal(signal.SIGTERM, _exit_on_sigterm)

    source = source or build_source(settings, "nft-netlink")
    relay = SnapshotRelay(settings.snapshot_path)
    stop = threading.Event()
    exit_status: dict[str, int] = {}

    child = spawn(settings)

    def _on_server_exit(returncode: int) -> None:
        exit_status["returncode"] = returncode
        stop.set()

    child.watch(_on_server_exit)
    poller = Poller(source, relay, settings.refresh_interval, stop_event=stop)
    try:
        poller.run()
    finally:
        child.terminate()

    returncode = exit_status.get("returncode")
    raise ServerExitedError(
        f"webserver process {child.pid} exited with code {returncode}; poller exiting",
        pid=child.pid,
        returncode=returncode,
    )


def _snapshot_health(relay: SnapshotRelay) -> Callable[[], dict[str, Any]]:
    def _check() -> dict[str, Any]:
        try:
            snapshot = relay.read()
        except SnapshotReadError as exc:
            return {"status": "degraded", "snapshot": {"readable": False, "error": exc.message}}
        return {"snapshot": {"readable": True, "records": len(snapshot.records)}}

    return _check


def build_server(settings: ExporterSettings) -> MetricsServer:
    """Metrics server backed only by the relay snapshot."""
    relay = SnapshotRelay(settings.snapshot_path)
    registry = CollectorRegistry()
    registry.register(
        SnapshotCollector(relay, settings.namespace, settings.missing_label_value)
    )
    host, port = settings.listen_address
    return MetricsServer(
        host,
        port,
        registry=registry,
        read_timeout=settings.read_timeout,
        health_check=_snapshot_health(relay),
    )


def run_server(
    settings: ExporterSettings,
    *,
    drop: Callable[[str, str], Any] = drop_privileges,
) -> None:
    """Drop privileges, then serve the snapshot until terminated.

    Raises:
        PrivilegeDropError: the user/group switch failed; nothing is served.
    """
    set_process_role("server")
    logger.info("Dropping privileges", user=settings.user, group=settings.group)
    drop(settings.user, settings.group)
    build_server(settings).serve_forever()


def build_direct_server(settings: ExporterSettings, kind: SourceKind) -> MetricsServer:
    registry = CollectorRegistry()
    registry.register(SourceCollector(build_source(settings, kind), settings.namespace))
    host, port = settings.listen_address
    return MetricsServer(host, port, registry=registry, read_timeout=settings.read_timeout)


def run_direct(settings: ExporterSettings, kind: SourceKind) -> None:
    """Serve ``kind`` directly; this process must be allowed to read the firewall."""
    set_process_role("direct")
    logger.info(f"Serving {kind} counters without privilege separation", source=kind)
    build_direct_server(settings, kind).serve_forever()


__all__ = ["run_poller", "run_server", "run_direct", "build_server", "build_direct_server"]
