"""Prometheus metrics HTTP server.

Provides the /metrics endpoint for Prometheus scraping and a /health endpoint
reporting whether the counter source can currently be read.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from nfprom.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="metrics_server")

METRICS_PATH = "/metrics"
HEALTH_PATH = "/health"


class MetricsServer:
    """HTTP server exposing a collector registry.

    Every scrape runs the registered collectors afresh; concurrent requests
    are served on separate threads and share no mutable state.
    """

    def __init__(
        self,
        host: str = "",
        port: int = 9830,
        registry: CollectorRegistry | None = None,
        read_timeout: float = 3.0,
        health_check: Callable[[], dict[str, Any]] | None = None,
    ) -> None:
        """Initialize metrics server.

        Args:
            host: Bind address (default: all interfaces)
            port: Bind port (default: 9830)
            registry: Registry holding the firewall collectors
            read_timeout: Seconds to wait for a client to send its request
            health_check: Optional callable returning details for /health
        """
        self.host = host
        self.port = port
        self.registry = registry or CollectorRegistry()
        self.read_timeout = read_timeout
        self._health_check = health_check
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None
        self._running = False

    @property
    def server_address(self) -> tuple[str, int]:
        """Address actually bound; differs from ``port`` when binding port 0."""
        if self._server is None:
            return self.host, self.port
        host, port = self._server.server_address[:2]
        return str(host), int(port)

    def _build_handler(self) -> type[BaseHTTPRequestHandler]:
        server_instance = self

        class MetricsHandler(BaseHTTPRequestHandler):
            """HTTP request handler for /metrics and /health endpoints."""

            timeout = server_instance.read_timeout

            def log_message(self, format: str, *args: Any) -> None:
                """Route access logging through the exporter logger."""
                logger.debug(format % args, client=self.client_address[0])

            def do_GET(self) -> None:
                path = self.path.split("?", 1)[0]
                try:
                    if path == METRICS_PATH:
                        self._handle_metrics()
                    elif path == HEALTH_PATH:
                        self._handle_health()
                    else:
                        self.send_error(404, "Not Found")
                except Exception as e:
                    logger.error(f"Error handling request {self.path}: {e}", exc_info=True)
                    self.send_error(500, "Internal Server Error")

            def _handle_metrics(self) -> None:
                metrics_output = generate_latest(server_instance.registry)

                self.send_response(200)
                self.send_header("Content-Type", CONTENT_TYPE_LATEST)
                self.send_header("Content-Length", str(len(metrics_output)))
                self.end_headers()
                self.wfile.write(metrics_output)

            def _handle_health(self) -> None:
                health_data: dict[str, Any] = {"status": "ok"}
                if server_instance._health_check is not None:
                    health_data.update(server_instance._health_check())
                response = json.dumps(health_data, indent=2).encode("utf-8")

                self.send_response(200)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(response)))
                self.end_headers()
                self.wfile.write(response)

        return MetricsHandler

    def bind(self) -> None:
        """Create the listening socket without serving yet."""
        if self._server is not None:
            return
        self._server = ThreadingHTTPServer((self.host, self.port), self._build_handler())
        self._server.daemon_threads = True
        host, port = self.server_address
        logger.info(f"Metrics server listening on {host or '*'}:{port}", host=host, port=port)

    def start(self) -> None:
        """Start the metrics server in a background thread."""
        if self._running:
            logger.warning("MetricsServer already running")
            return

        try:
            self.bind()
        except OSError as e:
            logger.error(f"Failed to start MetricsServer: {e}")
            raise
        assert self._server is not None
        self._running = True
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            daemon=True,
            name="MetricsServer",
        )
        self._thread.start()

    def serve_forever(self) -> None:
        """Serve in the calling thread until ``stop`` is called from another one."""
        self.bind()
        server = self._server
        assert server is not None
        self._running = True
        try:
            server.serve_forever()
        finally:
            self._running = False
            server.server_close()

    def stop(self) -> None:
        """Stop the metrics server."""
        if self._server is None:
            return

        self._running = False
        self._server.shutdown()
        self._server.server_close()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

        self._server = None
        logger.info("MetricsServer stopped")


__all__ = ["MetricsServer", "METRICS_PATH", "HEALTH_PATH"]
