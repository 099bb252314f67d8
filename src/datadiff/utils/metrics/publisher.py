"""
HTTP endpoint exposing the metrics registry.
"""

import logging

from prometheus_client import REGISTRY, CollectorRegistry, start_http_server

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """Starts the Prometheus HTTP server once."""

    def __init__(self, port: int = 9108, registry: CollectorRegistry | None = None):
        self.port = port
        self.registry = registry or REGISTRY
        self._server_started = False

    def start(self) -> None:
        if self._server_started:
            logger.warning(f"Metrics server already running on port {self.port}")
            return
        try:
            start_http_server(self.port, registry=self.registry)
        except OSError as e:
            logger.error(f"Metrics server could not bind to port {self.port}: {e}")
            raise
        self._server_started = True
        logger.info(f"Metrics server started on port {self.port}")

    @property
    def is_running(self) -> bool:
        return self._server_started
