"""Prometheus metrics module."""

import logging

from prometheus_client import start_http_server

from editorpool.app.config import MetricsConfig
from editorpool.core.logging_schema import LogEvent

logger = logging.getLogger(__name__)


def setup_metrics(config: MetricsConfig) -> bool:
    """Start the Prometheus exporter if enabled.

    Returns:
        True if the exporter was started.
    """
    if not config.enabled:
        return False
    start_http_server(config.port)
    logger.info(
        "Metrics exporter listening",
        extra={"event": LogEvent.APP_STARTED, "port": config.port},
    )
    return True
