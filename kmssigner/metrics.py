"""Prometheus metrics for kmssigner.

This module defines all Prometheus metrics recorded around remote KMS calls.
Metrics live in a dedicated registry so that embedding applications decide
whether and how to expose them: ``get_metrics_output`` renders the registry
in the Prometheus text format and ``get_metrics_content_type`` is the matching
Content-Type header value.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    generate_latest,
)

from . import __version__

logger = logging.getLogger(__name__)

REGISTRY = CollectorRegistry()

# Application info
APP_INFO = Info(
    "kmssigner_build_info",
    "Build information about kmssigner",
    registry=REGISTRY,
)
APP_INFO.info({"version": __version__, "name": "kmssigner"})

# Remote call metrics
KMS_REQUESTS_TOTAL = Counter(
    "kms_requests_total",
    "Total number of requests sent to KMS",
    ["operation"],
    registry=REGISTRY,
)

KMS_REQUEST_DURATION_SECONDS = Histogram(
    "kms_request_duration_seconds",
    "Time spent waiting for KMS responses",
    ["operation"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY,
)

KMS_ERRORS_TOTAL = Counter(
    "kms_errors_total",
    "Total number of failed KMS operations",
    ["operation", "error_type"],
    registry=REGISTRY,
)


@contextmanager
def track_request(operation: str) -> Iterator[None]:
    """Count a KMS request and observe its duration, successful or not."""
    KMS_REQUESTS_TOTAL.labels(operation=operation).inc()
    start_time = time.perf_counter()
    try:
        yield
    finally:
        KMS_REQUEST_DURATION_SECONDS.labels(operation=operation).observe(
            time.perf_counter() - start_time
        )


def record_error(operation: str, error_type: str) -> None:
    """Count a failed operation (``timeout``, ``remote`` or ``parse``)."""
    KMS_ERRORS_TOTAL.labels(operation=operation, error_type=error_type).inc()


def get_metrics_output() -> bytes:
    """Generate Prometheus-formatted metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
