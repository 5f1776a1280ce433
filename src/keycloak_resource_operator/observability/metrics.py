"""
Prometheus metrics for the Keycloak resource operator.

This module provides metrics for reconciliation outcomes, failure backoff,
finalizer-guarded deletions and the admin token cache.
"""

import logging
import time
from contextlib import asynccontextmanager

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

logger = logging.getLogger(__name__)

# Global metrics registry
_metrics_registry: CollectorRegistry | None = None

RECONCILIATION_TOTAL = Counter(
    "keycloak_resource_operator_reconciliation_total",
    "Total number of reconciliation attempts",
    ["resource_type", "namespace", "result"],
    registry=None,  # Will be set during initialization
)

RECONCILIATION_DURATION = Histogram(
    "keycloak_resource_operator_reconciliation_duration_seconds",
    "Time spent on reconciliation operations",
    ["resource_type", "namespace"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=None,
)

RECONCILIATION_ERRORS = Counter(
    "keycloak_resource_operator_reconciliation_errors_total",
    "Total number of reconciliation errors",
    ["resource_type", "namespace", "error_type"],
    registry=None,
)

FAILURE_COUNT = Gauge(
    "keycloak_resource_operator_failure_count",
    "Consecutive reconciliation failures of a resource",
    ["resource_type", "namespace", "name"],
    registry=None,
)

TERMINATIONS_TOTAL = Counter(
    "keycloak_resource_operator_terminations_total",
    "Remote deletions attempted for resources being removed",
    ["resource_type", "result"],
    registry=None,
)

TOKEN_CACHE_TOTAL = Counter(
    "keycloak_resource_operator_token_cache_total",
    "Admin token cache lookups and writes",
    ["namespace", "result"],
    registry=None,
)


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the global metrics registry."""
    global _metrics_registry

    if _metrics_registry is None:
        _metrics_registry = CollectorRegistry()

        for metric in [
            RECONCILIATION_TOTAL,
            RECONCILIATION_DURATION,
            RECONCILIATION_ERRORS,
            FAILURE_COUNT,
            TERMINATIONS_TOTAL,
            TOKEN_CACHE_TOTAL,
        ]:
            _metrics_registry.register(metric)

    return _metrics_registry


class MetricsCollector:
    """Collects and manages metrics for the operator."""

    def __init__(self):
        self.registry = get_metrics_registry()

    @asynccontextmanager
    async def track_reconciliation(self, resource_type: str, namespace: str):
        """
        Context manager to track reconciliation operations.

        Args:
            resource_type: Type of resource being reconciled
            namespace: Namespace of the resource
        """
        start_time = time.time()
        result = "unknown"

        try:
            yield
            result = "success"
        except Exception as e:
            result = "error"
            RECONCILIATION_ERRORS.labels(
                resource_type=resource_type,
                namespace=namespace,
                error_type=type(e).__name__,
            ).inc()
            raise
        finally:
            RECONCILIATION_TOTAL.labels(
                resource_type=resource_type, namespace=namespace, result=result
            ).inc()
            RECONCILIATION_DURATION.labels(
                resource_type=resource_type, namespace=namespace
            ).observe(time.time() - start_time)

    def set_failure_count(
        self, resource_type: str, namespace: str, name: str, count: int
    ) -> None:
        FAILURE_COUNT.labels(
            resource_type=resource_type, namespace=namespace, name=name
        ).set(count)

    def clear_failure_count(
        self, resource_type: str, namespace: str, name: str
    ) -> None:
        """Drop the failure gauge of a resource that no longer exists."""
        try:
            FAILURE_COUNT.remove(resource_type, namespace, name)
        except KeyError:
            # No failure was ever recorded for it
            pass

    def record_termination(self, resource_type: str, success: bool) -> None:
        TERMINATIONS_TOTAL.labels(
            resource_type=resource_type, result="success" if success else "error"
        ).inc()

    def record_token_cache(self, namespace: str, result: str) -> None:
        """Record a token cache event: hit, miss, expired, stored or write_failed."""
        TOKEN_CACHE_TOTAL.labels(namespace=namespace, result=result).inc()


def start_metrics_server(port: int, host: str = "0.0.0.0") -> None:
    """Expose the operator registry on ``host:port/metrics``."""
    start_http_server(port, addr=host, registry=get_metrics_registry())
    logger.info(f"Metrics endpoint available on {host}:{port}")


# Global metrics collector instance
metrics_collector = MetricsCollector()
