"""
Consecutive-failure tracking and retry delays.

The failure counter lives in the resource status (``failureCount``) so that it
survives operator restarts. Delays grow geometrically with the counter and are
capped, so a failing resource keeps being retried at a bounded cadence.
"""

from keycloak_resource_operator.constants import STATUS_OK
from keycloak_resource_operator.models.resources import ChildResource
from keycloak_resource_operator.observability.metrics import metrics_collector
from keycloak_resource_operator.settings import settings


class FailureTracker:
    """Computes requeue delays from the failure counter of a resource."""

    def __init__(
        self,
        base: float | None = None,
        multiplier: float | None = None,
        ceiling: float | None = None,
    ):
        self.base = settings.failure_backoff_base_seconds if base is None else base
        self.multiplier = (
            settings.failure_backoff_multiplier if multiplier is None else multiplier
        )
        self.ceiling = (
            settings.failure_backoff_max_seconds if ceiling is None else ceiling
        )

    def delay_for(self, failure_count: int) -> float:
        """Requeue delay after ``failure_count`` consecutive failures."""
        exponent = max(failure_count - 1, 0)
        try:
            delay = self.base * self.multiplier**exponent
        except OverflowError:
            return self.ceiling
        return min(delay, self.ceiling)

    def record_failure(self, resource: ChildResource) -> float:
        """
        Count a failed reconciliation on the resource status.

        Returns:
            Delay in seconds before the next attempt
        """
        resource.status.failure_count += 1
        metrics_collector.set_failure_count(
            resource.kind,
            resource.namespace,
            resource.name,
            resource.status.failure_count,
        )
        return self.delay_for(resource.status.failure_count)

    def record_success(self, resource: ChildResource) -> None:
        resource.status.failure_count = 0
        resource.status.value = STATUS_OK
        metrics_collector.set_failure_count(
            resource.kind, resource.namespace, resource.name, 0
        )
