"""Unit tests for failure counting and requeue delays."""

import pytest

from keycloak_resource_operator.constants import STATUS_OK
from keycloak_resource_operator.services.backoff import FailureTracker

from .factories import make_child


@pytest.fixture
def tracker() -> FailureTracker:
    return FailureTracker(base=10.0, multiplier=2.0, ceiling=600.0)


class TestDelays:
    def test_first_failures(self, tracker):
        assert tracker.delay_for(1) == 10.0
        assert tracker.delay_for(2) == 20.0
        assert tracker.delay_for(3) == 40.0

    def test_non_decreasing_and_bounded(self, tracker):
        delays = [tracker.delay_for(count) for count in range(1, 60)]

        assert delays == sorted(delays)
        assert max(delays) == 600.0

    def test_huge_counter_stays_at_ceiling(self, tracker):
        assert tracker.delay_for(100_000) == 600.0

    def test_deterministic(self, tracker):
        assert tracker.delay_for(7) == FailureTracker(10.0, 2.0, 600.0).delay_for(7)

    def test_defaults_from_settings(self):
        tracker = FailureTracker()

        assert tracker.delay_for(1) > 0
        assert tracker.delay_for(1_000) == tracker.ceiling


class TestRecording:
    def test_failure_increments_counter(self, tracker):
        resource = make_child(status={"value": "", "failureCount": 2})

        delay = tracker.record_failure(resource)

        assert resource.status.failure_count == 3
        assert delay == 40.0

    def test_success_resets_counter(self, tracker):
        resource = make_child()
        resource.status.value = "unable to sync client scope: boom"

        tracker.record_failure(resource)
        tracker.record_success(resource)

        assert resource.status.failure_count == 0
        assert resource.status.value == STATUS_OK
