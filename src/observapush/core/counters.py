"""Process-wide aggregate counters fed by event producers."""

import logging
import threading
from collections import Counter
from collections.abc import Hashable

from observapush.core.models import Totals, WindowReport

logger = logging.getLogger(__name__)


class CounterRegistry:
    """Mutable aggregate state shared by request handlers and the reporter.

    All updates and the drain run under one lock, so a drain observes either
    all or none of a concurrent update. Cumulative totals are never reset;
    the active-user set and both latency accumulators are per window.

    Example:
        ```python
        registry = CounterRegistry()
        registry.record_request("GET", True, 42, False, 200)
        registry.record_business_event(True, 120, 9.99)
        report = registry.drain()
        ```
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

        self._requests = 0
        self._requests_by_method: Counter[str] = Counter()
        self._auth_success = 0
        self._auth_failure = 0
        self._units_sold = 0
        self._revenue = 0.0
        self._failures = 0

        self._active_users: set[Hashable] = set()
        self._service_latency_sum = 0.0
        self._service_latency_count = 0
        self._business_latency_sum = 0.0
        self._business_latency_count = 0

        self._previous = Totals()

    def record_request(
        self,
        method: str,
        has_authorized_user: bool,
        user_id: Hashable | None,
        is_auth_endpoint: bool,
        final_status: int,
    ) -> None:
        """Count one inbound request.

        Args:
            method: HTTP method (case-insensitive).
            has_authorized_user: Whether the request carried an authenticated user.
            user_id: Identifier of that user, added to the active-user set.
            is_auth_endpoint: Whether the request targeted an auth endpoint.
            final_status: Final response status; exactly 200 counts as an
                auth success, anything else as an auth failure.
        """
        with self._lock:
            self._requests += 1
            self._requests_by_method[method.upper()] += 1
            if has_authorized_user and user_id is not None:
                self._active_users.add(user_id)
            if is_auth_endpoint:
                if final_status == 200:
                    self._auth_success += 1
                else:
                    self._auth_failure += 1

    def record_service_latency(self, duration_ms: float) -> None:
        """Accumulate one request service time in milliseconds."""
        duration_ms = max(float(duration_ms), 0.0)
        with self._lock:
            self._service_latency_sum += duration_ms
            self._service_latency_count += 1

    def record_business_event(
        self, success: bool, latency_ms: float, revenue: float = 0.0
    ) -> None:
        """Record a completed (or failed) purchase.

        Args:
            success: Whether the purchase went through.
            latency_ms: Time the upstream call took, in milliseconds.
            revenue: Amount earned; only counted on success.
        """
        latency_ms = max(float(latency_ms), 0.0)
        if revenue < 0:
            logger.warning("Ignoring negative revenue %r", revenue)
            revenue = 0.0
        with self._lock:
            if success:
                self._units_sold += 1
                self._revenue += revenue
            else:
                self._failures += 1
            self._business_latency_sum += latency_ms
            self._business_latency_count += 1

    def snapshot(self) -> Totals:
        """Return a copy of the cumulative totals without resetting anything."""
        with self._lock:
            return self._totals()

    @property
    def active_user_count(self) -> int:
        with self._lock:
            return len(self._active_users)

    def drain(self) -> WindowReport:
        """Capture the current window and start a new one.

        The previous-snapshot totals are overwritten with the current totals,
        the active-user set is cleared and both latency accumulators are
        zeroed, all in one critical section.
        """
        with self._lock:
            current = self._totals()
            report = WindowReport(
                current=current,
                previous=self._previous,
                active_users=len(self._active_users),
                service_latency_sum=self._service_latency_sum,
                service_latency_count=self._service_latency_count,
                business_latency_sum=self._business_latency_sum,
                business_latency_count=self._business_latency_count,
            )
            self._previous = current
            self._active_users.clear()
            self._service_latency_sum = 0.0
            self._service_latency_count = 0
            self._business_latency_sum = 0.0
            self._business_latency_count = 0
        return report

    def _totals(self) -> Totals:
        return Totals(
            requests=self._requests,
            requests_by_method=dict(self._requests_by_method),
            auth_success=self._auth_success,
            auth_failure=self._auth_failure,
            units_sold=self._units_sold,
            revenue=self._revenue,
            failures=self._failures,
        )
