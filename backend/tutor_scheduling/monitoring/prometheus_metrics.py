"""
Prometheus metrics module for the scheduling engine.

Service timings come from the @measure_operation decorator; domain counters
track claim outcomes, audit write failures and compensation failures.
"""

from threading import Lock
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "tutor_scheduling_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "tutor_scheduling_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "tutor_scheduling_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

slot_claims_total = Counter(
    "tutor_scheduling_slot_claims_total",
    "Slot claim attempts by outcome",
    ["outcome"],  # won | lost
    registry=REGISTRY,
)

audit_write_failures_total = Counter(
    "tutor_scheduling_audit_write_failures_total",
    "Audit entries that could not be written",
    registry=REGISTRY,
)

compensation_failures_total = Counter(
    "tutor_scheduling_compensation_failures_total",
    "Claimed slots whose compensating release exhausted its retries",
    registry=REGISTRY,
)

slots_reconciled_total = Counter(
    "tutor_scheduling_slots_reconciled_total",
    "Slots freed by background jobs",
    ["job"],  # reconciliation | expiry
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _lock: Lock = Lock()

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'SchedulingService')
            operation: Operation/method name (e.g., 'book')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def inc_slot_claim(outcome: str) -> None:
        slot_claims_total.labels(outcome=outcome).inc()

    @staticmethod
    def inc_audit_write_failure() -> None:
        audit_write_failures_total.inc()

    @staticmethod
    def inc_compensation_failure() -> None:
        compensation_failures_total.inc()

    @staticmethod
    def inc_slots_reconciled(job: str, count: int = 1) -> None:
        if count > 0:
            slots_reconciled_total.labels(job=job).inc(count)

    @staticmethod
    def get_metrics() -> bytes:
        """Generate Prometheus metrics in exposition format."""
        with PrometheusMetrics._lock:
            return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)


# Singleton instance
prometheus_metrics = PrometheusMetrics()
