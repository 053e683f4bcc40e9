"""
Prometheus metrics for the appointment engine.

Service timings come from the @measure_operation decorator; the ledger,
lifecycle, batch generation and lock helpers record domain counters.
Everything is registered on a private registry so importing this module
never collides with a host application's default registry.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "appointments_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "appointments_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "appointments_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

capacity_ledger_adjustments_total = Counter(
    "appointments_capacity_ledger_adjustments_total",
    "Conditional booked_count adjustments by direction and result",
    ["direction", "result"],
    registry=REGISTRY,
)

booking_transitions_total = Counter(
    "appointments_booking_transitions_total",
    "Booking lifecycle transitions",
    ["from_status", "to_status"],
    registry=REGISTRY,
)

slot_generation_total = Counter(
    "appointments_slot_generation_total",
    "Slots produced or skipped by batch generation",
    ["result"],
    registry=REGISTRY,
)

slot_lock_total = Counter(
    "appointments_slot_lock_total",
    "Per-slot lock operations",
    ["backend", "action", "result"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin recording facade used by services and core helpers."""

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
            service: Service name (e.g., 'BookingService')
            operation: Operation/method name (e.g., 'create_booking')
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
    def record_ledger_adjustment(direction: str, result: str) -> None:
        capacity_ledger_adjustments_total.labels(direction=direction, result=result).inc()

    @staticmethod
    def record_transition(from_status: str, to_status: str) -> None:
        booking_transitions_total.labels(from_status=from_status, to_status=to_status).inc()

    @staticmethod
    def record_slot_generation(created: int, skipped: int) -> None:
        if created:
            slot_generation_total.labels(result="created").inc(created)
        if skipped:
            slot_generation_total.labels(result="skipped").inc(skipped)

    @staticmethod
    def record_slot_lock(backend: str, action: str, result: str) -> None:
        slot_lock_total.labels(backend=backend, action=action, result=result).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
