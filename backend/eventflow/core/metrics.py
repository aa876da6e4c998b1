"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'eventflow_booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, conflict, rejected, error
)

booking_latency = Histogram(
    'eventflow_booking_latency_seconds',
    'Booking creation latency',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

booking_cancellations = Counter(
    'eventflow_booking_cancellations_total',
    'Cancelled bookings',
    ['refunded']  # true, false
)

# Payment metrics
payment_operations = Counter(
    'eventflow_payment_operations_total',
    'Payment gateway operations',
    ['operation', 'result']  # intent/confirm/refund/free, success/failure/replay
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, rejected, error"""
    booking_attempts.labels(status=status).inc()


def record_cancellation(refunded: bool):
    booking_cancellations.labels(refunded=str(refunded).lower()).inc()


def record_payment_operation(operation: str, result: str):
    """Record a payment operation. Operation: intent, confirm, refund, free"""
    payment_operations.labels(operation=operation, result=result).inc()
