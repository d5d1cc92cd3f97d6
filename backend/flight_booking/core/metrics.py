"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['outcome']  # success, insufficient_seats, seat_taken, invalid, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking request latency',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Seat pool metrics
seat_pool_operations = Counter(
    'seat_pool_operations_total',
    'Seat pool counter updates',
    ['operation', 'result']  # reserve/release x ok/rejected/clamped
)

compensating_releases = Counter(
    'booking_compensating_releases_total',
    'Seats handed back after a booking failed past reservation'
)

# Payment metrics
payment_confirmations = Counter(
    'payment_confirmations_total',
    'Per-ticket payment confirmation results',
    ['result']  # paid, already_paid, stale, failed
)

# Reclaimer metrics
reclaimed_tickets = Counter(
    'reclaimed_tickets_total',
    'Per-ticket expiry sweep results',
    ['result']  # canceled, stale, error
)

reclaim_sweep_duration = Histogram(
    'reclaim_sweep_duration_seconds',
    'Expiry sweep duration',
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 15.0]
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(outcome: str):
    booking_attempts.labels(outcome=outcome).inc()


def record_seat_pool_operation(operation: str, result: str):
    seat_pool_operations.labels(operation=operation, result=result).inc()


def record_payment_confirmation(result: str):
    payment_confirmations.labels(result=result).inc()


def record_reclaim(result: str):
    reclaimed_tickets.labels(result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
