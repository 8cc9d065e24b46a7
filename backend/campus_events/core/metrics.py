"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Registration metrics
registration_attempts = Counter(
    'registration_attempts_total',
    'Registration attempts by outcome',
    ['outcome']  # created, not_found, closed, ineligible, duplicate, full
)

capacity_guard_latency = Histogram(
    'capacity_guard_latency_seconds',
    'Time spent holding the per-event capacity claim',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

registration_status_changes = Counter(
    'registration_status_changes_total',
    'Registration status transitions',
    ['status']  # pending, approved, cancelled
)

# Event lifecycle metrics
review_decisions = Counter(
    'event_review_decisions_total',
    'Reviewer decisions on events',
    ['outcome']  # approved, rejected
)

event_operations = Counter(
    'event_operations_total',
    'Event lifecycle writes',
    ['operation']  # create, update, status, delete
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_registration_attempt(outcome: str):
    registration_attempts.labels(outcome=outcome).inc()


def record_review(outcome: str):
    review_decisions.labels(outcome=outcome).inc()


def record_event_operation(operation: str):
    event_operations.labels(operation=operation).inc()


def record_registration_status(status: str):
    registration_status_changes.labels(status=status).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
