"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Slot allocator metrics
slot_operations = Counter(
    'passdesk_slot_operations_total',
    'Slot assignment and removal attempts',
    ['operation', 'result']  # assign/delete, ok/conflict/forbidden/...
)

slot_operation_latency = Histogram(
    'passdesk_slot_operation_latency_seconds',
    'Slot operation latency, lock wait included',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

registration_corrections = Counter(
    'passdesk_registration_corrections_total',
    'Events whose registrations counter was repaired by reconciliation'
)

# Attendance metrics
attendance_marks = Counter(
    'passdesk_attendance_marks_total',
    'Attendance transitions',
    ['result']  # changed, unchanged, forbidden, ...
)

# Payment verification metrics
cash_verifications = Counter(
    'passdesk_cash_verifications_total',
    'Cash payment verification requests',
    ['result']  # verified, already_verified, lost_race, upstream_failure, ...
)

upstream_calls = Counter(
    'passdesk_upstream_calls_total',
    'Outbound HTTP calls to external collaborators',
    ['target', 'outcome']  # payments/catalog, success/http_error/timeout/transport_error
)

# Event catalog sync metrics
event_sync_runs = Counter(
    'passdesk_event_sync_runs_total',
    'Event catalog sync runs',
    ['status']  # success, failed, skipped
)

events_synced = Counter(
    'passdesk_events_synced_total',
    'Catalog entries processed by the sync job',
    ['outcome']  # upserted, skipped, failed
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_slot_operation(operation: str, result: str):
    """Record slot operation. Result is the lower-cased result tag."""
    slot_operations.labels(operation=operation, result=result).inc()


def record_attendance(result: str):
    attendance_marks.labels(result=result).inc()


def record_cash_verification(result: str):
    cash_verifications.labels(result=result).inc()


def record_upstream_call(target: str, outcome: str):
    """Record outbound call. Outcome: success, http_error, timeout, transport_error"""
    upstream_calls.labels(target=target, outcome=outcome).inc()
