"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

MEMBERSHIP_CHANGES = Counter(
    "membership_mentees_changed_total",
    "Mentees whose group changed, by membership operation",
    ("operation",),
)

GROUP_TRANSITIONS = Counter(
    "group_lifecycle_transitions_total",
    "Group lifecycle transitions by outcome",
    ("transition", "outcome"),
)

IMPORT_ROWS = Counter(
    "group_import_rows_total",
    "Spreadsheet rows processed by the group importer",
    ("outcome",),
)

DOMAIN_ERRORS = Counter(
    "membership_rejections_total",
    "Requests rejected by a membership rule, by error code",
    ("code",),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def record_membership_change(operation: str, count: int) -> None:
    """Count mentees moved by a reconciler or lifecycle operation."""

    if count > 0:
        MEMBERSHIP_CHANGES.labels(operation=operation).inc(count)


def record_transition(transition: str, succeeded: bool) -> None:
    GROUP_TRANSITIONS.labels(
        transition=transition,
        outcome="success" if succeeded else "failure",
    ).inc()


def record_import_rows(created: int, failed: int) -> None:
    if created:
        IMPORT_ROWS.labels(outcome="created").inc(created)
    if failed:
        IMPORT_ROWS.labels(outcome="failed").inc(failed)


def record_domain_error(code: str) -> None:
    DOMAIN_ERRORS.labels(code=code).inc()
