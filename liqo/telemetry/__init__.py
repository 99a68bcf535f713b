"""Telemetry helpers and metrics."""

from .metrics import (
    DOMAIN_ERRORS,
    ERROR_COUNTER,
    GROUP_TRANSITIONS,
    IMPORT_ROWS,
    MEMBERSHIP_CHANGES,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    observe_request,
    record_import_rows,
    record_membership_change,
    record_domain_error,
    record_transition,
)

__all__ = [
    "DOMAIN_ERRORS",
    "ERROR_COUNTER",
    "GROUP_TRANSITIONS",
    "IMPORT_ROWS",
    "MEMBERSHIP_CHANGES",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "observe_request",
    "record_import_rows",
    "record_membership_change",
    "record_domain_error",
    "record_transition",
]
