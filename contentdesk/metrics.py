"""Prometheus instruments for credential workflows."""

from __future__ import annotations

from prometheus_client import Counter

CREDENTIAL_ATTEMPTS = Counter(
    "contentdesk_credential_attempts_total",
    "Registration and login attempts by outcome.",
    ["operation", "outcome"],
)


def record_attempt(operation: str, outcome: str) -> None:
    CREDENTIAL_ATTEMPTS.labels(operation=operation, outcome=outcome).inc()
