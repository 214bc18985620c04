"""Exceptions raised by the health aggregation core."""

from __future__ import annotations


class HealthCheckError(Exception):
    """Base class for health check errors."""


class VerificationError(HealthCheckError):
    """Raised inside a probe when a round trip returned an unexpected value."""


class DuplicateCheckError(HealthCheckError):
    """Raised when two probes share a name or two metrics share a key."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"Duplicate {kind} registered: {identifier}")
