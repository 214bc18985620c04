"""Severity model and the result types produced by one aggregation run.

The report serializes to the schema consumed by load balancers and dashboards:

    {"status": "ok", "status_code": 200,
     "info": [{"Database": {"status": "up", "message": "good"}}],
     "system_info": [{"storage": {"status": "ok", "message": "42.0% used"}}]}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_PROBE_MESSAGE = "good"


# ── Severity ─────────────────────────────────────────────────────────────────


class Severity(int, Enum):
    OK = 0
    WARNING = 1
    ERROR = 2

    @property
    def status_word(self) -> str:
        return _STATUS_WORDS[self]

    @property
    def status_code(self) -> int:
        return 503 if self is Severity.ERROR else 200


_STATUS_WORDS = {
    Severity.OK: "ok",
    Severity.WARNING: "warning",
    Severity.ERROR: "error",
}


def worse_of(a: Severity, b: Severity) -> Severity:
    """Return the more severe of two levels."""
    return a if a >= b else b


# ── Results ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one dependency probe. Probes are binary: OK or ERROR."""

    name: str
    severity: Severity
    message: str = DEFAULT_PROBE_MESSAGE

    @classmethod
    def up(cls, name: str, message: str = DEFAULT_PROBE_MESSAGE) -> ProbeResult:
        return cls(name=name, severity=Severity.OK, message=message)

    @classmethod
    def error(cls, name: str, message: str) -> ProbeResult:
        return cls(name=name, severity=Severity.ERROR, message=message)

    @property
    def status(self) -> str:
        # probe vocabulary is "up" / "error", not the report word
        return "up" if self.severity is Severity.OK else "error"

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {self.name: {"status": self.status, "message": self.message}}


@dataclass(frozen=True)
class MetricResult:
    """Outcome of one host/runtime metric. Metrics are OK or WARNING."""

    key: str
    severity: Severity
    message: str = ""

    @classmethod
    def ok(cls, key: str, message: str) -> MetricResult:
        return cls(key=key, severity=Severity.OK, message=message)

    @classmethod
    def warning(cls, key: str, message: str) -> MetricResult:
        return cls(key=key, severity=Severity.WARNING, message=message)

    @property
    def status(self) -> str:
        return "warning" if self.severity is Severity.WARNING else "ok"

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {self.key: {"status": self.status, "message": self.message}}


@dataclass(frozen=True)
class HealthReport:
    """Aggregate of one run. Severity is always the worst result it holds."""

    services: tuple[ProbeResult, ...] = ()
    system_info: tuple[MetricResult, ...] = ()
    severity: Severity = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "services", tuple(self.services))
        object.__setattr__(self, "system_info", tuple(self.system_info))
        overall = Severity.OK
        for result in (*self.services, *self.system_info):
            overall = worse_of(overall, result.severity)
        object.__setattr__(self, "severity", overall)

    @classmethod
    def from_results(
        cls,
        services: list[ProbeResult] | tuple[ProbeResult, ...],
        system_info: list[MetricResult] | tuple[MetricResult, ...],
    ) -> HealthReport:
        """Fold results into a report whose severity is the worst found."""
        return cls(services=tuple(services), system_info=tuple(system_info))

    @property
    def overall_status(self) -> str:
        return self.severity.status_word

    @property
    def status_code(self) -> int:
        return self.severity.status_code

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.overall_status,
            "status_code": self.status_code,
            "info": [r.to_dict() for r in self.services],
            "system_info": [r.to_dict() for r in self.system_info],
        }
