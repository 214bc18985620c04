"""Shared test fixtures and fakes."""

from __future__ import annotations

import threading
from typing import Any

import pytest

from healthcheck.health.models import MetricResult, ProbeResult, Severity


class StaticProbe:
    """Probe returning a fixed result, counting its calls."""

    def __init__(self, name: str, severity: Severity = Severity.OK, message: str = "good") -> None:
        self.name = name
        self.severity = severity
        self.message = message
        self.calls = 0

    def run(self) -> ProbeResult:
        self.calls += 1
        return ProbeResult(self.name, self.severity, self.message)


class RaisingProbe:
    """Violates the probe contract by raising out of run()."""

    def __init__(self, name: str, exc: Exception) -> None:
        self.name = name
        self.exc = exc

    def run(self) -> ProbeResult:
        raise self.exc


class BlockingProbe:
    """Blocks until released. Stands in for a hung dependency."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.release = threading.Event()

    def run(self) -> ProbeResult:
        self.release.wait(timeout=5)
        return ProbeResult.up(self.name)


class StaticMetric:
    def __init__(self, key: str, severity: Severity = Severity.OK, message: str = "") -> None:
        self.key = key
        self.severity = severity
        self.message = message

    def run(self) -> MetricResult:
        return MetricResult(self.key, self.severity, self.message)


class BlockingMetric:
    """Metric whose resource query never returns until released."""

    def __init__(self, key: str) -> None:
        self.key = key
        self.release = threading.Event()

    def run(self) -> MetricResult:
        self.release.wait(timeout=5)
        return MetricResult.ok(self.key, "released")


class FakeKeyValueStore:
    """In-memory KeyValueStore recording TTLs."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}

    def put(self, key: str, value: str, ttl: int) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    def get(self, key: str) -> str | None:
        return self.data.get(key)


@pytest.fixture
def kv_store() -> FakeKeyValueStore:
    return FakeKeyValueStore()
