"""System metrics: local resource checks that can only warn, never fail."""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import psutil

from .models import MetricResult
from .probes import describe_fault

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


@runtime_checkable
class SystemMetric(Protocol):
    key: str

    def run(self) -> MetricResult:
        ...


class BaseMetric:
    """Turns ``measure()`` into a MetricResult; a fault becomes a WARNING."""

    key = "metric"

    def measure(self) -> MetricResult:
        raise NotImplementedError

    def run(self) -> MetricResult:
        try:
            return self.measure()
        except Exception as e:
            logger.warning("Metric %s could not be read: %s", self.key, describe_fault(e))
            return MetricResult.warning(self.key, describe_fault(e))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self.key!r})"


def percent(part: float, whole: float) -> float:
    return round(part / whole * 100, 1)


# ── Storage ──────────────────────────────────────────────────────────────────


class StorageMetric(BaseMetric):
    """Used space of a filesystem, warning at ``warn_percent``."""

    def __init__(
        self,
        path: str = "/",
        warn_percent: float = 85.0,
        key: str = "storage",
        disk_usage: Callable[[str], Any] = shutil.disk_usage,
    ) -> None:
        self.path = path
        self.warn_percent = warn_percent
        self.key = key
        self._disk_usage = disk_usage

    def measure(self) -> MetricResult:
        usage = self._disk_usage(self.path)
        used = percent(usage.total - usage.free, usage.total)

        if used >= self.warn_percent:
            return MetricResult.warning(
                self.key,
                f"warning, the filesystem is more than {self.warn_percent:g}% full ({used:.1f}% used)",
            )
        return MetricResult.ok(self.key, f"{used:.1f}% used")


# ── Memory ───────────────────────────────────────────────────────────────────


def process_memory_mb() -> float:
    """Resident memory of the current process in MB."""
    return psutil.Process(os.getpid()).memory_info().rss / BYTES_PER_MB


def memory_limit_mb() -> float:
    """Address-space rlimit of this process, else total physical memory, in MB."""
    rlimit_as = getattr(psutil, "RLIMIT_AS", None)
    if rlimit_as is not None:
        soft, _hard = psutil.Process(os.getpid()).rlimit(rlimit_as)
        if soft != psutil.RLIM_INFINITY and soft > 0:
            return soft / BYTES_PER_MB
    return psutil.virtual_memory().total / BYTES_PER_MB


class MemoryMetric(BaseMetric):
    """Process memory relative to its limit, warning at ``warn_percent``."""

    def __init__(
        self,
        warn_percent: float = 90.0,
        key: str = "memory_used",
        limit_mb: float | None = None,
        usage_mb: Callable[[], float] = process_memory_mb,
        default_limit_mb: Callable[[], float] = memory_limit_mb,
    ) -> None:
        self.warn_percent = warn_percent
        self.key = key
        self.limit_mb = limit_mb
        self._usage_mb = usage_mb
        self._default_limit_mb = default_limit_mb

    def measure(self) -> MetricResult:
        used_mb = self._usage_mb()
        limit_mb = self.limit_mb if self.limit_mb else self._default_limit_mb()

        if limit_mb <= 0:
            return MetricResult.ok(self.key, f"{used_mb:.1f}MB used, no memory limit")

        used = percent(used_mb, limit_mb)
        if used >= self.warn_percent:
            return MetricResult.warning(self.key, f"warning, the memory is {used:.1f}% full")
        return MetricResult.ok(self.key, f"{used:.1f}% used")


# ── Configuration file ───────────────────────────────────────────────────────


def config_file_resolver(path: str | Path) -> Callable[[], str | None]:
    """Resolve ``path`` to an absolute path at check time, None when missing."""

    def resolve() -> str | None:
        if not path:
            return None
        candidate = Path(path)
        return str(candidate.resolve()) if candidate.is_file() else None

    return resolve


class ConfigFileMetric(BaseMetric):
    """Reports the active configuration file, warning when none is loaded."""

    def __init__(self, resolve: Callable[[], str | None], key: str = "config_file") -> None:
        self._resolve = resolve
        self.key = key

    def measure(self) -> MetricResult:
        resolved = self._resolve()
        if not resolved:
            return MetricResult.warning(self.key, "There is no configuration file loaded")
        return MetricResult.ok(self.key, resolved)
