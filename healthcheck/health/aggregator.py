"""Health aggregator: runs every registered probe and metric into one report.

Probes run first, then metrics, each in registration order. A failing check
never stops the others; the report's severity is the worst result found.
``gather_concurrent`` runs the same checks in a thread pool with a bounded
wait per check and still returns results in registration order.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TypeVar

from healthcheck.errors import DuplicateCheckError

from .metrics import SystemMetric
from .models import HealthReport, MetricResult, ProbeResult, Severity
from .probes import Probe, describe_fault

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _ensure_unique(kind: str, identifiers: Iterable[str]) -> None:
    seen: set[str] = set()
    for identifier in identifiers:
        if identifier in seen:
            raise DuplicateCheckError(kind, identifier)
        seen.add(identifier)


class HealthAggregator:
    """Runs a fixed, ordered set of probes and metrics on demand.

    No results are kept between runs; every ``gather`` builds a fresh report.
    The thread pool used by ``gather_concurrent`` is created once and reused,
    so a dependency that stays hung holds at most one worker per check.
    """

    def __init__(
        self,
        probes: Sequence[Probe] = (),
        metrics: Sequence[SystemMetric] = (),
    ) -> None:
        _ensure_unique("probe", (p.name for p in probes))
        _ensure_unique("metric", (m.key for m in metrics))
        self.probes: tuple[Probe, ...] = tuple(probes)
        self.metrics: tuple[SystemMetric, ...] = tuple(metrics)
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    # ── Single check guards ──────────────────────────────────────────────────

    @staticmethod
    def _run_probe(probe: Probe) -> ProbeResult:
        try:
            result = probe.run()
        except Exception as e:
            logger.exception("Probe %s raised out of run()", probe.name)
            return ProbeResult.error(probe.name, describe_fault(e))

        # probes are binary: anything but OK is a failure
        if result.severity not in (Severity.OK, Severity.ERROR):
            logger.warning("Probe %s returned %s, reporting it as ERROR", probe.name, result.severity.name)
            result = dataclasses.replace(result, severity=Severity.ERROR)
        return result

    @staticmethod
    def _run_metric(metric: SystemMetric) -> MetricResult:
        try:
            result = metric.run()
        except Exception as e:
            logger.exception("Metric %s raised out of run()", metric.key)
            return MetricResult.warning(metric.key, describe_fault(e))

        # metrics never escalate past WARNING
        if result.severity is Severity.ERROR:
            logger.warning("Metric %s returned ERROR, reporting it as WARNING", metric.key)
            result = dataclasses.replace(result, severity=Severity.WARNING)
        return result

    def _report(self, services: list[ProbeResult], system_info: list[MetricResult]) -> HealthReport:
        report = HealthReport.from_results(services, system_info)
        logger.info(
            "Health gathered: %s (%d services, %d system checks)",
            report.overall_status, len(services), len(system_info),
        )
        return report

    # ── Sequential ───────────────────────────────────────────────────────────

    def gather(self) -> HealthReport:
        """Run every check one after another and build the report."""
        services = []
        for probe in self.probes:
            result = self._run_probe(probe)
            logger.debug("Probe %s: %s", result.name, result.status)
            services.append(result)

        system_info = []
        for metric in self.metrics:
            result = self._run_metric(metric)
            logger.debug("Metric %s: %s", result.key, result.status)
            system_info.append(result)

        return self._report(services, system_info)

    # ── Concurrent ───────────────────────────────────────────────────────────

    def _get_executor(self, max_workers: int) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=max_workers, thread_name_prefix="health-check",
                )
            return self._executor

    def close(self) -> None:
        """Release the worker pool. Hung workers are not waited for."""
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None

    @staticmethod
    def _collect(future: Future[T], deadline: float | None) -> T:
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        return future.result(timeout=remaining)

    def gather_concurrent(
        self,
        timeout: float | None = None,
        max_workers: int | None = None,
    ) -> HealthReport:
        """Run every check in a thread pool, waiting at most ``timeout`` each.

        A probe that does not finish in time is reported as ERROR, a metric
        as WARNING. Its worker is not interrupted: while a check stays hung
        it keeps one worker busy, and checks queued behind it may time out.
        ``max_workers`` only applies when the pool is first created.
        """
        total = len(self.probes) + len(self.metrics)
        if total == 0:
            return self._report([], [])

        executor = self._get_executor(max_workers or total)
        probe_futures = [executor.submit(self._run_probe, p) for p in self.probes]
        metric_futures = [executor.submit(self._run_metric, m) for m in self.metrics]
        deadline = None if timeout is None else time.monotonic() + timeout
        timed_out = f"Timed out after {timeout}s"

        services = []
        for probe, future in zip(self.probes, probe_futures):
            try:
                services.append(self._collect(future, deadline))
            except FutureTimeoutError:
                future.cancel()
                logger.warning("Probe %s timed out after %ss", probe.name, timeout)
                services.append(ProbeResult.error(probe.name, timed_out))

        system_info = []
        for metric, future in zip(self.metrics, metric_futures):
            try:
                system_info.append(self._collect(future, deadline))
            except FutureTimeoutError:
                future.cancel()
                logger.warning("Metric %s timed out after %ss", metric.key, timeout)
                system_info.append(MetricResult.warning(metric.key, timed_out))

        return self._report(services, system_info)
