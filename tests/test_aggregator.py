"""Tests for the HealthAggregator: ordering and severity folding."""

from __future__ import annotations

import logging

import pytest

from healthcheck.errors import DuplicateCheckError
from healthcheck.health.aggregator import HealthAggregator
from healthcheck.health.models import Severity

from .conftest import BlockingMetric, BlockingProbe, RaisingProbe, StaticMetric, StaticProbe


def _names(report) -> list[str]:
    return [r.name for r in report.services]


def _keys(report) -> list[str]:
    return [r.key for r in report.system_info]


class TestGather:
    def test_empty(self) -> None:
        report = HealthAggregator().gather()
        assert report.overall_status == "ok"
        assert report.status_code == 200
        assert report.services == ()
        assert report.system_info == ()

    def test_all_ok(self) -> None:
        agg = HealthAggregator(
            [StaticProbe("Database"), StaticProbe("Redis")],
            [StaticMetric("storage"), StaticMetric("memory_used")],
        )
        report = agg.gather()
        assert report.overall_status == "ok"
        assert report.status_code == 200

    def test_registration_order_kept(self) -> None:
        agg = HealthAggregator(
            [StaticProbe("Redis"), StaticProbe("Database", Severity.ERROR, "down"), StaticProbe("Cache")],
            [StaticMetric("storage"), StaticMetric("config_file", Severity.WARNING), StaticMetric("memory_used")],
        )
        report = agg.gather()
        assert _names(report) == ["Redis", "Database", "Cache"]
        assert _keys(report) == ["storage", "config_file", "memory_used"]

    def test_metric_warning_keeps_200(self) -> None:
        agg = HealthAggregator([StaticProbe("Database")], [StaticMetric("storage", Severity.WARNING)])
        report = agg.gather()
        assert report.overall_status == "warning"
        assert report.status_code == 200

    def test_probe_error_gives_503(self) -> None:
        agg = HealthAggregator(
            [StaticProbe("Database", Severity.ERROR, "Connection refused")],
            [StaticMetric("storage", Severity.WARNING)],
        )
        report = agg.gather()
        assert report.overall_status == "error"
        assert report.status_code == 503

    @pytest.mark.parametrize(
        "probe_levels,metric_levels,expected",
        [
            ([Severity.OK], [Severity.OK], Severity.OK),
            ([Severity.OK, Severity.OK], [Severity.WARNING, Severity.OK], Severity.WARNING),
            ([Severity.ERROR, Severity.OK], [Severity.OK], Severity.ERROR),
            ([], [Severity.WARNING], Severity.WARNING),
            ([Severity.OK, Severity.ERROR], [], Severity.ERROR),
        ],
    )
    def test_overall_is_max(self, probe_levels, metric_levels, expected) -> None:
        agg = HealthAggregator(
            [StaticProbe(f"p{i}", s) for i, s in enumerate(probe_levels)],
            [StaticMetric(f"m{i}", s) for i, s in enumerate(metric_levels)],
        )
        report = agg.gather()
        assert report.severity is expected
        assert (report.status_code == 503) == (expected is Severity.ERROR)

    def test_every_check_runs_after_failure(self) -> None:
        later = StaticProbe("Cache")
        agg = HealthAggregator([StaticProbe("Database", Severity.ERROR, "down"), later])
        agg.gather()
        assert later.calls == 1

    def test_raising_probe_is_contained(self, caplog: pytest.LogCaptureFixture) -> None:
        agg = HealthAggregator(
            [RaisingProbe("Database", RuntimeError("driver exploded")), StaticProbe("Redis")],
        )
        with caplog.at_level(logging.ERROR, logger="healthcheck.health.aggregator"):
            report = agg.gather()
        assert _names(report) == ["Database", "Redis"]
        assert report.services[0].severity is Severity.ERROR
        assert report.services[0].message == "driver exploded"
        assert report.services[1].severity is Severity.OK
        assert "Database" in caplog.text

    def test_raising_metric_only_warns(self) -> None:
        class Broken:
            key = "storage"

            def run(self):
                raise OSError("statvfs failed")

        report = HealthAggregator([], [Broken()]).gather()
        assert report.overall_status == "warning"
        assert report.system_info[0].message == "statvfs failed"

    def test_metric_error_is_capped_at_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        agg = HealthAggregator([], [StaticMetric("disk", Severity.ERROR, "boom")])
        with caplog.at_level(logging.WARNING, logger="healthcheck.health.aggregator"):
            report = agg.gather()
        assert report.system_info[0].severity is Severity.WARNING
        assert report.status_code == 200
        assert report.to_dict() == {
            "status": "warning",
            "status_code": 200,
            "info": [],
            "system_info": [{"disk": {"status": "warning", "message": "boom"}}],
        }
        assert "disk" in caplog.text

    def test_probe_warning_becomes_error(self) -> None:
        agg = HealthAggregator([StaticProbe("Queue", Severity.WARNING, "slow")], [StaticMetric("storage")])
        report = agg.gather()
        assert report.services[0].severity is Severity.ERROR
        assert report.to_dict()["status"] == "error"
        assert report.to_dict()["info"] == [{"Queue": {"status": "error", "message": "slow"}}]
        assert report.status_code == 503

    def test_out_of_range_severity_capped_concurrently(self) -> None:
        agg = HealthAggregator(
            [StaticProbe("Queue", Severity.WARNING, "slow")],
            [StaticMetric("disk", Severity.ERROR, "boom")],
        )
        report = agg.gather_concurrent(timeout=5)
        assert [r.severity for r in report.services] == [Severity.ERROR]
        assert [r.severity for r in report.system_info] == [Severity.WARNING]

    def test_idempotent(self) -> None:
        agg = HealthAggregator(
            [StaticProbe("Database"), StaticProbe("Redis", Severity.ERROR, "timeout")],
            [StaticMetric("storage", Severity.WARNING, "90.0% used")],
        )
        assert agg.gather() == agg.gather()

    def test_to_dict_matches_results(self) -> None:
        agg = HealthAggregator([StaticProbe("Database")], [StaticMetric("storage", message="1.0% used")])
        assert agg.gather().to_dict() == {
            "status": "ok",
            "status_code": 200,
            "info": [{"Database": {"status": "up", "message": "good"}}],
            "system_info": [{"storage": {"status": "ok", "message": "1.0% used"}}],
        }


class TestRegistration:
    def test_duplicate_probe_name(self) -> None:
        with pytest.raises(DuplicateCheckError, match="probe registered: Database"):
            HealthAggregator([StaticProbe("Database"), StaticProbe("Database")])

    def test_duplicate_metric_key(self) -> None:
        with pytest.raises(DuplicateCheckError) as exc_info:
            HealthAggregator([], [StaticMetric("storage"), StaticMetric("storage")])
        assert exc_info.value.kind == "metric"
        assert exc_info.value.identifier == "storage"

    def test_probe_and_metric_may_share_identifier(self) -> None:
        HealthAggregator([StaticProbe("storage")], [StaticMetric("storage")])


class TestGatherConcurrent:
    def test_empty(self) -> None:
        assert HealthAggregator().gather_concurrent(timeout=1).status_code == 200

    def test_same_report_as_sequential(self) -> None:
        agg = HealthAggregator(
            [StaticProbe("Database"), StaticProbe("Redis", Severity.ERROR, "timeout"), StaticProbe("Cache")],
            [StaticMetric("storage", Severity.WARNING, "90.0% used"), StaticMetric("memory_used")],
        )
        assert agg.gather_concurrent(timeout=5) == agg.gather()

    def test_timeout_becomes_error_in_order(self) -> None:
        hung = BlockingProbe("Database")
        agg = HealthAggregator([hung, StaticProbe("Redis")], [StaticMetric("storage")])
        try:
            report = agg.gather_concurrent(timeout=0.2)
        finally:
            hung.release.set()

        assert _names(report) == ["Database", "Redis"]
        assert report.services[0].severity is Severity.ERROR
        assert report.services[0].message == "Timed out after 0.2s"
        assert report.services[1].severity is Severity.OK
        assert report.status_code == 503

    def test_raising_probe_contained(self) -> None:
        agg = HealthAggregator([RaisingProbe("Cache", ValueError("bad")), StaticProbe("Redis")])
        report = agg.gather_concurrent(timeout=5)
        assert [r.severity for r in report.services] == [Severity.ERROR, Severity.OK]

    def test_no_timeout_waits(self) -> None:
        agg = HealthAggregator([StaticProbe("Database")], [StaticMetric("storage")])
        assert agg.gather_concurrent().overall_status == "ok"

    def test_metric_timeout_only_warns(self) -> None:
        hung = BlockingMetric("storage")
        agg = HealthAggregator([StaticProbe("Database")], [hung, StaticMetric("memory_used")])
        try:
            report = agg.gather_concurrent(timeout=0.2)
        finally:
            hung.release.set()
            agg.close()

        assert _keys(report) == ["storage", "memory_used"]
        assert report.system_info[0].severity is Severity.WARNING
        assert report.system_info[0].message == "Timed out after 0.2s"
        assert report.system_info[1].severity is Severity.OK
        assert report.overall_status == "warning"
        assert report.status_code == 200

    def test_pool_reused_while_check_stays_hung(self) -> None:
        hung = BlockingProbe("Database")
        agg = HealthAggregator([hung, StaticProbe("Redis")])
        try:
            reports = [agg.gather_concurrent(timeout=0.1) for _ in range(3)]
            executor = agg._executor
            assert executor is not None
            assert len(executor._threads) <= 2
        finally:
            hung.release.set()
            agg.close()

        assert [r.services[0].message for r in reports] == ["Timed out after 0.1s"] * 3
        assert agg._executor is None

    def test_close_without_pool(self) -> None:
        HealthAggregator([StaticProbe("Database")]).close()
