"""Health subsystem: severity model, probes, metrics, aggregator."""

from .aggregator import HealthAggregator
from .metrics import ConfigFileMetric, MemoryMetric, StorageMetric, SystemMetric
from .models import HealthReport, MetricResult, ProbeResult, Severity, worse_of
from .probes import CacheProbe, DatabaseProbe, HttpProbe, PingProbe, Probe
from .registry import build_aggregator
