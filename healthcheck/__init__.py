"""Health-status aggregator: probes, system metrics and one overall report."""

__version__ = "0.1.0"
