"""Default check registration. Builds the probe and metric set from settings.

Order is fixed: Database, Redis, Cache, Http, then storage, memory, config file.
A dependency probe is registered only when its target is configured.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from functools import partial

import redis

from healthcheck.config import Settings

from .aggregator import HealthAggregator
from .metrics import ConfigFileMetric, MemoryMetric, StorageMetric, SystemMetric, config_file_resolver
from .probes import CacheProbe, DatabaseProbe, HttpProbe, PingProbe, Probe, RedisKeyValueStore

logger = logging.getLogger(__name__)


def sqlite_connector(path: str, timeout: float = 5.0) -> Callable[[], sqlite3.Connection]:
    """Connection factory that fails instead of creating a missing database file."""
    if path == ":memory:":
        return partial(sqlite3.connect, path, timeout=timeout)
    return partial(sqlite3.connect, f"file:{path}?mode=rw", timeout=timeout, uri=True)


def default_probes(cfg: Settings) -> list[Probe]:
    probes: list[Probe] = []

    if cfg.database_path:
        probes.append(DatabaseProbe(sqlite_connector(cfg.database_path, cfg.probe_timeout)))

    if cfg.redis_url:
        client = redis.Redis.from_url(
            cfg.redis_url,
            socket_timeout=cfg.probe_timeout,
            socket_connect_timeout=cfg.probe_timeout,
        )
        probes.append(PingProbe(client))
        probes.append(CacheProbe(RedisKeyValueStore(client), key=cfg.cache_key, ttl=cfg.cache_ttl))

    if cfg.http_check_url:
        probes.append(HttpProbe(cfg.http_check_url, name=cfg.http_check_name, timeout=cfg.probe_timeout))

    return probes


def default_metrics(cfg: Settings) -> list[SystemMetric]:
    return [
        StorageMetric(path=cfg.storage_path, warn_percent=cfg.storage_warn_percent),
        MemoryMetric(warn_percent=cfg.memory_warn_percent, limit_mb=cfg.memory_limit_mb or None),
        ConfigFileMetric(config_file_resolver(cfg.config_file)),
    ]


def build_aggregator(cfg: Settings) -> HealthAggregator:
    aggregator = HealthAggregator(default_probes(cfg), default_metrics(cfg))
    logger.info(
        "Health checks registered: probes=%s metrics=%s",
        [p.name for p in aggregator.probes],
        [m.key for m in aggregator.metrics],
    )
    return aggregator
