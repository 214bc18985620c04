from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "HEALTH_",
        "extra": "ignore",
    }

    # Dependency probes (a probe is only registered when its target is set)
    database_path: str = ""  # sqlite file, ":memory:" also works
    redis_url: str = ""  # redis://host:6379/0, enables Redis + Cache probes
    http_check_url: str = ""
    http_check_name: str = "Http"
    probe_timeout: float = 5.0  # seconds, passed to each driver

    # Cache round trip
    cache_key: str = "health:check"
    cache_ttl: int = 10  # seconds

    # System metrics
    storage_path: str = "/"
    storage_warn_percent: float = 85.0
    memory_warn_percent: float = 90.0
    memory_limit_mb: float = 0  # 0 = rlimit, then physical memory
    config_file: str = ".env"  # reported by the config_file metric when present

    # Aggregation
    # run checks in a shared thread pool, waiting probe_timeout for each;
    # a check that stays hung keeps one worker busy until it returns
    concurrent: bool = False

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"


settings = Settings()
