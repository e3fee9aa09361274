from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

ENV_PREFIX = "TABLEGATE_"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    return default if raw is None else float(raw)


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    return default if raw is None else int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


@dataclass
class StoreConfig:
    url: str = "sqlite:///.data/main.db"
    busy_timeout_s: float = 5.0
    bootstrap_schema: bool = True
    echo: bool = False

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.url:
            raise ValueError("url cannot be empty")
        if self.busy_timeout_s <= 0:
            raise ValueError("busy_timeout_s must be > 0")

    @classmethod
    def from_env(cls) -> "StoreConfig":
        return cls(
            url=_env("DB_URL", cls.url),
            busy_timeout_s=_env_float("DB_BUSY_TIMEOUT_S", cls.busy_timeout_s),
            bootstrap_schema=_env_bool("DB_BOOTSTRAP", cls.bootstrap_schema),
            echo=_env_bool("DB_ECHO", cls.echo),
        )


COUNTER_BACKENDS = ("file", "redis")


@dataclass
class CounterConfig:
    backend: str = "file"
    path: str = "stats.json"
    flush_interval_s: float = 5.0
    redis_url: Optional[str] = None
    redis_prefix: str = "tablegate:stats"

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.backend not in COUNTER_BACKENDS:
            raise ValueError(
                f"backend must be one of {COUNTER_BACKENDS}, got {self.backend!r}"
            )
        if self.backend == "redis" and not self.redis_url:
            raise ValueError("redis_url is required when backend is 'redis'")
        if self.flush_interval_s <= 0:
            raise ValueError("flush_interval_s must be > 0")

    @classmethod
    def from_env(cls) -> "CounterConfig":
        return cls(
            backend=_env("COUNTER_BACKEND", cls.backend),
            path=_env("STATS_PATH", cls.path),
            flush_interval_s=_env_float("COUNTER_FLUSH_INTERVAL_S", cls.flush_interval_s),
            redis_url=_env("REDIS_URL"),
            redis_prefix=_env("REDIS_PREFIX", cls.redis_prefix),
        )


@dataclass
class ServiceConfig:
    store: StoreConfig = field(default_factory=StoreConfig)
    counter: CounterConfig = field(default_factory=CounterConfig)
    base_path: str = "/api"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.base_path and not self.base_path.startswith("/"):
            raise ValueError("base_path must start with '/'")
        if self.base_path.endswith("/"):
            raise ValueError("base_path must not end with '/'")
        if not 0 < self.port < 65536:
            raise ValueError("port must be in 1..65535")

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        return cls(
            store=StoreConfig.from_env(),
            counter=CounterConfig.from_env(),
            base_path=_env("BASE_PATH", cls.base_path),
            log_level=_env("LOG_LEVEL", cls.log_level),
            host=_env("HOST", cls.host),
            port=_env_int("PORT", cls.port),
        )
