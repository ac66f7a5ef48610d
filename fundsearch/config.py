# config.py
"""
Runtime settings read from the environment.
"""

import os
from dataclasses import dataclass

from fundsearch.errors import ConfigError
from fundsearch.utils.loader import DEFAULT_CHUNK_SIZE

DEFAULT_CATALOG_PATH = os.path.join(os.path.dirname(__file__), "Funds_Schema.json")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name, default):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class Settings:
    """Search service configuration"""
    catalog_path: str = DEFAULT_CATALOG_PATH
    chunk_size: int = DEFAULT_CHUNK_SIZE
    synthetic_metrics: bool = True
    eager_init: bool = False
    log_level: str = "INFO"
    port: int = 5000

    def __post_init__(self):
        if not self.catalog_path:
            raise ConfigError("catalog_path is required")
        if self.chunk_size < 1:
            raise ConfigError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if not 0 < self.port < 65536:
            raise ConfigError(f"port out of range: {self.port}")
        self.log_level = self.log_level.upper()
        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ConfigError(f"unknown log level: {self.log_level}")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            catalog_path=os.environ.get("FUND_CATALOG_PATH") or DEFAULT_CATALOG_PATH,
            chunk_size=_env_int("FUND_CATALOG_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            synthetic_metrics=_env_bool("FUND_SYNTHETIC_METRICS", True),
            eager_init=_env_bool("FUND_EAGER_INIT", False),
            log_level=os.environ.get("LOG_LEVEL") or "INFO",
            port=_env_int("PORT", 5000),
        )
