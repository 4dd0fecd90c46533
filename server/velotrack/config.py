"""Server configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: VELO_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    env: str = "dev"  # "dev" or "prod"


@dataclass
class RideConfig:
    heartbeat_interval_seconds: float = 1.0
    source_queue_size: int = 1000
    min_points_for_analysis: int = 5
    route_sample_every: int = 5


@dataclass
class AdvisoryConfig:
    backend: str = "gemini"  # "gemini" or "none"
    api_key: str = ""
    model: str = "gemini-3-flash-preview"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout_seconds: float = 30.0


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"
    file: str = ""


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    ride: RideConfig = field(default_factory=RideConfig)
    advisory: AdvisoryConfig = field(default_factory=AdvisoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "VELO_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "VELO_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "VELO_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "VELO_RIDE_HEARTBEAT_INTERVAL": lambda v: setattr(config.ride, "heartbeat_interval_seconds", float(v)),
        "VELO_RIDE_SOURCE_QUEUE_SIZE": lambda v: setattr(config.ride, "source_queue_size", int(v)),
        "VELO_RIDE_MIN_POINTS_FOR_ANALYSIS": lambda v: setattr(config.ride, "min_points_for_analysis", int(v)),
        "VELO_RIDE_ROUTE_SAMPLE_EVERY": lambda v: setattr(config.ride, "route_sample_every", int(v)),
        "VELO_ADVISORY_BACKEND": lambda v: setattr(config.advisory, "backend", v),
        "VELO_ADVISORY_API_KEY": lambda v: setattr(config.advisory, "api_key", v),
        "VELO_ADVISORY_MODEL": lambda v: setattr(config.advisory, "model", v),
        "VELO_ADVISORY_BASE_URL": lambda v: setattr(config.advisory, "base_url", v),
        "VELO_ADVISORY_TIMEOUT": lambda v: setattr(config.advisory, "timeout_seconds", float(v)),
        "VELO_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "VELO_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
        "VELO_LOG_FILE": lambda v: setattr(config.logging, "file", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    # Try to load YAML
    if config_path is None:
        config_path = Path("config.yaml")
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section in ("server", "ride", "advisory", "logging"):
            target = getattr(config, section)
            for k, v in (raw.get(section) or {}).items():
                if hasattr(target, k):
                    setattr(target, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
