"""VeloTrack server — main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, position source, advisory, and API layers.
"""

from __future__ import annotations

import functools
import logging
from contextlib import asynccontextmanager
from typing import IO

import structlog
from fastapi import FastAPI

from velotrack.advisory.base import AdvisoryClient
from velotrack.advisory.disabled import DisabledAdvisoryClient
from velotrack.advisory.gemini import GeminiAdvisoryClient
from velotrack.api.monitoring import router as monitoring_router
from velotrack.api.rides import router as rides_router
from velotrack.config import AppConfig, load_config
from velotrack.core.aggregator import RideAggregator
from velotrack.core.session import RideSession
from velotrack.source.asyncio_source import AsyncioPositionSource

log = structlog.get_logger()

# Module-level singletons (set during startup)
_session: RideSession | None = None
_config: AppConfig | None = None


def get_session() -> RideSession:
    assert _session is not None, "Server not initialized"
    return _session


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def _setup_logging(config: AppConfig) -> IO[str] | None:
    """Configure structlog based on the logging config.

    Returns the open log file when logging to a file; the caller closes it.
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    extra = {}
    log_file = None
    if config.logging.file:
        log_file = open(config.logging.file, "a")
        extra["logger_factory"] = structlog.WriteLoggerFactory(file=log_file)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
        **extra,
    )
    return log_file


def build_advisor(config: AppConfig) -> AdvisoryClient:
    if config.advisory.backend == "none":
        return DisabledAdvisoryClient()
    if config.advisory.backend != "gemini":
        raise ValueError(f"unknown advisory backend: {config.advisory.backend!r}")
    return GeminiAdvisoryClient(
        api_key=config.advisory.api_key,
        model=config.advisory.model,
        base_url=config.advisory.base_url,
        timeout_seconds=config.advisory.timeout_seconds,
        route_sample_every=config.ride.route_sample_every,
    )


def build_session(config: AppConfig, advisor: AdvisoryClient | None = None) -> RideSession:
    return RideSession(
        aggregator=RideAggregator(),
        advisor=advisor if advisor is not None else build_advisor(config),
        source_factory=functools.partial(
            AsyncioPositionSource, max_size=config.ride.source_queue_size,
        ),
        heartbeat_interval=config.ride.heartbeat_interval_seconds,
        min_points_for_analysis=config.ride.min_points_for_analysis,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    global _session, _config

    _config = load_config()
    log_file = _setup_logging(_config)

    log.info("server_starting",
             env=_config.server.env,
             advisory_backend=_config.advisory.backend,
             heartbeat_interval=_config.ride.heartbeat_interval_seconds)

    _session = build_session(_config)

    log.info("server_started",
             host=_config.server.host,
             port=_config.server.port)

    yield

    # Shutdown
    if _session.aggregator.is_recording:
        await _session.stop()
    log.info("server_stopped")
    if log_file is not None:
        log_file.close()


app = FastAPI(
    title="VeloTrack",
    description="Live ride telemetry server",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(rides_router)
app.include_router(monitoring_router)
