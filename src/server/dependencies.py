"""Dependency helpers shared across FastAPI routes."""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from fastapi import HTTPException

from src.content_monitor import (
    ContentMonitorError,
    ContentNotFoundError,
    ContentOrchestrator,
    FetchError,
    ContentRepository,
    InteractionService,
    MissingContentError,
    MonitorConfig,
    OracleError,
    ReplicationError,
    SourceNotFoundError,
)
from src.content_monitor.factory import build_interaction, build_orchestrator

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_config() -> MonitorConfig:
    """Load configuration once per process."""
    return MonitorConfig.from_yaml()


@lru_cache(maxsize=1)
def get_repository() -> ContentRepository:
    """Singleton ContentRepository (CONTENT_MONITOR_DB_PATH wins over the config file)."""
    return ContentRepository(os.getenv("CONTENT_MONITOR_DB_PATH") or get_config().db_path)


@lru_cache(maxsize=1)
def get_orchestrator() -> ContentOrchestrator:
    """Lazily create a singleton ContentOrchestrator."""
    return build_orchestrator(get_config(), repository=get_repository())


@lru_cache(maxsize=1)
def get_interaction_service() -> InteractionService:
    """Lazily create a singleton InteractionService."""
    return build_interaction(get_config(), get_repository())


def reset_dependencies() -> None:
    """Drop cached singletons (used when the database path changes)."""
    get_interaction_service.cache_clear()
    get_orchestrator.cache_clear()
    get_repository.cache_clear()
    get_config.cache_clear()


def to_http_exception(exc: ContentMonitorError) -> HTTPException:
    """Map domain errors to HTTP status codes."""
    if isinstance(exc, (SourceNotFoundError, ContentNotFoundError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, MissingContentError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, (OracleError, ReplicationError, FetchError)):
        return HTTPException(status_code=502, detail=str(exc))
    logger.error("Unhandled content monitor error: %s", exc)
    return HTTPException(status_code=500, detail=str(exc))
