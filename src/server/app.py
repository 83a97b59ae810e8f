"""FastAPI application bootstrap."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.content_monitor.logger import setup_logger

from .dependencies import get_config, get_interaction_service, get_orchestrator, get_repository
from .routes import (
    register_content_routes,
    register_interaction_routes,
    register_monitor_routes,
    register_source_routes,
    register_system_routes,
)

__all__ = [
    "app",
    "create_app",
    "get_interaction_service",
    "get_orchestrator",
    "get_repository",
]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="Content Monitor API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def configure_logging() -> None:
        config = get_config()
        setup_logger(log_level=config.log_level, log_file=config.log_file)

    register_source_routes(app)
    register_monitor_routes(app)
    register_content_routes(app)
    register_interaction_routes(app)
    register_system_routes(app)

    return app


app = create_app()
