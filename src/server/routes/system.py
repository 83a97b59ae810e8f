"""Status and health endpoints."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from fastapi import FastAPI, Query

from ..dependencies import get_orchestrator
from ..schemas import HealthResponse


def register_system_routes(app: FastAPI) -> None:
    """Register status and health endpoints."""

    @app.get("/api/status")
    async def status(owner: Optional[str] = Query(None)) -> Dict[str, Any]:
        """Active sources, recent summaries and last check times."""
        return await asyncio.to_thread(get_orchestrator().status, owner)

    @app.get("/api/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Database reachability and configured fetchers/stores."""
        return HealthResponse(**await asyncio.to_thread(get_orchestrator().health))
