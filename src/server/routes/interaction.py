"""Interaction endpoints."""

from __future__ import annotations

import asyncio
from typing import Dict, List

from fastapi import FastAPI, Query

from src.content_monitor.models import Conversation, QueryAnswer

from ..dependencies import get_interaction_service
from ..schemas import AskRequest


def register_interaction_routes(app: FastAPI) -> None:
    """Register question-answering endpoints."""

    @app.post("/api/interaction/ask", response_model=QueryAnswer)
    async def ask(request: AskRequest) -> QueryAnswer:
        """Answer a question from the user's stored summaries."""
        service = get_interaction_service()
        return await asyncio.to_thread(
            service.ask,
            request.owner,
            request.query,
            request.limit,
            request.use_llm,
        )

    @app.get("/api/interaction/history", response_model=List[Conversation])
    async def get_history(
        owner: str = Query(..., min_length=1),
        limit: int = Query(default=50, ge=1, le=200),
    ) -> List[Conversation]:
        """Return the user's past questions, newest first."""
        service = get_interaction_service()
        return await asyncio.to_thread(service.history, owner, limit)

    @app.delete("/api/interaction/history")
    async def clear_history(owner: str = Query(..., min_length=1)) -> Dict[str, int]:
        """Delete the user's conversation history."""
        service = get_interaction_service()
        deleted = await asyncio.to_thread(service.clear_history, owner)
        return {"deleted": deleted}
