"""Content source endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query

from src.content_monitor import ContentSource, SourceKind

from ..dependencies import get_repository
from ..schemas import SourceCreateRequest

logger = logging.getLogger(__name__)


def register_source_routes(app: FastAPI) -> None:
    """Register content source endpoints."""

    @app.get("/api/sources", response_model=List[ContentSource])
    async def list_sources(
        owner: Optional[str] = Query(None),
        kind: Optional[SourceKind] = Query(None),
        include_inactive: bool = Query(False),
    ) -> List[ContentSource]:
        """List registered sources in registration order."""
        repo = get_repository()
        return await asyncio.to_thread(
            repo.list_sources, owner, not include_inactive, kind
        )

    @app.post("/api/sources", response_model=ContentSource)
    async def create_source(request: SourceCreateRequest) -> ContentSource:
        """Register a new source."""
        repo = get_repository()
        source = ContentSource(
            owner=request.owner,
            kind=request.kind,
            name=request.name,
            url=request.url,
            metadata=request.metadata,
        )
        created = await asyncio.to_thread(repo.add_source, source)
        logger.info("Registered %s source %s (%s)", created.kind.value, created.id, created.name)
        return created

    @app.post("/api/sources/{source_id}/deactivate")
    async def deactivate_source(source_id: int):
        """Stop monitoring a source. Its items and summaries are kept."""
        repo = get_repository()
        deactivated = await asyncio.to_thread(repo.deactivate_source, source_id)
        if not deactivated:
            raise HTTPException(status_code=404, detail="Source not found")
        return {"deactivated": True, "id": source_id}
