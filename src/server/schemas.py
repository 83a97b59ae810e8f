"""Pydantic schemas for the FastAPI server."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.content_monitor import SourceKind


class SourceCreateRequest(BaseModel):
    """Request body for registering a content source."""

    owner: str = Field(..., description="User who owns the source")
    kind: SourceKind = Field(..., description="youtube / rss / newsletter")
    name: str = Field(..., min_length=1, description="Display name")
    url: str = Field(..., min_length=1, description="Channel URL, feed URL or mailbox label")
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Kind-specific settings (channel_id, feed_url, query, sender)",
    )


class MonitorRunRequest(BaseModel):
    """Request body for running a monitoring cycle."""

    owner: Optional[str] = Field(default=None, description="Only monitor this user's sources")
    auto_summarize: bool = Field(default=False, description="Summarize new items in the cycle")


class SummarizeRequest(BaseModel):
    """Request body for summarizing a content item."""

    owner: Optional[str] = Field(
        default=None, description="Requesting user (defaults to the source owner)"
    )


class SummarizeResponse(BaseModel):
    """Response for the summarize endpoint."""

    content_item_id: int
    created: bool
    summary: Dict[str, Any]


class ReplicateRequest(BaseModel):
    """Request body for replicating a summary."""

    providers: List[str] = Field(..., min_length=1, description="notion / google_docs")


class AskRequest(BaseModel):
    """Request body for asking a question about stored summaries."""

    owner: str
    query: str = Field(..., min_length=1)
    limit: int = Field(default=5, ge=1, le=50)
    use_llm: bool = True


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str
    database: bool
    fetchers: Dict[str, bool]
    storage: Dict[str, bool]
