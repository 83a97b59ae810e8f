"""Content item and summary endpoints."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.concurrency import run_in_threadpool

from src.content_monitor import (
    ContentItem,
    ContentKind,
    ContentMonitorError,
    ReplicationResult,
    Summary,
)

from ..dependencies import get_orchestrator, get_repository, to_http_exception
from ..schemas import ReplicateRequest, SummarizeRequest, SummarizeResponse

router = APIRouter(prefix="/api", tags=["content"])


@router.get("/items", response_model=List[ContentItem])
async def list_items(
    source_id: Optional[int] = Query(None),
    kind: Optional[ContentKind] = Query(None),
    unsummarized: bool = Query(False),
    limit: int = Query(50, ge=1, le=500),
):
    """取り込み済みコンテンツを一覧取得"""
    def _list():
        return get_repository().list_items(
            source_id=source_id, kind=kind, unsummarized_only=unsummarized, limit=limit
        )

    return await run_in_threadpool(_list)


@router.post("/items/{item_id}/summarize", response_model=SummarizeResponse)
async def summarize_item(item_id: int, request: Optional[SummarizeRequest] = None):
    """コンテンツを要約（既に要約済みなら既存の要約を返す）"""
    owner = request.owner if request else None

    def _summarize():
        try:
            result = get_orchestrator().summarizer.summarize(item_id, owner)
        except ContentMonitorError as exc:
            raise to_http_exception(exc) from exc
        return SummarizeResponse(
            content_item_id=item_id,
            created=result.created,
            summary=result.summary.model_dump(mode="json"),
        )

    return await run_in_threadpool(_summarize)


@router.get("/summaries", response_model=List[Summary])
async def list_summaries(
    owner: Optional[str] = Query(None),
    query: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=200),
):
    """要約を一覧取得（queryを指定するとキーワード検索）"""
    def _list():
        repo = get_repository()
        if query:
            return repo.search_summaries(query, owner=owner, limit=limit)
        return repo.list_summaries(owner=owner, limit=limit)

    return await run_in_threadpool(_list)


@router.post("/summaries/{summary_id}/replicate", response_model=ReplicationResult)
async def replicate_summary(summary_id: int, request: ReplicateRequest):
    """要約を外部ストアに複製"""
    def _replicate():
        try:
            result = get_orchestrator().replicate(summary_id, request.providers)
        except ContentMonitorError as exc:
            raise to_http_exception(exc) from exc
        if not result.success:
            raise HTTPException(status_code=502, detail=result.error)
        return result

    return await run_in_threadpool(_replicate)


def register_content_routes(app):
    """コンテンツ・要約ルートを登録"""
    app.include_router(router)
