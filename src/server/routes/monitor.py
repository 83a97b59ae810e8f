"""Monitoring endpoints."""

from typing import Optional

from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool

from src.content_monitor import ContentMonitorError, CycleResult, MonitorResult

from ..dependencies import get_orchestrator, to_http_exception
from ..schemas import MonitorRunRequest

router = APIRouter(prefix="/api/monitor", tags=["monitor"])


@router.post("/run", response_model=CycleResult)
async def run_cycle(request: Optional[MonitorRunRequest] = None):
    """Run one monitoring cycle over all active sources"""
    request = request or MonitorRunRequest()

    def _run():
        return get_orchestrator().run_cycle(
            owner=request.owner, auto_summarize=request.auto_summarize
        )

    return await run_in_threadpool(_run)


@router.post("/sources/{source_id}", response_model=MonitorResult)
async def monitor_source(source_id: int):
    """Monitor a single source"""
    def _monitor():
        try:
            return get_orchestrator().monitor_source(source_id)
        except ContentMonitorError as exc:
            raise to_http_exception(exc) from exc

    return await run_in_threadpool(_monitor)


def register_monitor_routes(app):
    """監視ルートを登録"""
    app.include_router(router)
