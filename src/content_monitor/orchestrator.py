"""
監視オーケストレーター

関連モジュール:
- src/content_monitor/pipeline.py - 1ソースの取り込み
- src/content_monitor/summarizer.py - 要約生成
- src/content_monitor/storage/manager.py - 外部ストアへの複製

監視サイクルでは有効なソースを並列に処理する（ソース内は逐次）。
1ソースの失敗は他のソースに影響せず、結果はソースの登録順で返す。
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import ContentMonitorError, SourceNotFoundError
from .models import CycleResult, MonitorResult, ReplicationResult, SummaryResult
from .pipeline import IngestionPipeline
from .repository import ContentRepository
from .storage.manager import StorageFanout
from .summarizer import SummarizationOrchestrator

logger = logging.getLogger(__name__)


class ContentOrchestrator:
    """監視・要約・複製の入口"""

    def __init__(
        self,
        repository: ContentRepository,
        pipeline: IngestionPipeline,
        summarizer: SummarizationOrchestrator,
        fanout: StorageFanout,
        max_workers: int = 4,
    ):
        self.repository = repository
        self.pipeline = pipeline
        self.summarizer = summarizer
        self.fanout = fanout
        self.max_workers = max(1, max_workers)

    def run_cycle(
        self,
        owner: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
        auto_summarize: bool = False,
    ) -> CycleResult:
        """
        有効な全ソースを監視する

        Args:
            owner: 指定時はそのユーザーのソースのみ
            cancel_event: セットされたら未開始のソースをスキップ
            auto_summarize: 新規アイテムをサイクル内で要約する

        Returns:
            ソースごとの結果（登録順）と集計
        """
        sources = self.repository.list_sources(owner=owner, active_only=True)
        logger.info(f"Starting monitoring cycle for {len(sources)} source(s)")

        def run(source) -> MonitorResult:
            if cancel_event is not None and cancel_event.is_set():
                return MonitorResult(
                    source_id=source.id,
                    source_name=source.name,
                    kind=source.kind,
                    success=False,
                    error="cancelled",
                )
            return self.pipeline.monitor_source(source, cancel_event)

        results: List[MonitorResult] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures: List[Future] = [executor.submit(run, source) for source in sources]
            for source, future in zip(sources, futures):
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error(f"Error monitoring source {source.id} ({source.name}): {e}")
                    results.append(
                        MonitorResult(
                            source_id=source.id,
                            source_name=source.name,
                            kind=source.kind,
                            success=False,
                            error=str(e),
                        )
                    )

        cycle = CycleResult.from_results(results)

        if auto_summarize:
            for result in results:
                for item_id in result.new_item_ids:
                    if cancel_event is not None and cancel_event.is_set():
                        break
                    summary_result = self.summarize(item_id)
                    if summary_result.success:
                        cycle.summarized_item_ids.append(item_id)

        logger.info(
            f"Monitoring cycle completed: {cycle.successful} succeeded, "
            f"{cycle.failed} failed, {cycle.total_new_items} new item(s)"
        )
        return cycle

    def monitor_source(self, source_id: int) -> MonitorResult:
        """
        1ソースを監視する

        Raises:
            SourceNotFoundError: ソースが存在しない・無効
        """
        source = self.repository.get_source(source_id)
        if source is None or not source.is_active:
            raise SourceNotFoundError(f"Source not found or inactive: {source_id}")
        return self.pipeline.monitor_source(source)

    def summarize(self, content_item_id: int, owner: Optional[str] = None) -> SummaryResult:
        """要約を生成（エラーは SummaryResult.error に格納）"""
        try:
            return self.summarizer.summarize(content_item_id, owner)
        except ContentMonitorError as e:
            logger.error(f"Failed to summarize content item {content_item_id}: {e}")
            return SummaryResult(content_item_id=content_item_id, error=str(e))

    def replicate(self, summary_id: int, providers: Sequence[str]) -> ReplicationResult:
        """要約を外部ストアに複製"""
        return self.fanout.replicate(summary_id, providers)

    def status(self, owner: Optional[str] = None) -> Dict[str, Any]:
        """監視状況のスナップショット"""
        sources = self.repository.list_sources(owner=owner, active_only=True)
        summaries = self.repository.list_summaries(owner=owner, limit=10)

        last_activity = None
        if summaries:
            last_activity = summaries[0].created_at.isoformat()

        return {
            "active_sources": len(sources),
            "recent_summaries": len(summaries),
            "last_activity": last_activity,
            "sources": [
                {
                    "id": source.id,
                    "name": source.name,
                    "kind": source.kind.value,
                    "last_checked": source.last_checked,
                }
                for source in sources
            ],
        }

    def health(self) -> Dict[str, Any]:
        """データベース・取得元・ストアの状態"""
        database = self.repository.ping()
        fetchers = {
            kind.value: fetcher.is_configured()
            for kind, fetcher in self.pipeline.fetchers.items()
        }
        stores = {
            name: store.is_configured() for name, store in self.fanout.stores.items()
        }
        return {
            "status": "healthy" if database else "unhealthy",
            "database": database,
            "fetchers": fetchers,
            "storage": stores,
        }
