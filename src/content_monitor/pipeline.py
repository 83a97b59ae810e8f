"""
取り込みパイプライン

関連モジュール:
- src/content_monitor/fetchers/ - 候補アイテムの取得
- src/content_monitor/repository.py - 重複チェック（フィンガープリント）と挿入
- src/content_monitor/orchestrator.py - 監視サイクルからの呼び出し

1ソースの処理は逐次で行い、最後に必ず最終確認日時を更新する。
取得エラーは例外として外へ出さず MonitorResult に記録する。
"""

import logging
import threading
from typing import Dict, Mapping, Optional

from .exceptions import ContentMonitorError, FetchError
from .fetchers.base import BaseFetcher
from .fetchers.mailbox import message_locator, parse_email_content
from .models import (
    CONTENT_KIND_BY_SOURCE,
    CandidateItem,
    ContentItem,
    ContentSource,
    MonitorResult,
    SourceKind,
)
from .repository import ContentRepository

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """取得 → 重複チェック → 新規挿入 → 確認日時更新"""

    def __init__(
        self,
        repository: ContentRepository,
        fetchers: Mapping[SourceKind, BaseFetcher],
    ):
        self.repository = repository
        self.fetchers: Dict[SourceKind, BaseFetcher] = dict(fetchers)

    def monitor_source(
        self,
        source: ContentSource,
        cancel_event: Optional[threading.Event] = None,
    ) -> MonitorResult:
        """
        1ソースを監視して新規アイテムを取り込む

        Args:
            source: 監視対象ソース
            cancel_event: セットされたら残りの候補を処理せず終了

        Returns:
            候補数・新規作成数・エラーを含む結果
        """
        result = MonitorResult(
            source_id=source.id, source_name=source.name, kind=source.kind
        )

        fetcher = self.fetchers.get(source.kind)
        if fetcher is None:
            logger.warning(f"Unknown source type: {source.kind}")
            result.success = False
            result.error = f"Unknown source type: {source.kind.value}"
            self.repository.update_last_checked(source.id)
            return result

        try:
            # 取得失敗時に部分結果を取り込まないよう先に全件取得する
            candidates = list(fetcher.fetch(source))
        except FetchError as e:
            logger.error(f"Fetch failed for source {source.id} ({source.name}): {e}")
            result.success = False
            result.error = str(e)
            self.repository.update_last_checked(source.id)
            return result
        except Exception as e:
            logger.error(
                f"Unexpected fetch error for source {source.id} ({source.name}): {e}",
                exc_info=True,
            )
            result.success = False
            result.error = f"{type(e).__name__}: {e}"
            self.repository.update_last_checked(source.id)
            return result

        result.candidates_seen = len(candidates)

        for candidate in candidates:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Monitoring of source {source.id} cancelled")
                result.success = False
                result.error = "cancelled"
                break

            item_id = self._ingest_candidate(source, candidate)
            if item_id is not None:
                result.new_items_created += 1
                result.new_item_ids.append(item_id)
                logger.info(f"Added new {source.kind.value} item: {candidate.title}")

        self.repository.update_last_checked(source.id)
        return result

    def _ingest_candidate(
        self, source: ContentSource, candidate: CandidateItem
    ) -> Optional[int]:
        """未取り込みなら挿入してIDを返す（取り込み済みならNone）"""
        if self.repository.exists(source.id, candidate.locator):
            return None

        item = ContentItem(
            source_id=source.id,
            kind=CONTENT_KIND_BY_SOURCE[source.kind],
            title=candidate.title,
            locator=candidate.locator,
            content=candidate.content,
            metadata=candidate.metadata,
            published_at=candidate.published_at,
        )
        # 一意制約違反はNone（既に存在）として扱われる
        return self.repository.add_item(item)

    def ingest_email(self, source: ContentSource, raw_email: str) -> Optional[int]:
        """
        生のメールテキストを直接取り込む

        Returns:
            新規作成されたアイテムID（取り込み済みの場合はNone）
        """
        if source.kind != SourceKind.NEWSLETTER:
            raise ContentMonitorError(
                f"Source {source.id} is not a newsletter source"
            )

        message = parse_email_content(raw_email)
        candidate = CandidateItem(
            locator=message_locator(message.message_id),
            title=message.subject,
            content=message.body,
            published_at=message.date,
            metadata={
                "author": message.sender,
                "published_at": message.date.isoformat(),
            },
        )
        return self._ingest_candidate(source, candidate)
