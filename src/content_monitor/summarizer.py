"""
要約オーケストレーター

関連モジュール:
- src/content_monitor/oracle.py - LLMによる要約生成
- src/content_monitor/repository.py - 要約の永続化
- src/content_monitor/storage/manager.py - 外部ストアへのベストエフォート複製

1コンテンツにつき要約は最大1件。既に要約がある場合はオラクルを呼ばずに既存の要約を返す。
同一コンテンツへの同時要求はプロセス内ロックで直列化し、
プロセス間の競合はsummariesテーブルの一意制約で検出する。
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Sequence, Tuple

from .exceptions import (
    ContentMonitorError,
    ContentNotFoundError,
    FetchError,
    MissingContentError,
)
from .fetchers.youtube import TranscriptProvider, extract_video_id
from .models import ContentItem, ContentKind, Summary, SummaryResult
from .oracle import SummarizationOracle, normalize_oracle_response
from .repository import ContentRepository
from .storage.manager import StorageFanout

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTENT_CHARS = 8000


class SummarizationOrchestrator:
    """コンテンツ1件を要約して保存する"""

    def __init__(
        self,
        repository: ContentRepository,
        oracle: SummarizationOracle,
        transcript_provider: Optional[TranscriptProvider] = None,
        max_content_chars: int = DEFAULT_MAX_CONTENT_CHARS,
        replicator: Optional[StorageFanout] = None,
        auto_replicate_providers: Sequence[str] = (),
    ):
        """
        初期化

        Args:
            repository: データ永続化
            oracle: 要約オラクル
            transcript_provider: 本文のない動画の文字起こし取得
            max_content_chars: オラクルに渡す本文の最大文字数
            replicator: 要約作成後の複製先
            auto_replicate_providers: 要約作成後に自動で複製するプロバイダ名
        """
        self.repository = repository
        self.oracle = oracle
        self.transcript_provider = transcript_provider
        self.max_content_chars = max_content_chars
        self.replicator = replicator
        self.auto_replicate_providers = list(auto_replicate_providers)

        self._locks_guard = threading.Lock()
        self._item_locks: Dict[int, Tuple[threading.Lock, int]] = {}

    @contextmanager
    def _item_lock(self, content_item_id: int) -> Iterator[None]:
        """コンテンツID単位のロック（使用者がいなくなったら破棄）"""
        with self._locks_guard:
            lock, users = self._item_locks.get(content_item_id, (threading.Lock(), 0))
            self._item_locks[content_item_id] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                lock, users = self._item_locks[content_item_id]
                if users <= 1:
                    del self._item_locks[content_item_id]
                else:
                    self._item_locks[content_item_id] = (lock, users - 1)

    def truncate(self, text: str) -> str:
        """オラクルに渡す本文を上限文字数で切り詰める"""
        return text[: self.max_content_chars]

    def load_text(self, item: ContentItem) -> str:
        """
        要約対象テキストを取得（本文がない動画は文字起こしを取得）

        Raises:
            MissingContentError: テキストが得られない場合
            FetchError: 文字起こしの取得に失敗した場合
        """
        text = (item.content or "").strip()
        if not text and item.kind == ContentKind.VIDEO and self.transcript_provider:
            video_id = item.metadata.get("video_id") or extract_video_id(item.locator)
            if video_id:
                try:
                    text = (self.transcript_provider.get_transcript(video_id) or "").strip()
                except Exception as e:
                    logger.warning(f"Transcript fetch failed for video {video_id}: {e}")
                    raise FetchError(
                        f"Failed to fetch transcript for video {video_id}: {e!r}"
                    ) from e

        if not text:
            raise MissingContentError("No content available for this item")
        return text

    def summarize(self, content_item_id: int, owner: Optional[str] = None) -> SummaryResult:
        """
        コンテンツを要約して保存

        Args:
            content_item_id: 対象コンテンツID
            owner: 要約を要求したユーザー（省略時はソースの所有者）

        Returns:
            要約結果（created=Falseは既存の要約を返したことを示す）

        Raises:
            ContentNotFoundError: コンテンツが存在しない
            MissingContentError: 要約するテキストがない
            FetchError: 文字起こしの取得に失敗
            OracleError: オラクルの失敗（要約は保存されない）
        """
        item = self.repository.get_item(content_item_id)
        if item is None:
            raise ContentNotFoundError(f"Content item not found: {content_item_id}")

        with self._item_lock(content_item_id):
            existing = self.repository.get_summary_for_item(content_item_id)
            if existing is not None:
                logger.debug(f"Content item {content_item_id} already summarized")
                return SummaryResult(
                    content_item_id=content_item_id, summary=existing, created=False
                )

            text = self.truncate(self.load_text(item))
            raw = self.oracle.summarize(item, text)
            fields = normalize_oracle_response(raw)

            summary = Summary(
                content_item_id=content_item_id,
                owner=owner or self._source_owner(item),
                model=self.oracle.model_name,
                **fields,
            )
            summary_id = self.repository.add_summary(summary)
            if summary_id is None:
                # 別プロセスが先に保存した
                existing = self.repository.get_summary_for_item(content_item_id)
                if existing is None:
                    raise ContentMonitorError(
                        f"Summary insert for item {content_item_id} conflicted but no row found"
                    )
                return SummaryResult(
                    content_item_id=content_item_id, summary=existing, created=False
                )

            summary = summary.model_copy(update={"id": summary_id})
            logger.info(f"Created summary {summary_id} for content item {content_item_id}")

        if self.replicator is not None and self.auto_replicate_providers:
            self.replicator.try_replicate(summary_id, self.auto_replicate_providers)

        return SummaryResult(content_item_id=content_item_id, summary=summary, created=True)

    def _source_owner(self, item: ContentItem) -> str:
        source = self.repository.get_source(item.source_id)
        return source.owner if source else "unknown"
