"""
コンテンツ監視パイプラインのデータモデル定義

関連モジュール:
- src/content_monitor/repository.py - データ永続化
- src/content_monitor/fetchers/ - ソース別の取得器
- src/content_monitor/summarizer.py - 要約生成
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    """タイムゾーン付きの現在時刻（UTC）"""
    return datetime.now(timezone.utc)


class SourceKind(str, Enum):
    """監視ソースの種別"""

    YOUTUBE = "youtube"
    RSS = "rss"
    NEWSLETTER = "newsletter"


class ContentKind(str, Enum):
    """コンテンツ種別"""

    VIDEO = "video"
    ARTICLE = "article"
    NEWSLETTER = "newsletter"


class Sentiment(str, Enum):
    """要約の感情分類"""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


# ソース種別ごとに生成されるコンテンツ種別
CONTENT_KIND_BY_SOURCE: Dict[SourceKind, ContentKind] = {
    SourceKind.YOUTUBE: ContentKind.VIDEO,
    SourceKind.RSS: ContentKind.ARTICLE,
    SourceKind.NEWSLETTER: ContentKind.NEWSLETTER,
}


class ContentSource(BaseModel):
    """監視対象ソース（YouTubeチャンネル、RSSフィード、メールマガジン）"""

    id: Optional[int] = None
    owner: str = Field(..., description="ソースを登録したユーザーID")
    kind: SourceKind = Field(..., description="ソース種別")
    name: str = Field(..., description="表示名")
    url: str = Field(..., description="取得元URL・チャンネルURL等")
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="種別固有メタデータ（channel_id, feed_url, query, last_checked等）",
    )
    is_active: bool = Field(True, description="監視対象かどうか")
    created_at: datetime = Field(default_factory=utc_now, description="作成日時")
    updated_at: datetime = Field(default_factory=utc_now, description="更新日時")

    @property
    def last_checked(self) -> Optional[str]:
        return self.metadata.get("last_checked")

    class Config:
        from_attributes = True


class CandidateItem(BaseModel):
    """取得器が返す重複チェック前の候補アイテム"""

    locator: str = Field(..., description="ソース内で安定な識別子（URL・メッセージID）")
    title: str = Field(..., description="タイトル")
    content: Optional[str] = Field(None, description="本文・文字起こし")
    published_at: Optional[datetime] = Field(None, description="公開日時")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="種別固有メタデータ")


class ContentItem(BaseModel):
    """取り込み済みコンテンツ（作成後は不変）"""

    id: Optional[int] = None
    source_id: int = Field(..., description="ContentSource.id")
    kind: ContentKind = Field(..., description="コンテンツ種別")
    title: str = Field(..., description="タイトル")
    locator: str = Field(..., description="正規ロケータ（source_idと合わせて重複キー）")
    content: Optional[str] = Field(None, description="本文・文字起こし")
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="著者・公開日時・再生時間・タグ等"
    )
    published_at: Optional[datetime] = Field(None, description="公開日時")
    created_at: datetime = Field(default_factory=utc_now, description="取り込み日時")

    class Config:
        from_attributes = True


class Summary(BaseModel):
    """LLMが生成した要約（1コンテンツにつき最大1件）"""

    id: Optional[int] = None
    content_item_id: int = Field(..., description="ContentItem.id")
    owner: str = Field(..., description="要約を要求したユーザーID")
    summary: str = Field(..., description="要約本文")
    key_points: List[str] = Field(default_factory=list, description="要点（順序あり）")
    topics: List[str] = Field(default_factory=list, description="トピック（重複なし）")
    sentiment: Sentiment = Field(Sentiment.NEUTRAL, description="感情分類")
    confidence: int = Field(0, description="信頼度 0-100")
    model: Optional[str] = Field(None, description="生成に使用したモデル名")
    created_at: datetime = Field(default_factory=utc_now, description="作成日時")

    @field_validator("topics")
    @classmethod
    def _dedupe_topics(cls, value: List[str]) -> List[str]:
        seen: List[str] = []
        for topic in value:
            if topic not in seen:
                seen.append(topic)
        return seen

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: int) -> int:
        return max(0, min(100, value))

    class Config:
        from_attributes = True


class StorageLocation(BaseModel):
    """外部ドキュメントストアへの複製先"""

    id: Optional[int] = None
    summary_id: int = Field(..., description="Summary.id")
    provider: str = Field(..., description="プロバイダ名（notion, google_docs）")
    external_id: str = Field(..., description="プロバイダ側のID")
    url: Optional[str] = Field(None, description="プロバイダ側のURL")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="プロバイダ固有メタデータ")
    created_at: datetime = Field(default_factory=utc_now, description="作成日時")

    class Config:
        from_attributes = True


class MonitorResult(BaseModel):
    """1ソース分の監視結果"""

    source_id: int
    source_name: str = ""
    kind: Optional[SourceKind] = None
    success: bool = True
    candidates_seen: int = 0
    new_items_created: int = 0
    new_item_ids: List[int] = Field(default_factory=list)
    error: Optional[str] = None


class CycleResult(BaseModel):
    """監視サイクル全体の集計結果"""

    sources_processed: int = 0
    results: List[MonitorResult] = Field(default_factory=list)
    successful: int = 0
    failed: int = 0
    total_new_items: int = 0
    summarized_item_ids: List[int] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: List[MonitorResult]) -> "CycleResult":
        return cls(
            sources_processed=len(results),
            results=results,
            successful=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
            total_new_items=sum(r.new_items_created for r in results),
        )


class SummaryResult(BaseModel):
    """要約要求の結果（エラー時はsummary=None）"""

    content_item_id: int
    summary: Optional[Summary] = None
    created: bool = False
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.summary is not None and self.error is None


class ProviderResult(BaseModel):
    """プロバイダ単位の複製結果"""

    provider: str
    success: bool
    location: Optional[StorageLocation] = None
    error: Optional[str] = None


class ReplicationResult(BaseModel):
    """複製処理全体の結果"""

    summary_id: int
    results: List[ProviderResult] = Field(default_factory=list)
    success: bool = False
    error: Optional[str] = None

    @property
    def partial(self) -> bool:
        return self.success and any(not r.success for r in self.results)


class QueryAnswer(BaseModel):
    """要約に対する対話的な問い合わせの回答"""

    query: str
    answer: str
    summary_ids: List[int] = Field(default_factory=list)
    confidence: int = 0
    conversation_id: Optional[int] = None


class Conversation(BaseModel):
    """問い合わせ履歴（1問1答）"""

    id: Optional[int] = None
    owner: str = Field(..., description="質問したユーザー")
    query: str = Field(..., description="質問文")
    response: str = Field(..., description="回答文")
    summary_ids: List[int] = Field(default_factory=list, description="参照した要約ID")
    confidence: int = Field(0, description="回答の信頼度")
    created_at: datetime = Field(default_factory=utc_now, description="作成日時")

    class Config:
        from_attributes = True
