"""
コンテンツ監視データのリポジトリ層

関連モジュール:
- src/content_monitor/models.py - データモデル
- src/content_monitor/pipeline.py - 取り込み処理（重複チェック・挿入）
- src/content_monitor/summarizer.py - 要約の永続化

重複防止はSQLiteの一意制約に任せる:
- content_items: UNIQUE(source_id, locator)
- summaries: UNIQUE(content_item_id)
- storage_locations: UNIQUE(summary_id, provider)

conversations は問い合わせ履歴（一意制約なし）。
"""

import json
import logging
import os
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from .models import (
    ContentItem,
    ContentKind,
    ContentSource,
    Conversation,
    Sentiment,
    SourceKind,
    StorageLocation,
    Summary,
    utc_now,
)

logger = logging.getLogger(__name__)


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _dump_json(value: Any) -> Optional[str]:
    return json.dumps(value, ensure_ascii=False) if value else None


def _load_json(value: Optional[str], default: Any) -> Any:
    return json.loads(value) if value else default


class ContentRepository:
    """ソース・コンテンツ・要約・保存先のCRUD操作を提供するリポジトリ"""

    def __init__(self, db_path: Optional[str] = None):
        root = Path(__file__).resolve().parents[2]
        env_path = os.getenv("CONTENT_MONITOR_DB_PATH")
        if db_path:
            self.db_path = str(db_path)
        elif env_path:
            self.db_path = env_path
        else:
            self.db_path = str(root / "data" / "content_monitor.db")
        self._ensure_db_directory()
        self._init_tables()

    def _ensure_db_directory(self) -> None:
        """DBディレクトリの存在確認・作成"""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        # ワーカースレッドごとに接続を分ける
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_tables(self) -> None:
        """テーブル初期化（存在しない場合のみ作成）"""
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS content_sources (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner TEXT NOT NULL,
                    kind TEXT NOT NULL CHECK (kind IN ('youtube','rss','newsletter')),
                    name TEXT NOT NULL,
                    url TEXT NOT NULL,
                    metadata_json TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_source_owner ON content_sources(owner)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_source_active ON content_sources(is_active)"
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS content_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source_id INTEGER NOT NULL REFERENCES content_sources(id),
                    kind TEXT NOT NULL,
                    title TEXT NOT NULL,
                    locator TEXT NOT NULL,
                    content TEXT,
                    metadata_json TEXT,
                    published_at TEXT,
                    created_at TEXT NOT NULL,
                    UNIQUE(source_id, locator)
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_item_published_at
                ON content_items(published_at DESC)
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_item_kind ON content_items(kind)")

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS summaries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    content_item_id INTEGER NOT NULL UNIQUE REFERENCES content_items(id),
                    owner TEXT NOT NULL,
                    summary TEXT NOT NULL,
                    key_points_json TEXT,
                    topics_json TEXT,
                    sentiment TEXT NOT NULL,
                    confidence INTEGER NOT NULL,
                    model TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_summary_owner ON summaries(owner)"
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_summary_created_at
                ON summaries(created_at DESC)
                """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS storage_locations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    summary_id INTEGER NOT NULL REFERENCES summaries(id),
                    provider TEXT NOT NULL,
                    external_id TEXT NOT NULL,
                    url TEXT,
                    metadata_json TEXT,
                    created_at TEXT NOT NULL,
                    UNIQUE(summary_id, provider)
                )
                """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS conversations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner TEXT NOT NULL,
                    query TEXT NOT NULL,
                    response TEXT NOT NULL,
                    summary_ids_json TEXT,
                    confidence INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_conversation_owner ON conversations(owner)"
            )

    def ping(self) -> bool:
        """DB接続確認"""
        try:
            with self._connect() as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error as e:
            logger.error(f"Database ping failed: {e}")
            return False

    # ------------------------------------------------------------------
    # ソース
    # ------------------------------------------------------------------

    def add_source(self, source: ContentSource) -> ContentSource:
        """ソースを登録し、ID付きで返す"""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO content_sources (
                    owner, kind, name, url, metadata_json,
                    is_active, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    source.owner,
                    source.kind.value,
                    source.name,
                    source.url,
                    _dump_json(source.metadata),
                    1 if source.is_active else 0,
                    source.created_at.isoformat(),
                    source.updated_at.isoformat(),
                ),
            )
            source_id = cursor.lastrowid
        return source.model_copy(update={"id": source_id})

    def get_source(self, source_id: int) -> Optional[ContentSource]:
        """IDでソースを取得"""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM content_sources WHERE id = ?", (source_id,)
            ).fetchone()
            return self._row_to_source(row) if row else None

    def list_sources(
        self,
        owner: Optional[str] = None,
        active_only: bool = False,
        kind: Optional[SourceKind] = None,
    ) -> List[ContentSource]:
        """ソース一覧を取得（登録順）"""
        conditions = []
        params: List[Any] = []

        if owner:
            conditions.append("owner = ?")
            params.append(owner)
        if active_only:
            conditions.append("is_active = 1")
        if kind:
            conditions.append("kind = ?")
            params.append(kind.value)

        where_clause = " AND ".join(conditions) if conditions else "1=1"
        sql = f"SELECT * FROM content_sources WHERE {where_clause} ORDER BY id ASC"

        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_source(row) for row in rows]

    def update_last_checked(
        self, source_id: int, checked_at: Optional[datetime] = None
    ) -> None:
        """ソースの最終確認日時をメタデータに記録"""
        checked_at = checked_at or utc_now()
        with self._connect() as conn:
            row = conn.execute(
                "SELECT metadata_json FROM content_sources WHERE id = ?", (source_id,)
            ).fetchone()
            if row is None:
                return
            metadata = _load_json(row["metadata_json"], {})
            metadata["last_checked"] = checked_at.isoformat()
            conn.execute(
                """
                UPDATE content_sources
                SET metadata_json = ?, updated_at = ?
                WHERE id = ?
                """,
                (_dump_json(metadata), checked_at.isoformat(), source_id),
            )

    def deactivate_source(self, source_id: int) -> bool:
        """ソースを無効化（物理削除はしない）"""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE content_sources
                SET is_active = 0, updated_at = ?
                WHERE id = ?
                """,
                (utc_now().isoformat(), source_id),
            )
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # コンテンツ（フィンガープリント）
    # ------------------------------------------------------------------

    def exists(self, source_id: int, locator: str) -> bool:
        """(source_id, locator) が取り込み済みかどうか"""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM content_items WHERE source_id = ? AND locator = ? LIMIT 1",
                (source_id, locator),
            ).fetchone()
            return row is not None

    def add_item(self, item: ContentItem) -> Optional[int]:
        """
        コンテンツを追加（重複時はスキップ）

        Args:
            item: 追加するコンテンツ

        Returns:
            追加されたレコードのID（重複時はNone）
        """
        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO content_items (
                        source_id, kind, title, locator, content,
                        metadata_json, published_at, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        item.source_id,
                        item.kind.value,
                        item.title,
                        item.locator,
                        item.content,
                        _dump_json(item.metadata),
                        _to_iso(item.published_at),
                        item.created_at.isoformat(),
                    ),
                )
                return cursor.lastrowid
            except sqlite3.IntegrityError:
                # 重複時はスキップ
                return None

    def get_item(self, item_id: int) -> Optional[ContentItem]:
        """IDでコンテンツを取得"""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM content_items WHERE id = ?", (item_id,)
            ).fetchone()
            return self._row_to_item(row) if row else None

    def find_item(self, source_id: int, locator: str) -> Optional[ContentItem]:
        """重複キーでコンテンツを取得"""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM content_items WHERE source_id = ? AND locator = ?",
                (source_id, locator),
            ).fetchone()
            return self._row_to_item(row) if row else None

    def list_items(
        self,
        source_id: Optional[int] = None,
        kind: Optional[ContentKind] = None,
        unsummarized_only: bool = False,
        limit: int = 50,
    ) -> List[ContentItem]:
        """
        コンテンツ一覧を取得

        Args:
            source_id: ソースでフィルタ
            kind: コンテンツ種別でフィルタ
            unsummarized_only: 要約未作成のもののみ
            limit: 最大取得件数

        Returns:
            新しい順のコンテンツリスト
        """
        conditions = []
        params: List[Any] = []

        if source_id is not None:
            conditions.append("i.source_id = ?")
            params.append(source_id)
        if kind:
            conditions.append("i.kind = ?")
            params.append(kind.value)
        if unsummarized_only:
            conditions.append("s.id IS NULL")

        where_clause = " AND ".join(conditions) if conditions else "1=1"
        sql = f"""
            SELECT i.* FROM content_items i
            LEFT JOIN summaries s ON s.content_item_id = i.id
            WHERE {where_clause}
            ORDER BY i.created_at DESC, i.id DESC
            LIMIT ?
        """
        params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_item(row) for row in rows]

    # ------------------------------------------------------------------
    # 要約
    # ------------------------------------------------------------------

    def add_summary(self, summary: Summary) -> Optional[int]:
        """
        要約を追加

        Returns:
            追加されたレコードのID（同一コンテンツの要約が既にある場合はNone）
        """
        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO summaries (
                        content_item_id, owner, summary, key_points_json,
                        topics_json, sentiment, confidence, model, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        summary.content_item_id,
                        summary.owner,
                        summary.summary,
                        json.dumps(summary.key_points, ensure_ascii=False),
                        json.dumps(summary.topics, ensure_ascii=False),
                        summary.sentiment.value,
                        summary.confidence,
                        summary.model,
                        summary.created_at.isoformat(),
                    ),
                )
                return cursor.lastrowid
            except sqlite3.IntegrityError:
                return None

    def get_summary(self, summary_id: int) -> Optional[Summary]:
        """IDで要約を取得"""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM summaries WHERE id = ?", (summary_id,)
            ).fetchone()
            return self._row_to_summary(row) if row else None

    def get_summary_for_item(self, content_item_id: int) -> Optional[Summary]:
        """コンテンツIDで要約を取得"""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM summaries WHERE content_item_id = ?", (content_item_id,)
            ).fetchone()
            return self._row_to_summary(row) if row else None

    def list_summaries(self, owner: Optional[str] = None, limit: int = 20) -> List[Summary]:
        """要約一覧を取得（新しい順）"""
        if owner:
            sql = """
                SELECT * FROM summaries
                WHERE owner = ?
                ORDER BY created_at DESC
                LIMIT ?
            """
            params: tuple = (owner, limit)
        else:
            sql = """
                SELECT * FROM summaries
                ORDER BY created_at DESC
                LIMIT ?
            """
            params = (limit,)

        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_summary(row) for row in rows]

    def search_summaries(
        self, query: str, owner: Optional[str] = None, limit: int = 5
    ) -> List[Summary]:
        """
        要約をキーワード検索

        いずれかの単語が要約本文・トピック・コンテンツタイトルに含まれるものを返す。
        """
        words = [w for w in query.split() if w]
        if not words:
            return []

        word_conditions = []
        params: List[Any] = []
        for word in words:
            word_conditions.append("(s.summary LIKE ? OR s.topics_json LIKE ? OR i.title LIKE ?)")
            params.extend([f"%{word}%", f"%{word}%", f"%{word}%"])

        conditions = ["(" + " OR ".join(word_conditions) + ")"]
        if owner:
            conditions.append("s.owner = ?")
            params.append(owner)

        sql = f"""
            SELECT s.* FROM summaries s
            JOIN content_items i ON i.id = s.content_item_id
            WHERE {" AND ".join(conditions)}
            ORDER BY s.created_at DESC
            LIMIT ?
        """
        params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_summary(row) for row in rows]

    # ------------------------------------------------------------------
    # 保存先
    # ------------------------------------------------------------------

    def add_storage_location(self, location: StorageLocation) -> Optional[int]:
        """保存先を追加（同一プロバイダの記録が既にある場合はNone）"""
        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO storage_locations (
                        summary_id, provider, external_id, url,
                        metadata_json, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        location.summary_id,
                        location.provider,
                        location.external_id,
                        location.url,
                        _dump_json(location.metadata),
                        location.created_at.isoformat(),
                    ),
                )
                return cursor.lastrowid
            except sqlite3.IntegrityError:
                return None

    def get_storage_location(
        self, summary_id: int, provider: str
    ) -> Optional[StorageLocation]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM storage_locations WHERE summary_id = ? AND provider = ?",
                (summary_id, provider),
            ).fetchone()
            return self._row_to_location(row) if row else None

    def list_storage_locations(self, summary_id: int) -> List[StorageLocation]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM storage_locations WHERE summary_id = ? ORDER BY id ASC",
                (summary_id,),
            ).fetchall()
            return [self._row_to_location(row) for row in rows]

    # ------------------------------------------------------------------
    # 問い合わせ履歴
    # ------------------------------------------------------------------

    def add_conversation(self, conversation: Conversation) -> int:
        """問い合わせ履歴を追加"""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO conversations (
                    owner, query, response, summary_ids_json, confidence, created_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    conversation.owner,
                    conversation.query,
                    conversation.response,
                    _dump_json(conversation.summary_ids),
                    conversation.confidence,
                    conversation.created_at.isoformat(),
                ),
            )
            return cursor.lastrowid

    def list_conversations(self, owner: str, limit: int = 50) -> List[Conversation]:
        """ユーザーの問い合わせ履歴（新しい順）"""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM conversations
                WHERE owner = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (owner, limit),
            ).fetchall()
            return [self._row_to_conversation(row) for row in rows]

    def clear_conversations(self, owner: str) -> int:
        """ユーザーの問い合わせ履歴を削除し、削除件数を返す"""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM conversations WHERE owner = ?", (owner,))
            return cursor.rowcount

    # ------------------------------------------------------------------
    # 行変換
    # ------------------------------------------------------------------

    def _row_to_source(self, row: sqlite3.Row) -> ContentSource:
        """DB行をContentSourceに変換"""
        return ContentSource(
            id=row["id"],
            owner=row["owner"],
            kind=SourceKind(row["kind"]),
            name=row["name"],
            url=row["url"],
            metadata=_load_json(row["metadata_json"], {}),
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_item(self, row: sqlite3.Row) -> ContentItem:
        """DB行をContentItemに変換"""
        return ContentItem(
            id=row["id"],
            source_id=row["source_id"],
            kind=ContentKind(row["kind"]),
            title=row["title"],
            locator=row["locator"],
            content=row["content"],
            metadata=_load_json(row["metadata_json"], {}),
            published_at=_from_iso(row["published_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_summary(self, row: sqlite3.Row) -> Summary:
        """DB行をSummaryに変換"""
        return Summary(
            id=row["id"],
            content_item_id=row["content_item_id"],
            owner=row["owner"],
            summary=row["summary"],
            key_points=_load_json(row["key_points_json"], []),
            topics=_load_json(row["topics_json"], []),
            sentiment=Sentiment(row["sentiment"]),
            confidence=row["confidence"],
            model=row["model"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_location(self, row: sqlite3.Row) -> StorageLocation:
        """DB行をStorageLocationに変換"""
        return StorageLocation(
            id=row["id"],
            summary_id=row["summary_id"],
            provider=row["provider"],
            external_id=row["external_id"],
            url=row["url"],
            metadata=_load_json(row["metadata_json"], {}),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_conversation(self, row: sqlite3.Row) -> Conversation:
        """DB行をConversationに変換"""
        return Conversation(
            id=row["id"],
            owner=row["owner"],
            query=row["query"],
            response=row["response"],
            summary_ids=_load_json(row["summary_ids_json"], []),
            confidence=row["confidence"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
