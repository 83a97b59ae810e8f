"""
設定管理モジュール

関連クラス:
  - factory.build_orchestrator: この設定から各クライアントを構築
  - ollama_client.OllamaClient: Ollama API設定を使用
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "content_monitor.yaml"


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class OllamaConfig:
    """Ollama API設定"""

    host: str = "http://localhost:11434"
    model: str = "llama3.1:8b"
    temperature: float = 0.3
    max_tokens: int = 4096
    timeout_seconds: float = 120.0


@dataclass
class YouTubeConfig:
    """YouTube Data API設定"""

    api_key: Optional[str] = None
    max_results: int = 10
    transcript_languages: List[str] = field(default_factory=lambda: ["ja", "en"])


@dataclass
class GmailConfig:
    """Gmail設定"""

    token_file: Optional[str] = None
    max_messages: int = 10
    query: str = "newer_than:7d"


@dataclass
class NotionConfig:
    """Notion設定"""

    token: Optional[str] = None
    database_id: Optional[str] = None


@dataclass
class GoogleDocsConfig:
    """Google Docs設定"""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    refresh_token: Optional[str] = None


@dataclass
class MonitorConfig:
    """コンテンツ監視の設定クラス"""

    ollama: OllamaConfig = None  # type: ignore
    youtube: YouTubeConfig = None  # type: ignore
    gmail: GmailConfig = None  # type: ignore
    notion: NotionConfig = None  # type: ignore
    google_docs: GoogleDocsConfig = None  # type: ignore

    # データベース（Noneなら環境変数またはdata/content_monitor.db）
    db_path: Optional[str] = None

    # ログ設定
    log_level: str = "INFO"
    log_file: str = "logs/content_monitor.log"

    # パイプライン設定
    max_content_chars: int = 8000
    max_workers: int = 4
    rss_max_entries: int = 20
    auto_replicate_providers: List[str] = field(default_factory=list)

    def __post_init__(self):
        """デフォルト値の初期化"""
        if self.ollama is None:
            self.ollama = OllamaConfig()
        if self.youtube is None:
            self.youtube = YouTubeConfig()
        if self.gmail is None:
            self.gmail = GmailConfig()
        if self.notion is None:
            self.notion = NotionConfig()
        if self.google_docs is None:
            self.google_docs = GoogleDocsConfig()

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "MonitorConfig":
        """YAMLファイルから設定を読み込む

        Args:
            config_path: 設定ファイルパス（省略時はconfig/content_monitor.yamlを使用）

        Returns:
            MonitorConfig: 設定インスタンス（ファイルがなければ環境変数から）
        """
        config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        if not config_path.exists():
            return cls.from_env()

        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data: Dict[str, Any] = yaml.safe_load(f) or {}

        if not isinstance(yaml_data, dict):
            raise ConfigurationError(f"Invalid config file: {config_path}")

        ollama_data = yaml_data.get("ollama") or {}
        youtube_data = yaml_data.get("youtube") or {}
        gmail_data = yaml_data.get("gmail") or {}
        notion_data = yaml_data.get("notion") or {}
        docs_data = yaml_data.get("google_docs") or {}
        log_data = yaml_data.get("log") or {}
        pipeline_data = yaml_data.get("pipeline") or {}

        return cls(
            ollama=OllamaConfig(
                host=ollama_data.get("host", "http://localhost:11434"),
                model=ollama_data.get("model", "llama3.1:8b"),
                temperature=ollama_data.get("temperature", 0.3),
                max_tokens=ollama_data.get("max_tokens", 4096),
                timeout_seconds=ollama_data.get("timeout_seconds", 120.0),
            ),
            youtube=YouTubeConfig(
                api_key=youtube_data.get("api_key") or os.getenv("YOUTUBE_API_KEY"),
                max_results=youtube_data.get("max_results", 10),
                transcript_languages=youtube_data.get("transcript_languages", ["ja", "en"]),
            ),
            gmail=GmailConfig(
                token_file=gmail_data.get("token_file"),
                max_messages=gmail_data.get("max_messages", 10),
                query=gmail_data.get("query", "newer_than:7d"),
            ),
            notion=NotionConfig(
                token=notion_data.get("token") or os.getenv("NOTION_API_KEY"),
                database_id=notion_data.get("database_id") or os.getenv("NOTION_DATABASE_ID"),
            ),
            google_docs=GoogleDocsConfig(
                client_id=docs_data.get("client_id") or os.getenv("GOOGLE_DOCS_CLIENT_ID"),
                client_secret=docs_data.get("client_secret")
                or os.getenv("GOOGLE_DOCS_CLIENT_SECRET"),
                refresh_token=docs_data.get("refresh_token")
                or os.getenv("GOOGLE_DOCS_REFRESH_TOKEN"),
            ),
            db_path=yaml_data.get("db_path") or os.getenv("CONTENT_MONITOR_DB_PATH"),
            log_level=log_data.get("level", "INFO"),
            log_file=log_data.get("file", "logs/content_monitor.log"),
            max_content_chars=pipeline_data.get("max_content_chars", 8000),
            max_workers=pipeline_data.get("max_workers", 4),
            rss_max_entries=pipeline_data.get("rss_max_entries", 20),
            auto_replicate_providers=pipeline_data.get("auto_replicate_providers", []),
        )

    @classmethod
    def from_env(cls) -> "MonitorConfig":
        """環境変数から設定を読み込む"""
        return cls(
            ollama=OllamaConfig(
                host=os.getenv("OLLAMA_HOST", "http://localhost:11434"),
                model=os.getenv("OLLAMA_MODEL", "llama3.1:8b"),
                temperature=float(os.getenv("OLLAMA_TEMPERATURE", "0.3")),
                max_tokens=int(os.getenv("OLLAMA_MAX_TOKENS", "4096")),
                timeout_seconds=float(os.getenv("OLLAMA_TIMEOUT", "120")),
            ),
            youtube=YouTubeConfig(
                api_key=os.getenv("YOUTUBE_API_KEY"),
                max_results=int(os.getenv("YOUTUBE_MAX_RESULTS", "10")),
                transcript_languages=_split_list(os.getenv("YOUTUBE_TRANSCRIPT_LANGUAGES"))
                or ["ja", "en"],
            ),
            gmail=GmailConfig(
                token_file=os.getenv("GMAIL_TOKEN_FILE"),
                max_messages=int(os.getenv("GMAIL_MAX_MESSAGES", "10")),
                query=os.getenv("GMAIL_QUERY", "newer_than:7d"),
            ),
            notion=NotionConfig(
                token=os.getenv("NOTION_API_KEY"),
                database_id=os.getenv("NOTION_DATABASE_ID"),
            ),
            google_docs=GoogleDocsConfig(
                client_id=os.getenv("GOOGLE_DOCS_CLIENT_ID"),
                client_secret=os.getenv("GOOGLE_DOCS_CLIENT_SECRET"),
                refresh_token=os.getenv("GOOGLE_DOCS_REFRESH_TOKEN"),
            ),
            db_path=os.getenv("CONTENT_MONITOR_DB_PATH"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "logs/content_monitor.log"),
            max_content_chars=int(os.getenv("MAX_CONTENT_CHARS", "8000")),
            max_workers=int(os.getenv("MAX_WORKERS", "4")),
            rss_max_entries=int(os.getenv("RSS_MAX_ENTRIES", "20")),
            auto_replicate_providers=_split_list(os.getenv("AUTO_REPLICATE_PROVIDERS")),
        )
