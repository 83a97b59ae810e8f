"""
設定から各コンポーネントを組み立てる

CLIとAPIサーバーの両方がここで構築したインスタンスを所有する。
"""

from typing import Optional

from .config import MonitorConfig
from .fetchers import (
    GmailProvider,
    MailboxFetcher,
    RSSFetcher,
    YouTubeFetcher,
    YouTubeTranscriptProvider,
)
from .interaction import InteractionService
from .models import SourceKind
from .ollama_client import OllamaClient
from .oracle import OllamaOracle
from .orchestrator import ContentOrchestrator
from .pipeline import IngestionPipeline
from .repository import ContentRepository
from .storage import GoogleDocsStore, NotionStore, StorageFanout
from .summarizer import SummarizationOrchestrator


def build_ollama_client(config: MonitorConfig) -> OllamaClient:
    return OllamaClient(
        host=config.ollama.host,
        model=config.ollama.model,
        temperature=config.ollama.temperature,
        max_tokens=config.ollama.max_tokens,
        timeout=config.ollama.timeout_seconds,
    )


def build_orchestrator(
    config: MonitorConfig,
    repository: Optional[ContentRepository] = None,
    ollama_client: Optional[OllamaClient] = None,
) -> ContentOrchestrator:
    """
    設定から ContentOrchestrator を構築

    Args:
        config: 設定
        repository: 既存のリポジトリ（省略時はconfig.db_pathから作成）
        ollama_client: 既存のOllamaクライアント

    Returns:
        取得器・要約・複製を組み込んだオーケストレーター
    """
    repository = repository or ContentRepository(config.db_path)
    ollama_client = ollama_client or build_ollama_client(config)

    transcripts = YouTubeTranscriptProvider(languages=config.youtube.transcript_languages)
    fetchers = {
        SourceKind.YOUTUBE: YouTubeFetcher(
            api_key=config.youtube.api_key,
            max_results=config.youtube.max_results,
        ),
        SourceKind.RSS: RSSFetcher(max_entries=config.rss_max_entries),
        SourceKind.NEWSLETTER: MailboxFetcher(
            GmailProvider(token_file=config.gmail.token_file),
            max_messages=config.gmail.max_messages,
            default_query=config.gmail.query,
        ),
    }

    fanout = StorageFanout(
        repository,
        [
            NotionStore(token=config.notion.token, database_id=config.notion.database_id),
            GoogleDocsStore(
                client_id=config.google_docs.client_id,
                client_secret=config.google_docs.client_secret,
                refresh_token=config.google_docs.refresh_token,
            ),
        ],
    )

    summarizer = SummarizationOrchestrator(
        repository,
        OllamaOracle(ollama_client),
        transcript_provider=transcripts,
        max_content_chars=config.max_content_chars,
        replicator=fanout,
        auto_replicate_providers=config.auto_replicate_providers,
    )

    return ContentOrchestrator(
        repository,
        IngestionPipeline(repository, fetchers),
        summarizer,
        fanout,
        max_workers=config.max_workers,
    )


def build_interaction(
    config: MonitorConfig,
    repository: ContentRepository,
    ollama_client: Optional[OllamaClient] = None,
) -> InteractionService:
    return InteractionService(repository, ollama_client or build_ollama_client(config))
