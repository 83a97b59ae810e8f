"""Content monitoring: ingestion, deduplication, summarization and fan-out."""

from .config import MonitorConfig
from .exceptions import (
    ChannelIdError,
    ConfigurationError,
    ContentMonitorError,
    ContentNotFoundError,
    FetchError,
    MissingContentError,
    OracleError,
    ReplicationError,
    SourceNotFoundError,
)
from .interaction import InteractionService, calculate_confidence
from .models import (
    CandidateItem,
    ContentItem,
    ContentKind,
    ContentSource,
    Conversation,
    CycleResult,
    MonitorResult,
    ReplicationResult,
    Sentiment,
    SourceKind,
    StorageLocation,
    Summary,
    SummaryResult,
)
from .orchestrator import ContentOrchestrator
from .pipeline import IngestionPipeline
from .repository import ContentRepository
from .summarizer import SummarizationOrchestrator

__all__ = [
    "CandidateItem",
    "ChannelIdError",
    "ConfigurationError",
    "ContentItem",
    "ContentKind",
    "ContentMonitorError",
    "ContentNotFoundError",
    "ContentOrchestrator",
    "ContentRepository",
    "ContentSource",
    "Conversation",
    "CycleResult",
    "FetchError",
    "IngestionPipeline",
    "InteractionService",
    "MissingContentError",
    "MonitorConfig",
    "MonitorResult",
    "OracleError",
    "ReplicationError",
    "ReplicationResult",
    "Sentiment",
    "SourceKind",
    "SourceNotFoundError",
    "StorageLocation",
    "SummarizationOrchestrator",
    "Summary",
    "SummaryResult",
    "calculate_confidence",
]
