"""監視オーケストレーターのテスト"""

import threading
from unittest.mock import MagicMock

import pytest

from src.content_monitor import (
    CandidateItem,
    ContentItem,
    ContentKind,
    ContentOrchestrator,
    ContentRepository,
    ContentSource,
    FetchError,
    IngestionPipeline,
    SourceKind,
    SourceNotFoundError,
    SummarizationOrchestrator,
)
from src.content_monitor.fetchers.base import BaseFetcher
from src.content_monitor.oracle import SummarizationOracle
from src.content_monitor.storage import StorageFanout


class UrlFetcher(BaseFetcher):
    """ソースURLごとに候補・例外を返す取得器"""

    kind = SourceKind.RSS

    def __init__(self, behaviours):
        self.behaviours = behaviours

    def fetch(self, source):
        behaviour = self.behaviours[source.url]
        if isinstance(behaviour, Exception):
            raise behaviour
        for locator in behaviour:
            yield CandidateItem(locator=locator, title=locator, content=f"text {locator}")


class StubOracle(SummarizationOracle):
    model_name = "stub"

    def summarize(self, item, text):
        return {"summary": f"summary of {item.title}", "keyPoints": [], "topics": [], "confidence": 50}


@pytest.fixture
def repository(tmp_path):
    return ContentRepository(db_path=str(tmp_path / "orchestrator.db"))


def build(repository, behaviours, max_workers=4):
    pipeline = IngestionPipeline(repository, {SourceKind.RSS: UrlFetcher(behaviours)})
    summarizer = SummarizationOrchestrator(repository, StubOracle())
    fanout = StorageFanout(repository, [])
    return ContentOrchestrator(repository, pipeline, summarizer, fanout, max_workers=max_workers)


def add_source(repository, url, owner="alice"):
    return repository.add_source(
        ContentSource(owner=owner, kind=SourceKind.RSS, name=url, url=url)
    )


def test_cycle_isolates_failing_source(repository):
    """2番目のソースが例外を投げても1・3番目は処理される"""
    first = add_source(repository, "https://a.example.com")
    second = add_source(repository, "https://b.example.com")
    third = add_source(repository, "https://c.example.com")
    orchestrator = build(
        repository,
        {
            first.url: ["https://a.example.com/1", "https://a.example.com/2"],
            second.url: RuntimeError("unexpected parser crash"),
            third.url: ["https://c.example.com/1"],
        },
    )

    cycle = orchestrator.run_cycle()

    assert cycle.sources_processed == 3
    assert [r.source_id for r in cycle.results] == [first.id, second.id, third.id]
    assert [r.success for r in cycle.results] == [True, False, True]
    assert cycle.results[1].error == "unexpected parser crash"
    assert cycle.successful == 2
    assert cycle.failed == 1
    assert cycle.total_new_items == 3


def test_cycle_records_fetch_errors(repository):
    source = add_source(repository, "https://a.example.com")
    orchestrator = build(repository, {source.url: FetchError("HTTP 503")})

    cycle = orchestrator.run_cycle()

    assert cycle.failed == 1
    assert cycle.results[0].error == "HTTP 503"


def test_cycle_skips_inactive_and_other_owners(repository):
    active = add_source(repository, "https://a.example.com")
    inactive = add_source(repository, "https://b.example.com")
    add_source(repository, "https://c.example.com", owner="bob")
    repository.deactivate_source(inactive.id)
    orchestrator = build(repository, {"https://a.example.com": [], "https://c.example.com": []})

    cycle = orchestrator.run_cycle(owner="alice")

    assert [r.source_id for r in cycle.results] == [active.id]


def test_cycle_cancelled_before_start(repository):
    source = add_source(repository, "https://a.example.com")
    orchestrator = build(repository, {source.url: ["https://a.example.com/1"]})
    cancel = threading.Event()
    cancel.set()

    cycle = orchestrator.run_cycle(cancel_event=cancel)

    assert cycle.results[0].error == "cancelled"
    assert repository.list_items() == []


def test_cycle_auto_summarize(repository):
    source = add_source(repository, "https://a.example.com")
    orchestrator = build(repository, {source.url: ["https://a.example.com/1"]})

    cycle = orchestrator.run_cycle(auto_summarize=True)

    item_id = cycle.results[0].new_item_ids[0]
    assert cycle.summarized_item_ids == [item_id]
    assert repository.get_summary_for_item(item_id).summary == "summary of https://a.example.com/1"


def test_monitor_source_not_found(repository):
    orchestrator = build(repository, {})
    with pytest.raises(SourceNotFoundError):
        orchestrator.monitor_source(42)

    source = add_source(repository, "https://a.example.com")
    repository.deactivate_source(source.id)
    with pytest.raises(SourceNotFoundError):
        orchestrator.monitor_source(source.id)


def test_summarize_returns_error_value(repository):
    orchestrator = build(repository, {})
    result = orchestrator.summarize(12345)
    assert result.success is False
    assert "not found" in result.error


def test_monitor_source_returns_error_for_unexpected_exception(repository):
    source = add_source(repository, "https://a.example.com")
    orchestrator = build(repository, {source.url: TimeoutError("timed out")})

    result = orchestrator.monitor_source(source.id)

    assert result.success is False
    assert "timed out" in result.error
    assert repository.get_source(source.id).last_checked is not None


def test_summarize_transcript_failure_returns_error_value(repository):
    source = add_source(repository, "https://a.example.com")
    item_id = repository.add_item(
        ContentItem(
            source_id=source.id,
            kind=ContentKind.VIDEO,
            title="Video",
            locator="https://www.youtube.com/watch?v=abc123",
        )
    )
    transcripts = MagicMock()
    transcripts.get_transcript.side_effect = ConnectionError("network down")
    summarizer = SummarizationOrchestrator(
        repository, StubOracle(), transcript_provider=transcripts
    )
    orchestrator = ContentOrchestrator(
        repository,
        IngestionPipeline(repository, {}),
        summarizer,
        StorageFanout(repository, []),
    )

    result = orchestrator.summarize(item_id)

    assert result.success is False
    assert "network down" in result.error
    assert repository.get_summary_for_item(item_id) is None


def test_status_and_health(repository):
    source = add_source(repository, "https://a.example.com")
    orchestrator = build(repository, {source.url: ["https://a.example.com/1"]})
    orchestrator.run_cycle(auto_summarize=True)

    status = orchestrator.status(owner="alice")
    assert status["active_sources"] == 1
    assert status["recent_summaries"] == 1
    assert status["last_activity"] is not None
    assert status["sources"][0]["last_checked"] is not None

    health = orchestrator.health()
    assert health["status"] == "healthy"
    assert health["database"] is True
    assert health["fetchers"] == {"rss": True}
    assert health["storage"] == {}
