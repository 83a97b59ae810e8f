"""コンテンツリポジトリのテスト"""

from datetime import datetime, timezone

import pytest

from src.content_monitor import (
    ContentItem,
    ContentKind,
    ContentRepository,
    ContentSource,
    SourceKind,
    StorageLocation,
    Summary,
)


@pytest.fixture
def repository(tmp_path):
    """テスト用リポジトリ"""
    return ContentRepository(db_path=str(tmp_path / "content.db"))


@pytest.fixture
def source(repository):
    return repository.add_source(
        ContentSource(owner="alice", kind=SourceKind.RSS, name="Blog", url="https://example.com/feed")
    )


def make_item(source_id: int, locator: str = "https://example.com/a", title: str = "A") -> ContentItem:
    return ContentItem(
        source_id=source_id,
        kind=ContentKind.ARTICLE,
        title=title,
        locator=locator,
        content="body",
    )


def test_repository_initialization(repository):
    """初期化直後は空"""
    assert repository.ping() is True
    assert repository.list_sources() == []
    assert repository.list_items() == []
    assert repository.list_summaries() == []


def test_repository_uses_env_db_path(tmp_path, monkeypatch):
    db_path = tmp_path / "env" / "content.db"
    monkeypatch.setenv("CONTENT_MONITOR_DB_PATH", str(db_path))
    repo = ContentRepository()
    assert repo.db_path == str(db_path)
    assert db_path.exists()


def test_add_and_get_source(repository, source):
    assert source.id is not None
    fetched = repository.get_source(source.id)
    assert fetched.name == "Blog"
    assert fetched.kind == SourceKind.RSS
    assert fetched.is_active is True
    assert fetched.last_checked is None


def test_list_sources_filters(repository, source):
    other = repository.add_source(
        ContentSource(owner="bob", kind=SourceKind.YOUTUBE, name="Chan", url="https://youtube.com/@chan")
    )
    assert [s.id for s in repository.list_sources()] == [source.id, other.id]
    assert [s.id for s in repository.list_sources(owner="bob")] == [other.id]
    assert [s.id for s in repository.list_sources(kind=SourceKind.RSS)] == [source.id]

    assert repository.deactivate_source(other.id) is True
    assert [s.id for s in repository.list_sources(active_only=True)] == [source.id]
    assert repository.deactivate_source(9999) is False


def test_update_last_checked_keeps_metadata(repository):
    src = repository.add_source(
        ContentSource(
            owner="alice",
            kind=SourceKind.RSS,
            name="Feed",
            url="https://example.com/feed",
            metadata={"feed_url": "https://example.com/rss.xml"},
        )
    )
    checked = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    repository.update_last_checked(src.id, checked)

    fetched = repository.get_source(src.id)
    assert fetched.last_checked == checked.isoformat()
    assert fetched.metadata["feed_url"] == "https://example.com/rss.xml"


def test_duplicate_item_prevention(repository, source):
    """同一 (source_id, locator) は1件のみ"""
    first = repository.add_item(make_item(source.id))
    second = repository.add_item(make_item(source.id, title="A again"))

    assert first is not None
    assert second is None
    assert repository.exists(source.id, "https://example.com/a")
    assert len(repository.list_items(source_id=source.id)) == 1
    assert repository.find_item(source.id, "https://example.com/a").title == "A"


def test_same_locator_in_different_sources(repository, source):
    other = repository.add_source(
        ContentSource(owner="alice", kind=SourceKind.RSS, name="Mirror", url="https://mirror.example.com")
    )
    assert repository.add_item(make_item(source.id)) is not None
    assert repository.add_item(make_item(other.id)) is not None


def test_summary_unique_per_item(repository, source):
    item_id = repository.add_item(make_item(source.id))
    summary = Summary(
        content_item_id=item_id,
        owner="alice",
        summary="Short summary",
        key_points=["one", "two"],
        topics=["ai", "ai", "python"],
        confidence=150,
    )
    summary_id = repository.add_summary(summary)
    assert summary_id is not None
    assert repository.add_summary(summary) is None

    stored = repository.get_summary(summary_id)
    assert stored.topics == ["ai", "python"]
    assert stored.confidence == 100
    assert repository.get_summary_for_item(item_id).id == summary_id


def test_list_items_unsummarized(repository, source):
    first = repository.add_item(make_item(source.id, "https://example.com/1"))
    second = repository.add_item(make_item(source.id, "https://example.com/2"))
    repository.add_summary(Summary(content_item_id=first, owner="alice", summary="done"))

    items = repository.list_items(unsummarized_only=True)
    assert [i.id for i in items] == [second]


def test_search_summaries(repository, source):
    item_id = repository.add_item(make_item(source.id, title="Rust release notes"))
    repository.add_summary(
        Summary(content_item_id=item_id, owner="alice", summary="New compiler features", topics=["compilers"])
    )

    assert len(repository.search_summaries("compiler")) == 1
    assert len(repository.search_summaries("rust")) == 1
    assert len(repository.search_summaries("compilers", owner="bob")) == 0
    assert repository.search_summaries("   ") == []


def test_storage_location_unique_per_provider(repository, source):
    item_id = repository.add_item(make_item(source.id))
    summary_id = repository.add_summary(Summary(content_item_id=item_id, owner="alice", summary="s"))

    location = StorageLocation(summary_id=summary_id, provider="notion", external_id="page-1")
    assert repository.add_storage_location(location) is not None
    assert repository.add_storage_location(location) is None

    stored = repository.get_storage_location(summary_id, "notion")
    assert stored.external_id == "page-1"
    assert len(repository.list_storage_locations(summary_id)) == 1
