"""問い合わせサービスのテスト"""

from unittest.mock import MagicMock

import pytest

from src.content_monitor import (
    ContentItem,
    ContentKind,
    ContentRepository,
    ContentSource,
    InteractionService,
    SourceKind,
    Summary,
    calculate_confidence,
)
from src.content_monitor.interaction import NO_RESULTS_ANSWER


@pytest.mark.parametrize(
    "count,query,expected",
    [
        (0, "hello", 2),
        (1, "what is new", 26),
        (3, "one two three four five", 70),
        (4, "a b c d e f g h i j k", 95),
        (10, "x", 82),
    ],
)
def test_calculate_confidence(count, query, expected):
    assert calculate_confidence(count, query) == expected


@pytest.fixture
def repository(tmp_path):
    repo = ContentRepository(db_path=str(tmp_path / "interaction.db"))
    source = repo.add_source(
        ContentSource(owner="alice", kind=SourceKind.RSS, name="Blog", url="https://example.com/feed")
    )
    item_id = repo.add_item(
        ContentItem(
            source_id=source.id,
            kind=ContentKind.ARTICLE,
            title="Python 3.14 released",
            locator="https://example.com/py",
            content="text",
        )
    )
    repo.add_summary(
        Summary(content_item_id=item_id, owner="alice", summary="Python gets faster startup.", topics=["python"])
    )
    return repo


def test_ask_without_results(repository):
    answer = InteractionService(repository).ask("alice", "kubernetes")
    assert answer.answer == NO_RESULTS_ANSWER
    assert answer.summary_ids == []
    assert answer.confidence == 2


def test_ask_template_answer(repository):
    answer = InteractionService(repository).ask("alice", "python news", use_llm=False)
    assert "Python 3.14 released" in answer.answer
    assert len(answer.summary_ids) == 1
    assert answer.confidence == 24


def test_ask_uses_llm(repository):
    client = MagicMock()
    client.generate.return_value = {"answer": "Python startup is faster."}

    answer = InteractionService(repository, client).ask("alice", "python")

    assert answer.answer == "Python startup is faster."
    prompt = client.generate.call_args.kwargs["prompt"]
    assert "Python gets faster startup." in prompt


def test_ask_llm_failure_falls_back(repository):
    client = MagicMock()
    client.generate.side_effect = ConnectionError("ollama down")

    answer = InteractionService(repository, client).ask("alice", "python")

    assert answer.answer.startswith("Based on your content summaries")


def test_ask_only_searches_owner(repository):
    answer = InteractionService(repository).ask("bob", "python")
    assert answer.summary_ids == []


def test_ask_saves_conversation(repository):
    service = InteractionService(repository)

    answer = service.ask("alice", "python news", use_llm=False)

    history = service.history("alice")
    assert len(history) == 1
    assert history[0].id == answer.conversation_id
    assert history[0].query == "python news"
    assert history[0].response == answer.answer
    assert history[0].summary_ids == answer.summary_ids
    assert history[0].confidence == answer.confidence


def test_history_is_newest_first_and_per_owner(repository):
    service = InteractionService(repository)
    service.ask("alice", "first question", use_llm=False)
    service.ask("alice", "second question", use_llm=False)
    service.ask("bob", "other user", use_llm=False)

    assert [c.query for c in service.history("alice")] == ["second question", "first question"]
    assert [c.query for c in service.history("alice", limit=1)] == ["second question"]
    assert [c.query for c in service.history("bob")] == ["other user"]


def test_recent_conversations_are_sent_to_llm(repository):
    client = MagicMock()
    client.generate.return_value = {"answer": "Answer."}
    service = InteractionService(repository, client)
    for index in range(4):
        service.ask("alice", f"python question {index}")

    service.ask("alice", "python follow up")

    prompt = client.generate.call_args.kwargs["prompt"]
    assert "Recent conversation:" in prompt
    assert "User: python question 0" not in prompt
    assert prompt.index("User: python question 1") < prompt.index("User: python question 3")
    assert prompt.rstrip().endswith("Question: python follow up")


def test_clear_history(repository):
    service = InteractionService(repository)
    service.ask("alice", "python", use_llm=False)
    service.ask("bob", "python", use_llm=False)

    assert service.clear_history("alice") == 1
    assert service.history("alice") == []
    assert len(service.history("bob")) == 1
