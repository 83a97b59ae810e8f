"""コンテンツ監視CLIの動作テスト"""

import json
import subprocess
import sys
from pathlib import Path


def run_cli(args: list[str], db_path: Path, config_path: Path) -> subprocess.CompletedProcess:
    """CLI実行ヘルパー"""
    cmd = [
        sys.executable,
        "-m",
        "src.content_monitor",
        "--config",
        str(config_path),
        "--db-path",
        str(db_path),
        "--format",
        "json",
    ] + args
    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        cwd=Path(__file__).parent.parent,
    )


def write_config(tmp_path: Path) -> Path:
    config_path = tmp_path / "cli.yaml"
    log_file = tmp_path / "cli.log"
    config_path.write_text(f'log:\n  level: "WARNING"\n  file: "{log_file}"\n', encoding="utf-8")
    return config_path


def test_cli_sources_flow(tmp_path):
    db_path = tmp_path / "cli.db"
    config_path = write_config(tmp_path)

    result = run_cli(["sources", "list"], db_path, config_path)
    assert result.returncode == 0
    assert json.loads(result.stdout) == []

    result = run_cli(
        [
            "sources",
            "add",
            "--owner",
            "alice",
            "--kind",
            "rss",
            "--name",
            "Blog",
            "--url",
            "https://example.com/feed",
            "--metadata",
            '{"feed_url": "https://example.com/rss.xml"}',
        ],
        db_path,
        config_path,
    )
    assert result.returncode == 0
    created = json.loads(result.stdout)
    assert created["kind"] == "rss"
    assert created["metadata"]["feed_url"] == "https://example.com/rss.xml"

    result = run_cli(["sources", "deactivate", "--id", str(created["id"])], db_path, config_path)
    assert result.returncode == 0

    result = run_cli(["sources", "list"], db_path, config_path)
    assert json.loads(result.stdout) == []

    result = run_cli(["sources", "list", "--all"], db_path, config_path)
    assert len(json.loads(result.stdout)) == 1


def test_cli_deactivate_unknown(tmp_path):
    result = run_cli(
        ["sources", "deactivate", "--id", "99"], tmp_path / "cli.db", write_config(tmp_path)
    )
    assert result.returncode == 1
    assert "99" in result.stderr


def test_cli_ingest_email_and_items(tmp_path):
    db_path = tmp_path / "cli.db"
    config_path = write_config(tmp_path)
    run_cli(
        ["sources", "add", "--owner", "alice", "--kind", "newsletter", "--name", "Inbox", "--url", "gmail:inbox"],
        db_path,
        config_path,
    )
    mail = tmp_path / "issue.eml"
    mail.write_text("From: news@example.com\nSubject: Issue 7\nMessage-ID: <i7@example.com>\n\nHello\n", encoding="utf-8")

    result = run_cli(["ingest-email", "--source-id", "1", "--file", str(mail)], db_path, config_path)
    assert result.returncode == 0
    assert json.loads(result.stdout)["created"] is True

    result = run_cli(["ingest-email", "--source-id", "1", "--file", str(mail)], db_path, config_path)
    assert json.loads(result.stdout)["created"] is False

    result = run_cli(["items", "--unsummarized"], db_path, config_path)
    items = json.loads(result.stdout)
    assert [i["title"] for i in items] == ["Issue 7"]


def test_cli_summarize_missing_item(tmp_path):
    result = run_cli(["summarize", "--item-id", "5"], tmp_path / "cli.db", write_config(tmp_path))
    assert result.returncode == 1
    assert json.loads(result.stdout)["error"].startswith("Content item not found")


def test_cli_ask_and_history(tmp_path):
    db_path = tmp_path / "cli.db"
    config_path = write_config(tmp_path)

    result = run_cli(
        ["ask", "--owner", "alice", "--query", "anything new", "--no-llm"], db_path, config_path
    )
    assert result.returncode == 0, result.stderr
    answer = json.loads(result.stdout)
    assert answer["summary_ids"] == []

    result = run_cli(["history", "--owner", "alice"], db_path, config_path)
    assert result.returncode == 0, result.stderr
    history = json.loads(result.stdout)
    assert [c["query"] for c in history] == ["anything new"]
    assert history[0]["id"] == answer["conversation_id"]

    result = run_cli(["history", "--owner", "alice", "--clear"], db_path, config_path)
    assert json.loads(result.stdout) == {"deleted": 1}
    result = run_cli(["history", "--owner", "alice"], db_path, config_path)
    assert json.loads(result.stdout) == []
