#!/usr/bin/env python3
"""
コンテンツ監視CLI

Usage:
    python -m src.content_monitor sources add --owner USER --kind youtube|rss|newsletter --name NAME --url URL [--metadata JSON]
    python -m src.content_monitor sources list [--owner USER] [--kind KIND] [--all]
    python -m src.content_monitor sources deactivate --id ID
    python -m src.content_monitor monitor [--source-id ID] [--owner USER] [--auto-summarize]
    python -m src.content_monitor items [--source-id ID] [--unsummarized] [--limit N]
    python -m src.content_monitor ingest-email --source-id ID --file PATH
    python -m src.content_monitor summarize --item-id ID [--owner USER]
    python -m src.content_monitor replicate --summary-id ID --provider notion [--provider google_docs]
    python -m src.content_monitor status [--owner USER]
    python -m src.content_monitor ask --owner USER --query "質問" [--no-llm]
    python -m src.content_monitor history --owner USER [--limit N] [--clear]

共通オプション: --config PATH --db-path PATH --format json|text
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from .config import MonitorConfig
from .exceptions import ContentMonitorError
from .factory import build_interaction, build_orchestrator
from .interaction import InteractionService
from .logger import setup_logger
from .models import ContentItem, ContentSource, SourceKind
from .orchestrator import ContentOrchestrator
from .repository import ContentRepository


def _print_json(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def format_source_text(source: ContentSource) -> str:
    """ソースをテキスト形式で整形"""
    state = "active" if source.is_active else "inactive"
    checked = source.last_checked or "未確認"
    return f"[{source.id}] {source.kind.value} | {source.name} | {source.url} | {state} | 最終確認: {checked}"


def format_item_text(item: ContentItem) -> str:
    """コンテンツアイテムをテキスト形式で整形"""
    return f"[{item.id}] {item.kind.value} | {item.title} | {item.locator}"


def cmd_sources_add(repo: ContentRepository, args: argparse.Namespace) -> int:
    """ソースを登録"""
    try:
        metadata = json.loads(args.metadata) if args.metadata else {}
    except json.JSONDecodeError as exc:
        print(f"Error: --metadata がJSONではありません: {exc}", file=sys.stderr)
        return 1

    source = repo.add_source(
        ContentSource(
            owner=args.owner,
            kind=SourceKind(args.kind),
            name=args.name,
            url=args.url,
            metadata=metadata,
        )
    )
    if args.format == "json":
        _print_json(source.model_dump(mode="json"))
    else:
        print(f"登録しました: {format_source_text(source)}")
    return 0


def cmd_sources_list(repo: ContentRepository, args: argparse.Namespace) -> int:
    """ソース一覧を表示"""
    sources = repo.list_sources(
        owner=args.owner,
        active_only=not args.all,
        kind=SourceKind(args.kind) if args.kind else None,
    )
    if args.format == "json":
        _print_json([s.model_dump(mode="json") for s in sources])
    elif not sources:
        print("ソースは登録されていません。")
    else:
        for source in sources:
            print(format_source_text(source))
    return 0


def cmd_sources_deactivate(repo: ContentRepository, args: argparse.Namespace) -> int:
    """ソースを無効化"""
    if not repo.deactivate_source(args.id):
        print(f"Error: ID {args.id} のソースが見つかりません。", file=sys.stderr)
        return 1
    if args.format == "json":
        _print_json({"deactivated": True, "id": args.id})
    else:
        print(f"無効化しました: ID {args.id}")
    return 0


def cmd_monitor(orchestrator: ContentOrchestrator, args: argparse.Namespace) -> int:
    """監視を実行"""
    if args.source_id is not None:
        result = orchestrator.monitor_source(args.source_id)
        if args.format == "json":
            _print_json(result.model_dump(mode="json"))
        else:
            status = "OK" if result.success else f"NG ({result.error})"
            print(f"{result.source_name}: {status} 新規 {result.new_items_created} 件")
        return 0 if result.success else 1

    cycle = orchestrator.run_cycle(owner=args.owner, auto_summarize=args.auto_summarize)
    if args.format == "json":
        _print_json(cycle.model_dump(mode="json"))
    else:
        for result in cycle.results:
            status = "OK" if result.success else f"NG ({result.error})"
            print(f"[{result.source_id}] {result.source_name}: {status} 新規 {result.new_items_created} 件")
        print(
            f"完了: 成功 {cycle.successful} / 失敗 {cycle.failed} / "
            f"新規 {cycle.total_new_items} 件 / 要約 {len(cycle.summarized_item_ids)} 件"
        )
    return 0


def cmd_items(repo: ContentRepository, args: argparse.Namespace) -> int:
    """コンテンツアイテム一覧を表示"""
    items = repo.list_items(
        source_id=args.source_id,
        unsummarized_only=args.unsummarized,
        limit=args.limit,
    )
    if args.format == "json":
        _print_json([item.model_dump(mode="json") for item in items])
    elif not items:
        print("コンテンツはありません。")
    else:
        for item in items:
            print(format_item_text(item))
    return 0


def cmd_ingest_email(orchestrator: ContentOrchestrator, args: argparse.Namespace) -> int:
    """メールファイルを直接取り込む"""
    source = orchestrator.repository.get_source(args.source_id)
    if source is None:
        print(f"Error: ID {args.source_id} のソースが見つかりません。", file=sys.stderr)
        return 1

    raw = Path(args.file).read_text(encoding="utf-8")
    item_id = orchestrator.pipeline.ingest_email(source, raw)
    if args.format == "json":
        _print_json({"created": item_id is not None, "item_id": item_id})
    elif item_id is None:
        print("取り込み済みのメールです。")
    else:
        print(f"取り込みました: ID {item_id}")
    return 0


def cmd_summarize(orchestrator: ContentOrchestrator, args: argparse.Namespace) -> int:
    """コンテンツを要約"""
    result = orchestrator.summarize(args.item_id, owner=args.owner)
    if args.format == "json":
        _print_json(result.model_dump(mode="json"))
    elif not result.success:
        print(f"Error: 要約に失敗しました: {result.error}", file=sys.stderr)
    else:
        summary = result.summary
        label = "作成しました" if result.created else "既存の要約"
        print(f"{label}: [{summary.id}] ({summary.sentiment.value}, {summary.confidence}%)")
        print(summary.summary)
        for point in summary.key_points:
            print(f"  - {point}")
    return 0 if result.success else 1


def cmd_replicate(orchestrator: ContentOrchestrator, args: argparse.Namespace) -> int:
    """要約を外部ストアに複製"""
    result = orchestrator.replicate(args.summary_id, args.provider)
    if args.format == "json":
        _print_json(result.model_dump(mode="json"))
    else:
        for provider_result in result.results:
            if provider_result.success:
                url = provider_result.location.url if provider_result.location else ""
                print(f"{provider_result.provider}: OK {url or ''}")
            else:
                print(f"{provider_result.provider}: NG {provider_result.error}")
        if not result.success:
            print(f"Error: {result.error}", file=sys.stderr)
    return 0 if result.success else 1


def cmd_status(orchestrator: ContentOrchestrator, args: argparse.Namespace) -> int:
    """監視状況を表示"""
    status = orchestrator.status(owner=args.owner)
    if args.format == "json":
        _print_json(status)
    else:
        print(f"有効なソース: {status['active_sources']}")
        print(f"最近の要約: {status['recent_summaries']}")
        print(f"最終活動: {status['last_activity'] or 'なし'}")
        for source in status["sources"]:
            print(f"  [{source['id']}] {source['name']} 最終確認: {source['last_checked'] or '未確認'}")
    return 0


def cmd_history(repo: ContentRepository, args: argparse.Namespace) -> int:
    """問い合わせ履歴を表示・削除"""
    service = InteractionService(repo)
    if args.clear:
        deleted = service.clear_history(args.owner)
        if args.format == "json":
            _print_json({"deleted": deleted})
        else:
            print(f"履歴を削除しました: {deleted}件")
        return 0

    conversations = service.history(args.owner, limit=args.limit)
    if args.format == "json":
        _print_json([c.model_dump(mode="json") for c in conversations])
    elif not conversations:
        print("履歴はありません")
    else:
        for conversation in conversations:
            print(f"[{conversation.created_at.isoformat()}] Q: {conversation.query}")
            print(f"  A: {conversation.response}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="コンテンツ監視CLI - ソースの監視・要約・複製",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=str, help="設定ファイル（デフォルト: config/content_monitor.yaml）")
    parser.add_argument("--db-path", type=str, help="SQLiteデータベースファイルのパス")
    parser.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="出力フォーマット（デフォルト: text）",
    )

    subparsers = parser.add_subparsers(dest="command", help="実行するコマンド", required=True)

    # sources コマンド
    parser_sources = subparsers.add_parser("sources", help="ソース管理")
    sources_sub = parser_sources.add_subparsers(dest="sources_command", required=True)

    parser_add = sources_sub.add_parser("add", help="ソースを登録")
    parser_add.add_argument("--owner", required=True, help="所有ユーザーID")
    parser_add.add_argument("--kind", required=True, choices=[k.value for k in SourceKind])
    parser_add.add_argument("--name", required=True, help="表示名")
    parser_add.add_argument("--url", required=True, help="チャンネルURL・フィードURL等")
    parser_add.add_argument("--metadata", help="追加設定（JSON）")

    parser_list = sources_sub.add_parser("list", help="ソース一覧")
    parser_list.add_argument("--owner", help="所有ユーザーID")
    parser_list.add_argument("--kind", choices=[k.value for k in SourceKind])
    parser_list.add_argument("--all", action="store_true", help="無効なソースも表示")

    parser_deactivate = sources_sub.add_parser("deactivate", help="ソースを無効化")
    parser_deactivate.add_argument("--id", type=int, required=True, help="ソースID")

    # monitor コマンド
    parser_monitor = subparsers.add_parser("monitor", help="監視を実行")
    parser_monitor.add_argument("--source-id", type=int, help="1ソースのみ監視")
    parser_monitor.add_argument("--owner", help="このユーザーのソースのみ監視")
    parser_monitor.add_argument("--auto-summarize", action="store_true", help="新規アイテムを要約")

    # items コマンド
    parser_items = subparsers.add_parser("items", help="コンテンツ一覧")
    parser_items.add_argument("--source-id", type=int)
    parser_items.add_argument("--unsummarized", action="store_true", help="未要約のみ")
    parser_items.add_argument("--limit", type=int, default=20)

    # ingest-email コマンド
    parser_ingest = subparsers.add_parser("ingest-email", help="メールファイルを取り込む")
    parser_ingest.add_argument("--source-id", type=int, required=True)
    parser_ingest.add_argument("--file", required=True, help="RFC 822形式のメールファイル")

    # summarize コマンド
    parser_summarize = subparsers.add_parser("summarize", help="コンテンツを要約")
    parser_summarize.add_argument("--item-id", type=int, required=True)
    parser_summarize.add_argument("--owner", help="要求ユーザーID")

    # replicate コマンド
    parser_replicate = subparsers.add_parser("replicate", help="要約を外部ストアに複製")
    parser_replicate.add_argument("--summary-id", type=int, required=True)
    parser_replicate.add_argument(
        "--provider", action="append", required=True, help="notion / google_docs（複数指定可）"
    )

    # status コマンド
    parser_status = subparsers.add_parser("status", help="監視状況")
    parser_status.add_argument("--owner")

    # ask コマンド
    parser_ask = subparsers.add_parser("ask", help="要約に質問する")
    parser_ask.add_argument("--owner", required=True)
    parser_ask.add_argument("--query", required=True)
    parser_ask.add_argument("--limit", type=int, default=5)
    parser_ask.add_argument("--no-llm", action="store_true", help="テンプレート回答のみ")

    # history コマンド
    parser_history = subparsers.add_parser("history", help="問い合わせ履歴")
    parser_history.add_argument("--owner", required=True)
    parser_history.add_argument("--limit", type=int, default=50)
    parser_history.add_argument("--clear", action="store_true", help="履歴を削除")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLIエントリポイント"""
    args = build_parser().parse_args(argv)

    config = MonitorConfig.from_yaml(Path(args.config) if args.config else None)
    if args.db_path:
        config.db_path = args.db_path
    setup_logger(log_level=config.log_level, log_file=config.log_file)

    repo = ContentRepository(db_path=config.db_path)

    try:
        if args.command == "sources":
            if args.sources_command == "add":
                return cmd_sources_add(repo, args)
            elif args.sources_command == "list":
                return cmd_sources_list(repo, args)
            return cmd_sources_deactivate(repo, args)
        elif args.command == "items":
            return cmd_items(repo, args)
        elif args.command == "history":
            return cmd_history(repo, args)
        elif args.command == "ask":
            answer = build_interaction(config, repo).ask(
                args.owner, args.query, limit=args.limit, use_llm=not args.no_llm
            )
            if args.format == "json":
                _print_json(answer.model_dump(mode="json"))
            else:
                print(answer.answer)
                print(f"(信頼度: {answer.confidence}%)")
            return 0

        orchestrator = build_orchestrator(config, repository=repo)
        if args.command == "monitor":
            return cmd_monitor(orchestrator, args)
        elif args.command == "ingest-email":
            return cmd_ingest_email(orchestrator, args)
        elif args.command == "summarize":
            return cmd_summarize(orchestrator, args)
        elif args.command == "replicate":
            return cmd_replicate(orchestrator, args)
        elif args.command == "status":
            return cmd_status(orchestrator, args)
        else:
            print(f"Error: 不明なコマンド: {args.command}", file=sys.stderr)
            return 1
    except ContentMonitorError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
