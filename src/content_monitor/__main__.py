"""コンテンツ監視CLI実行用エントリポイント

Usage:
    python -m src.content_monitor <command> [options]
"""

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
