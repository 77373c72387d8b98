"""
Main entry point for the Quote Voting System.
Provides command-line interface and system initialization.
"""

import argparse
import sys
from typing import List, Optional

from utils import api_logger, config_manager, initialize_logging, VoteSystemError


class QuoteVoteSystem:
    """引用投票系统主类"""

    def __init__(self):
        self.config = config_manager
        self._store = None

    @property
    def store(self):
        if self._store is None:
            from storage import create_quote_store
            self._store = create_quote_store(self.config.get_store_config())
        return self._store

    def start_api_server(self, host: Optional[str] = None, port: Optional[int] = None,
                         reload: bool = False):
        """启动API服务器"""
        import uvicorn

        api_config = self.config.get_api_config()
        host = host or api_config.host
        port = port or api_config.port
        api_logger.info(f"[Main] Starting API server on {host}:{port}")

        if reload or api_config.reload:
            uvicorn.run("api.app:app", host=host, port=port, reload=True, log_level="info")
        else:
            from api.app import app
            uvicorn.run(app, host=host, port=port, log_level="info")

    def init_store(self) -> int:
        """初始化引用存储"""
        total = self.store.count()
        print(f"Quote store ready: {total} quotes ({self.config.get_store_config().backend} backend)")
        return total

    def show_ranking(self, limit: Optional[int] = None):
        """打印排行榜"""
        from voting import QuoteViews

        ranked = QuoteViews(self.store).ranked()
        if limit:
            ranked = ranked[:limit]
        self._print_quotes(ranked, numbered=True)

    def search(self, query: str):
        """打印搜索结果"""
        from voting import QuoteViews

        matches = QuoteViews(self.store).search(query)
        if not matches:
            print("No quotes found")
            return
        self._print_quotes(matches)

    @staticmethod
    def _print_quotes(quotes: List, numbered: bool = False):
        for index, quote in enumerate(quotes, start=1):
            prefix = f"#{index:<3} " if numbered else ""
            print(f"{prefix}[{quote.id}] {quote.votes:>4} votes  {quote.text}")

    def close(self):
        if self._store is not None:
            self._store.close()


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="引用投票系统",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  python main.py serve --port 3000
  python main.py init-store
  python main.py ranking --limit 10
  python main.py search "code"
        """
    )
    subparsers = parser.add_subparsers(dest='command', help='可用命令')

    serve_parser = subparsers.add_parser('serve', help='启动API服务器')
    serve_parser.add_argument('--host', default=None, help='监听地址 (默认使用配置)')
    serve_parser.add_argument('--port', type=int, default=None, help='监听端口 (默认使用配置)')
    serve_parser.add_argument('--reload', action='store_true', help='代码变更时自动重启')

    subparsers.add_parser('init-store', help='初始化引用存储')

    ranking_parser = subparsers.add_parser('ranking', help='显示排行榜')
    ranking_parser.add_argument('--limit', type=int, default=None, help='显示数量')

    search_parser = subparsers.add_parser('search', help='搜索引用')
    search_parser.add_argument('query', help='搜索关键字')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    initialize_logging()
    system = QuoteVoteSystem()

    try:
        if args.command == 'serve':
            system.start_api_server(host=args.host, port=args.port, reload=args.reload)
        elif args.command == 'init-store':
            system.init_store()
        elif args.command == 'ranking':
            system.show_ranking(args.limit)
        elif args.command == 'search':
            system.search(args.query)
        return 0

    except KeyboardInterrupt:
        api_logger.info("[Main] Received keyboard interrupt")
        return 0
    except VoteSystemError as e:
        api_logger.error(f"[Main] System error: {e}")
        return 1
    finally:
        system.close()


if __name__ == "__main__":
    sys.exit(main())
