"""SmartCal entry point.

Changes:
  - 2026-10-12: Added --ai flag to extract (routes through the local Ollama model).
  - 2026-10-07: Added `serve` command (REST API via uvicorn).
  - 2026-10-06: Initial CLI with `extract`.
"""

import argparse
import asyncio
import json
import logging
import sys

from smartcal import __version__
from smartcal.config import get_settings
from smartcal.logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run_extract(texts: list[str], use_ai: bool) -> dict:
    from smartcal.extraction.ai_client import OllamaChatClient
    from smartcal.extraction.service import EventExtractionService

    settings = get_settings()
    ai_client = OllamaChatClient(settings) if use_ai or settings.ai_extraction_enabled else None
    service = EventExtractionService(settings, ai_client=ai_client)

    if len(texts) == 1:
        return (await service.extract_events(texts[0])).to_dict()
    return (await service.extract_events_batch(texts)).to_dict()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="smartcal",
        description="📅 SmartCal - turn chat text into calendar events and reminders",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  smartcal extract "明天下午3点开会讨论项目进度"
  smartcal extract "2026年2月14日 上午 体检" "下周 准备季度汇报"
  smartcal extract --ai "周五和客户约见"
  smartcal serve --port 8890
""",
    )
    parser.add_argument("--version", "-v", action="version", version=f"smartcal {__version__}")
    parser.add_argument("--log-level", default=None, help="Logging level (default from settings)")

    subparsers = parser.add_subparsers(dest="command")

    extract_parser = subparsers.add_parser("extract", help="Extract events from text")
    extract_parser.add_argument("texts", nargs="+", help="Text(s) to extract events from")
    extract_parser.add_argument(
        "--ai", action="store_true", help="Use the configured Ollama model instead of rules"
    )

    serve_parser = subparsers.add_parser("serve", help="Run the REST API server")
    serve_parser.add_argument("--host", default=None, help="Bind host (default from settings)")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")

    args = parser.parse_args()
    settings = get_settings()
    setup_logging(level=args.log_level or settings.log_level)

    if args.command == "extract":
        result = asyncio.run(_run_extract(args.texts, args.ai))
        json.dump(result, sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
    elif args.command == "serve":
        from smartcal.api.app import run_api_server

        run_api_server(settings, host=args.host, port=args.port)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
