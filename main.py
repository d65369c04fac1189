# main.py
"""
Entry point for the veille crawler.

``python main.py run`` executes one monitoring cycle and prints its summary;
``python main.py serve`` exposes the HTTP trigger.
"""
import argparse
import asyncio
import json
import os
import sys

from loguru import logger

from crawler.errors import ConfigurationError
from crawler.factories import create_pipeline
from crawler.health.trigger_server import start_trigger_server
from utils.config.settings import ScraperSettings

LOG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')
LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", log_to_file: bool = True) -> None:
    logger.remove()
    logger.add(sys.stdout, format=LOG_FORMAT, level=level)
    if log_to_file:
        os.makedirs(LOG_DIR, exist_ok=True)
        logger.add(os.path.join(LOG_DIR, "veille_{time}.log"), rotation="1 day", retention="7 days", level="INFO")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Veille crawler: regulatory-change monitoring for customs sources")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"), help="Console log level")
    parser.add_argument("--no-log-file", action="store_true", help="Disable the rotating log file")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run one monitoring cycle and exit")
    run_parser.add_argument("--mode", choices=["full", "sites", "keywords"], default="full",
                            help="Which steps of the cycle to run")
    run_parser.add_argument("--site-id", help="Only crawl this site")
    run_parser.add_argument("--keyword-id", help="Only search this keyword")

    serve_parser = subparsers.add_parser("serve", help="Serve the HTTP trigger endpoint")
    serve_parser.add_argument("--port", type=int, default=int(os.environ.get('PORT', 8000)),
                              help="Port to listen on")
    return parser


def run_once(settings: ScraperSettings, mode: str, site_id=None, keyword_id=None) -> int:
    try:
        pipeline = create_pipeline(settings)
        summary = asyncio.run(pipeline.run(mode=mode, site_id=site_id, keyword_id=keyword_id))
    except ConfigurationError as e:
        logger.error(f"❌ {e}")
        return 2

    print(json.dumps({"success": True, **summary.to_dict()}, indent=2, ensure_ascii=False))
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, log_to_file=not args.no_log_file)

    settings = ScraperSettings.from_env()

    if args.command == "serve":
        start_trigger_server(port=args.port, settings=settings)
        return 0

    if args.command == "run":
        return run_once(settings, args.mode, args.site_id, args.keyword_id)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
