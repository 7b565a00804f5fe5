"""
CLI entry point for funding-ingest.

Usage:
    python -m funding_ingest discover --fromDate 2025-01-01 --toDate 2025-01-31
    python -m funding_ingest discover --resume --maxPages 5
    python -m funding_ingest process --concurrency 3
    python -m funding_ingest schedule
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path

import structlog

from .core.exceptions import ConfigError, DiscoveryFatalError

# Log level mapping
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def setup_logging(level: str = "INFO", json_output: bool = False):
    """Configure structured logging."""
    log_level = LOG_LEVELS.get(level.upper(), logging.INFO)

    if json_output:
        structlog.configure(
            processors=[
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.JSONRenderer(ensure_ascii=False),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(),
            cache_logger_on_first_use=True,
        )
    else:
        structlog.configure(
            processors=[
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
                structlog.dev.ConsoleRenderer(colors=True),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(),
            cache_logger_on_first_use=True,
        )


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per stage."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=str,
        help="Path to sources.yml config file",
    )
    common.add_argument(
        "--data-dir",
        type=str,
        help="Data directory for records, checkpoints and attachments (default: data)",
    )
    common.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    common.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs as JSON (for production)",
    )

    parser = argparse.ArgumentParser(
        prog="funding-ingest",
        description="Funding announcement ingestion and eligibility extraction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Discover one month of announcements
  python -m funding_ingest discover --fromDate 2025-01-01 --toDate 2025-01-31

  # Resume an interrupted discovery, at most 5 pages
  python -m funding_ingest discover --resume --maxPages 5

  # Walk listings only (no downloads, no writes)
  python -m funding_ingest discover --dry-run

  # Discover, then process the new captures in the same run
  python -m funding_ingest discover --process

  # Process pending captures with 3 workers, all tiers
  python -m funding_ingest process --concurrency 3 --maximize-enrichment

  # Run the cron schedule until interrupted
  python -m funding_ingest schedule
        """,
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    subparsers = parser.add_subparsers(dest="command")

    discover = subparsers.add_parser("discover", parents=[common], help="Walk listings and capture announcements")
    discover.add_argument(
        "--fromDate",
        dest="from_date",
        type=_parse_date,
        help="Window start, YYYY-MM-DD (default: today minus the discovery window)",
    )
    discover.add_argument(
        "--toDate",
        dest="to_date",
        type=_parse_date,
        help="Window end, YYYY-MM-DD (default: today)",
    )
    discover.add_argument(
        "--resume",
        action="store_true",
        help="Continue after the last checkpointed page",
    )
    discover.add_argument(
        "--maxPages",
        dest="max_pages",
        type=int,
        help="Maximum listing pages to walk",
    )
    discover.add_argument(
        "--dry-run",
        action="store_true",
        help="Count listing rows only - no downloads or writes",
    )
    discover.add_argument(
        "--source",
        type=str,
        help="Source id from sources.yml (default: ntis)",
    )
    discover.add_argument(
        "--process",
        action="store_true",
        help="Process pending captures once discovery completes",
    )

    process = subparsers.add_parser("process", parents=[common], help="Process pending captures")
    process.add_argument(
        "--concurrency",
        type=int,
        help="Worker slots (default: WORKER_CONCURRENCY or 1)",
    )
    process.add_argument(
        "--max-attempts",
        type=int,
        help="Attempts before MANUAL_REVIEW (default: 3)",
    )
    process.add_argument(
        "--maximize-enrichment",
        action="store_true",
        default=None,
        help="Run every permitted tier, filling only missing fields",
    )
    process.add_argument(
        "--use-expensive-model",
        action="store_true",
        default=None,
        help="Use the expensive model for document extraction",
    )

    subparsers.add_parser("expire", parents=[common], help="Expire programs past their deadline")
    subparsers.add_parser("schedule", parents=[common], help="Run scheduled discovery and expiry")

    return parser


def parse_args(argv=None):
    """Parse command line arguments."""
    return build_parser().parse_args(argv)


def load_settings(args):
    """Settings from the environment with CLI overrides applied."""
    from .config.settings import Settings

    settings = Settings.from_env()
    overrides = {}
    if args.config:
        overrides["config_path"] = args.config
    if args.data_dir:
        overrides["data_dir"] = Path(args.data_dir)
    if getattr(args, "source", None):
        overrides["source_id"] = args.source
    return dataclasses.replace(settings, **overrides) if overrides else settings


async def run_schedule(pipeline) -> None:
    """Start the scheduler and block until cancelled."""
    scheduler = pipeline.build_scheduler()
    scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown()


async def main_async(args) -> int:
    """Async main function."""
    from .orchestrator import IngestionPipeline
    from .pipeline.scheduler import discovery_window

    logger = structlog.get_logger(__name__)

    settings = load_settings(args)
    pipeline = IngestionPipeline(settings)

    logger.info("starting_funding_ingest", command=args.command, data_dir=str(settings.data_dir))

    if args.command == "discover":
        if args.process:
            pipeline.chain_processing()
        default_from, default_to = discovery_window(
            datetime.now().astimezone(), settings.discovery_window_days, settings.timezone
        )
        summary = await pipeline.run_discovery(
            from_date=args.from_date or default_from,
            to_date=args.to_date or default_to,
            resume=args.resume,
            max_pages=args.max_pages,
            dry_run=args.dry_run,
            source_id=args.source,
        )
    elif args.command == "process":
        summary = await pipeline.run_process(
            concurrency=args.concurrency,
            max_attempts=args.max_attempts,
            maximize_enrichment=args.maximize_enrichment,
            use_expensive_model=args.use_expensive_model,
        )
    elif args.command == "expire":
        summary = await pipeline.run_expiry()
    else:
        await run_schedule(pipeline)
        return 0

    print(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    # Version check
    if args.version:
        from . import __version__
        print(f"funding-ingest {__version__}")
        sys.exit(0)

    if not args.command:
        build_parser().print_help()
        sys.exit(2)

    # Setup logging
    setup_logging(args.log_level, args.json_logs)
    logger = structlog.get_logger(__name__)

    # Run async main
    try:
        sys.exit(asyncio.run(main_async(args)))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)
    except DiscoveryFatalError as e:
        logger.error("discovery_failed", error=str(e), last_page=e.last_page)
        sys.exit(1)
    except ConfigError as e:
        logger.error("config_error", error=str(e))
        sys.exit(1)
    except Exception as e:
        logger.exception("fatal_error", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
