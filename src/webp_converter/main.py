"""Main entry point for the S3 WebP converter."""

import argparse
import dataclasses
import functools
import logging
import signal
import sys
import threading
from pathlib import Path

from dependency_injector import providers
from sqlalchemy.exc import SQLAlchemyError

from webp_converter.config import Config
from webp_converter.handlers.conversion import process_object, run_conversion
from webp_converter.infrastructure import DependenciesContainer

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130
EXIT_TERMINATED = 143


def setup_logging(log_file: Path) -> None:
    """Log to stdout and append to the log file."""
    if sys.stdout.encoding != "utf-8":
        sys.stdout.reconfigure(encoding="utf-8")

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, mode="a", encoding="utf-8"),
        ],
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Convert JPEG/PNG/GIF objects in an S3 bucket to WebP in place"
    )
    parser.add_argument("--env-file", help="dotenv file to load (default: .env)")
    parser.add_argument("--bucket", help="Bucket to scan (overrides S3_BUCKET)")
    parser.add_argument("--prefix", help="Prefix to scan (overrides S3_FOLDER)")
    parser.add_argument("--workers", type=int, help="Concurrent conversions (overrides MAX_WORKERS)")
    parser.add_argument("--quality", type=int, help="WebP quality 0-100 (overrides WEBP_QUALITY)")
    parser.add_argument(
        "--lossless",
        action="store_true",
        default=None,
        help="Use lossless WebP (overrides WEBP_LOSSLESS)",
    )
    parser.add_argument("--staging-dir", type=Path, help="Local staging directory")
    parser.add_argument(
        "--create-table",
        action="store_true",
        help="Create the converted_files table if it does not exist",
    )
    parser.add_argument(
        "--report",
        action="store_true",
        help="Print the ledger records for the bucket and exit",
    )
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    """Load config from the environment and apply CLI overrides."""
    config = Config.from_env(args.env_file)

    overrides = {
        "s3_bucket": args.bucket,
        "s3_folder": args.prefix,
        "max_workers": args.workers,
        "webp_quality": args.quality,
        "webp_lossless": args.lossless,
        "staging_dir": args.staging_dir,
    }
    overrides = {name: value for name, value in overrides.items() if value is not None}
    if overrides:
        config = dataclasses.replace(config, **overrides)

    config.validate()
    return config


def print_report(ledger) -> None:
    """Log every ledger record."""
    records = ledger.get_records()
    for record in records:
        logger.info(
            "%s  %s  %d -> %d bytes",
            record.converted_time.isoformat(sep=" ", timespec="seconds"),
            record.filename,
            record.size,
            record.size_after,
        )
    logger.info("%d converted files recorded", len(records))


def main(argv: list[str] | None = None) -> None:
    """Entry point with CLI argument parsing."""
    args = parse_args(argv)

    try:
        config = load_config(args)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.log_file)
    logger.info("=" * 60)
    logger.info("Starting WebP conversion of s3://%s/%s", config.s3_bucket, config.s3_folder)
    logger.info("=" * 60)

    container = DependenciesContainer(config=providers.Object(config))

    try:
        ledger = container.ledger()
        if args.create_table:
            ledger.ensure_schema()
        ledger.ping()
        if not args.report:
            object_source = container.object_source()
            s3_downloader = container.s3_downloader()
            s3_uploader = container.s3_uploader()
    except SQLAlchemyError as e:
        logger.error("Ledger is unreachable: %s", e)
        sys.exit(1)
    except Exception as e:
        logger.error("Failed to initialise clients: %s", e, exc_info=True)
        sys.exit(1)

    if args.report:
        print_report(ledger)
        return

    cancel_event = threading.Event()

    def handle_sigterm(signum, frame):
        logger.warning("Received signal %d, cancelling", signum)
        cancel_event.set()

    signal.signal(signal.SIGTERM, handle_sigterm)

    process = functools.partial(
        process_object,
        s3_downloader=s3_downloader,
        s3_uploader=s3_uploader,
        ledger=ledger,
        config=config,
        cancel_event=cancel_event,
    )

    try:
        run_conversion(
            object_source=object_source,
            process=process,
            bucket=config.s3_bucket,
            prefix=config.s3_folder,
            max_workers=config.max_workers,
            cancel_event=cancel_event,
        )
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(EXIT_INTERRUPTED)

    if cancel_event.is_set():
        logger.warning("Run was cancelled before all objects were processed")
        sys.exit(EXIT_TERMINATED)


if __name__ == "__main__":
    main()
