"""Main entry point with CLI."""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from fcbq_scraper.config import config, Config
from fcbq_scraper.logging_conf import setup_logging
from fcbq_scraper.jobs.runner import ExportRunner
from fcbq_scraper.parse.models import RunMode
from fcbq_scraper.store.sinks import DirectorySink, write_documents

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="basquetcatala.cat match JSON exporter")

    parser.add_argument(
        "--url",
        default=None,
        help="Match statistics URL (single) or results listing URL (--bulk)",
    )
    parser.add_argument(
        "--bulk",
        action="store_true",
        help="Treat --url as a results page and export every match linked from it",
    )
    parser.add_argument(
        "--filename",
        default="",
        help="Output ZIP name (default: match_<id>.zip or bulk_matches_export_<timestamp>.zip)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help=f"Directory for the output (default: {config.OUTPUT_DIR})",
    )
    parser.add_argument(
        "--unzipped",
        action="store_true",
        help="Also write every JSON file loose into the output directory",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Verbose logs",
    )

    return parser.parse_args(argv)


def main(argv=None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging("DEBUG" if args.debug else None)

    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    mode = RunMode.BULK if args.bulk else RunMode.SINGLE
    url = args.url or (config.DEFAULT_LIST_URL if args.bulk else config.DEFAULT_SINGLE_URL)
    output_dir = args.output_dir or config.OUTPUT_DIR

    logger.info("=" * 60)
    logger.info("FCBQ Match Exporter Starting")
    logger.info(f"Mode: {mode.value}")
    logger.info(f"URL: {url}")
    logger.info(f"Output dir: {output_dir}")
    logger.info(f"Relays: {', '.join(config.RELAY_PROVIDERS) or 'default order'}")
    logger.info("=" * 60)

    runner = ExportRunner(
        url=url,
        mode=mode,
        custom_filename=args.filename,
        sink=DirectorySink(output_dir),
    )
    try:
        result = asyncio.run(runner.run())
        if args.unzipped and result.documents:
            asyncio.run(write_documents(result.documents, output_dir / Path(result.archive_name or "export").stem))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)

    if result.archive is None:
        sys.exit(1)


if __name__ == "__main__":
    main()
