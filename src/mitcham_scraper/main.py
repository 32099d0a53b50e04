"""
Command line entry point for a scrape run.

Exits 0 when the run completes, even if some pages or applications failed,
and 1 when the record store or first results page is unavailable.
"""

import asyncio
import logging
import os
import sys

import structlog

from src.mitcham_scraper.client import MitchamClient
from src.mitcham_scraper.config import ScraperConfig
from src.mitcham_scraper.pipeline import PipelineError, ScrapePipeline
from src.mitcham_scraper.store import RecordStore

logger = structlog.get_logger(__name__)


def configure_logging() -> None:
    """Configure stdlib logging and structlog for JSON output."""
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format="%(message)s")

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


async def main(config: ScraperConfig | None = None) -> int:
    """
    Run one scrape and return the process exit code.

    Args:
        config: Optional configuration (defaults to environment).
    """
    config = config or ScraperConfig.from_env()
    store = RecordStore(config.database_path)

    try:
        async with MitchamClient(config) as client:
            pipeline = ScrapePipeline(config, client, store)
            summary = await pipeline.run()
    except PipelineError as e:
        logger.error("Scrape run failed", phase=e.phase.value, error=e.message)
        return 1
    finally:
        await store.close()

    if summary.failed_pages or summary.failed_items:
        logger.warning(
            "Scrape completed with errors",
            failed_pages=summary.failed_pages,
            failed_items=summary.failed_items,
        )
    return 0


def run() -> None:
    """Console script entry point."""
    configure_logging()
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
