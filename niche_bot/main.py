#!/usr/bin/env python3
"""
Main entry point for the Niches Hunter newsletter bot.

Runs the daily pipeline once and exits: 0 on success (or skip), 1 on error.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from .config import ConfigError, load_config
from .pipeline import STATUS_SKIPPED, run_newsletter
from .ports import build_ports


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging() -> Path:
    """
    Configure logging to both console and file.

    Creates a timestamped log file in the logs/ directory.

    Returns:
        Path to the log file.
    """
    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"run_{timestamp}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(file_handler)

    return log_file


def run_daily() -> None:
    """
    Execute the daily newsletter pipeline.

    Raises:
        ConfigError: If configuration cannot be loaded.
        Exception: Whatever stopped the pipeline.
    """
    logger.info("Starting daily newsletter run...")

    config = load_config()
    logger.info("Configuration loaded successfully")

    result = run_newsletter(build_ports(config), config)

    if result.status == STATUS_SKIPPED:
        logger.info("Run skipped: no eligible daily picks")
    else:
        logger.info(f"Newsletter sent: {result.report.sent} sent, {result.report.failed} failed")


def main() -> None:
    """CLI entry point."""
    log_file = setup_logging()
    logger.info(f"Log file: {log_file.absolute()}")

    try:
        run_daily()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Script failed: {e}")
        sys.exit(1)

    logger.info("Script completed successfully")
    sys.exit(0)


if __name__ == "__main__":
    main()
