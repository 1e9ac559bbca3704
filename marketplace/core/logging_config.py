"""
Centralized logging configuration for the application.
Provides consistent logging across all modules with console output.
"""

import logging
import sys


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure application-wide logging with console output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_format = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates on reload
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(log_format)
    root_logger.addHandler(console_handler)

    # Keep third-party clients quiet unless something goes wrong
    for noisy in ("uvicorn", "uvicorn.access", "httpx", "httpcore", "openai", "pymongo"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger("marketplace").setLevel(level)

    logging.info("Logging configured successfully")
