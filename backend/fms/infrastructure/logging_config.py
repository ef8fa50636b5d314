"""
Logging configuration for the application
Writes one log file per day under the configured log directory
"""
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime
from pathlib import Path

from ..config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_dir: Path = None, level: str = None):
    """Configure logging with daily files plus console output"""

    log_dir = Path(log_dir) if log_dir is not None else settings.log_path
    log_dir.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    # Log file named after the current date (YYYY-MM-DD)
    today = datetime.now().strftime("%Y-%m-%d")
    log_file = log_dir / f"fms_{today}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Drop existing handlers to avoid duplicated lines
    root_logger.handlers.clear()

    # maxBytes=10MB, backupCount=5
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logging.getLogger("fms").setLevel(level)
    logging.getLogger("fms.api").setLevel(level)

    # Stock movements and document numbers are audit-relevant, always keep INFO
    logging.getLogger("fms.application.services_inventory").setLevel(min(level, logging.INFO))
    logging.getLogger("fms.application.services_sequence").setLevel(min(level, logging.INFO))

    # SQLAlchemy: warnings and errors only
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)

    logging.getLogger("uvicorn").setLevel(logging.INFO)

    logging.info("Logging configured. File: %s", log_file)

    return root_logger
