import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(log_file: str, level: str = "INFO", max_bytes: int = 10_000_000, backup_count: int = 5) -> logging.Logger:
    """Configure the `worktime` logger with a rotating file and a console handler.

    Calling it again replaces the handlers instead of stacking duplicates.
    """
    Path(log_file).parent.mkdir(exist_ok=True, parents=True)
    logger = logging.getLogger("worktime")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.setLevel(logging.WARNING)
    logger.addHandler(console)
    return logger
