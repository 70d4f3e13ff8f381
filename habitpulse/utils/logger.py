import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


def setup_logger(log_file: Optional[str] = "logs/habitpulse.log", level: str = "INFO",
                 max_bytes: int = 10_000_000, backup_count: int = 5,
                 fmt: str = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'):
    logger = logging.getLogger("habitpulse")
    logger.setLevel(level)
    formatter = logging.Formatter(fmt)

    # calling twice must not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(exist_ok=True, parents=True)
        handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
