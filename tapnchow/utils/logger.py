import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from tapnchow.config import Settings, settings as default_settings

LOGGER_NAME = "tapnchow"


def setup_logger(config: Optional[Settings] = None) -> logging.Logger:
    """
    Configure the shared "tapnchow" logger.

    Features:
    - Console output always
    - Daily rotating log file when a log directory is configured
    - Unified log format with timestamp and level

    Safe to call more than once; handlers are only attached the first time.
    """
    config = config or default_settings

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.log_level)

    # Avoid duplicate handlers if setup_logger() is called multiple times
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.log_dir:
        log_dir = Path(config.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=log_dir / "tapnchow.log",
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Logger initialized level=%s log_dir=%s", config.log_level, config.log_dir)
    return logger
