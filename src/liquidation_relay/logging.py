"""Logging setup: console plus an optional daily file under logs/."""

import logging
import sys
from datetime import datetime
from pathlib import Path

LOG_DIR = Path(__file__).parent.parent.parent / "logs"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-frame and per-request chatter from the socket and HTTP libraries.
QUIET_LOGGERS = ("websockets", "aiohttp.access")


def parse_level(level: int | str) -> int:
    """Accept ``logging.DEBUG`` or a name such as ``"debug"``; unknown names mean INFO."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: int | str = logging.INFO,
    log_to_file: bool = True,
    log_dir: Path = LOG_DIR,
) -> logging.Logger:
    """Configure the ``liquidation_relay`` logger tree.

    Args:
        level: Level or level name, usually from LOG_LEVEL
        log_to_file: Also write ``relay_YYYYMMDD.log`` under ``log_dir``
        log_dir: Directory for the daily file

    Returns:
        The package logger
    """
    logger = logging.getLogger("liquidation_relay")
    logger.setLevel(parse_level(level))
    logger.propagate = False

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_to_file:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(log_dir / f"relay_{datetime.now():%Y%m%d}.log", encoding="utf-8")
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
