"""
Logging setup for the ETH Chests client.

Console output is one coloured line per record. With CHEST_DEBUG=1 the
chest_app logger tree also writes DEBUG records (session transitions,
skipped logs, lifecycle events) to chest_debug.log.
"""
import logging
import sys
import os
from pathlib import Path

CHEST_DEBUG = os.getenv('CHEST_DEBUG', '').lower() in ('1', 'true', 'yes')

DEBUG_LOG_PATH = Path(__file__).parent.parent / 'chest_debug.log'

# web3 logs every RPC round trip at DEBUG/INFO
QUIET_LOGGERS = ('urllib3', 'web3', 'asyncio', 'uvicorn.access', 'watchfiles')


class ConsoleFormatter(logging.Formatter):
    """Level tag in colour; logger name only for debug and errors."""

    TAGS = {
        logging.DEBUG: ("\033[90m", "D", True),
        logging.INFO: ("\033[32m", "I", False),
        logging.WARNING: ("\033[33m", "W", False),
        logging.ERROR: ("\033[31m", "E", True),
        logging.CRITICAL: ("\033[31;1m", "!", True),
    }

    def __init__(self):
        super().__init__()
        self._formatters = {
            level: logging.Formatter(
                f"{colour}[{tag}]\033[0m " + ("%(name)s: " if with_name else "") + "%(message)s"
            )
            for level, (colour, tag, with_name) in self.TAGS.items()
        }

    def format(self, record):
        formatter = self._formatters.get(record.levelno, self._formatters[logging.INFO])
        return formatter.format(record)


def setup_logging(level=logging.INFO, debug_file: bool = CHEST_DEBUG, debug_path: Path = DEBUG_LOG_PATH):
    """Configure the root handler once at startup; returns the chest_app logger."""
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ConsoleFormatter())
    root.addHandler(handler)

    app_logger = logging.getLogger('chest_app')
    app_logger.setLevel(level)
    for existing in [h for h in app_logger.handlers if isinstance(h, logging.FileHandler)]:
        app_logger.removeHandler(existing)
        existing.close()

    if debug_file:
        app_logger.addHandler(debug_file_handler(debug_path))
        app_logger.setLevel(logging.DEBUG)
        app_logger.info(f"CHEST_DEBUG enabled - verbose logs written to {debug_path}")

    return app_logger


def debug_file_handler(path: Path = DEBUG_LOG_PATH) -> logging.FileHandler:
    file_handler = logging.FileHandler(path, mode='w', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    ))
    return file_handler
