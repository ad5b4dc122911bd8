"""
Logging setup for the shielded pool.

Every subsystem logs under `shielded_pool.<subsystem>` (tree, ledger,
verifier.gate, storage.sqlite, batch, ...). Console output is colored and
goes to stderr, so commands that print JSON on stdout stay machine-readable.
A rotating plain-text file log is added only when a caller asks for it
(the CLI does; importing the library never creates files).
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import colorlog

ROOT_LOGGER = "shielded_pool"
LOG_FILE = "shielded_pool.log"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


def _console_handler(level: int) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s",
        datefmt=_DATE_FORMAT,
        log_colors=_COLORS,
    ))
    return handler


def _file_handler(log_dir: Path, level: int) -> logging.Handler:
    handler = RotatingFileHandler(log_dir / LOG_FILE, maxBytes=10 * 1024 * 1024, backupCount=5)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(name)s] %(levelname)-8s %(message)s",
        datefmt=_DATE_FORMAT,
    ))
    return handler


class PoolLogger:
    """Owns the handlers of the `shielded_pool` logger tree."""

    _initialized = False
    _log_dir: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
        force: bool = False,
    ):
        """
        Configure console (and optionally file) logging.

        Args:
            level: Logging level for every handler
            log_dir: Directory for the rotating log file (default ./logs)
            log_to_file: Add the file handler
            force: Replace handlers installed by an earlier call
        """
        if cls._initialized and not force:
            return

        root_logger = logging.getLogger(ROOT_LOGGER)
        root_logger.setLevel(level)
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

        root_logger.addHandler(_console_handler(level))

        cls._log_dir = None
        if log_to_file:
            cls._log_dir = Path(log_dir) if log_dir else Path("logs")
            cls._log_dir.mkdir(parents=True, exist_ok=True)
            root_logger.addHandler(_file_handler(cls._log_dir, level))

        cls._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._initialized:
            cls.setup()
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def get_logger(name: str) -> logging.Logger:
    """Get the logger of one subsystem, e.g. get_logger("ledger")."""
    return PoolLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
):
    """(Re)configure logging; later calls replace earlier handlers."""
    PoolLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file, force=True)
