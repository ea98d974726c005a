"""
Logging for scenecast

One package logger writing to stdout:
- INFO lines are printed bare, as user-facing progress
- DEBUG lines carry millisecond timestamps and the thread name, since
  ticks, frame encoding and audio recording run on different threads
- WARNING and above are timestamped and tagged

Exports can additionally be traced to a detailed log file.

Usage:
    from scenecast.logger import logger, log_phase

    log_phase("Capturing 12.0s at 10 fps")
    logger.warning("Frame 12 could not be rendered")
"""

import logging
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional

from ._version import VERSION

APP_NAME = "scenecast"

DEFAULT_LEVEL = "INFO"


def get_log_level() -> int:
    """LOG_LEVEL env var (DEBUG, INFO, WARNING, ERROR, CRITICAL); INFO if unset or unknown."""
    name = os.environ.get("LOG_LEVEL", DEFAULT_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


# =============================================================================
# Formatters
# =============================================================================
class ConsoleFormatter(logging.Formatter):
    """Picks a format by level; one cached Formatter per level."""

    FORMATS = {
        logging.DEBUG: "%(asctime)s.%(msecs)03d [DEBUG] %(threadName)s: %(message)s",
        logging.INFO: "%(message)s",
        logging.WARNING: "%(asctime)s [WARN] %(message)s",
        logging.ERROR: "%(asctime)s [ERROR] %(message)s",
        logging.CRITICAL: "%(asctime)s [CRITICAL] %(message)s",
    }

    def __init__(self):
        super().__init__()
        self._formatters: Dict[int, logging.Formatter] = {
            level: logging.Formatter(fmt, datefmt="%H:%M:%S") for level, fmt in self.FORMATS.items()
        }

    def format(self, record: logging.LogRecord) -> str:
        formatter = self._formatters.get(record.levelno, self._formatters[logging.INFO])
        return formatter.format(record)


class FileFormatter(logging.Formatter):
    """Everything, with source location and thread, for post-mortem of an export."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(threadName)-15s | %(module)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


# =============================================================================
# Setup
# =============================================================================
def _file_handler(log_file: Path) -> logging.FileHandler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(FileFormatter())
    return handler


def setup_logger(
    name: str = APP_NAME,
    log_file: Optional[Path] = None,
    level: Optional[int] = None,
) -> logging.Logger:
    """
    Configure `name` with a stdout handler (and optionally a file handler).

    Calling it again for an already configured logger returns it unchanged.
    """
    log = logging.getLogger(name)
    if log.handlers:
        return log

    log_level = level or get_log_level()
    # Logger passes everything so a file handler still sees DEBUG
    log.setLevel(logging.DEBUG)
    log.propagate = False

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.setFormatter(ConsoleFormatter())
    log.addHandler(console)

    if log_file:
        log.addHandler(_file_handler(log_file))
    return log


def configure_file_logging(output_dir: Path, job_id: str) -> Path:
    """
    Attach `<output_dir>/export_<job_id>.log` to the package logger.

    Returns the log file path. The handler stays attached until
    detach_file_logging() is called with that path.
    """
    log_file = Path(output_dir) / f"export_{job_id}.log"
    log = logging.getLogger(APP_NAME)
    if not any(getattr(h, "baseFilename", None) == str(log_file.resolve()) for h in log.handlers):
        log.addHandler(_file_handler(log_file))
    return log_file


def detach_file_logging(log_file: Path) -> None:
    """Remove and close the handler writing to `log_file`, if any."""
    log = logging.getLogger(APP_NAME)
    target = str(Path(log_file).resolve())
    for handler in list(log.handlers):
        if getattr(handler, "baseFilename", None) == target:
            log.removeHandler(handler)
            handler.close()


@contextmanager
def export_log(output_dir: Path, job_id: str) -> Iterator[Path]:
    """Scope a per-export log file to a with-block."""
    log_file = configure_file_logging(output_dir, job_id)
    try:
        yield log_file
    finally:
        detach_file_logging(log_file)


# =============================================================================
# Package logger and helpers
# =============================================================================
logger = setup_logger()


def log_phase(title: str) -> None:
    """Framed heading for a major export phase."""
    rule = "═" * max(60, len(title) + 4)
    logger.info(f"\n{rule}\n  {title}\n{rule}")


def log_step(step: str, emoji: str = "▶") -> None:
    logger.info(f"{emoji} {step}")


def log_success(message: str) -> None:
    logger.info(f"   ✅ {message}")


def print_banner() -> None:
    """One-line startup banner with the running version."""
    logger.info(f"🎞️  {APP_NAME} v{VERSION}")
