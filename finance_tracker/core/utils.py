"""Shared utility functions for the Finance Tracker project."""

import logging
from datetime import UTC, datetime
from pathlib import Path

import colorlog
from colorlog.escape_codes import escape_codes

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ROOT_LOGGER = "finance-tracker"

_file_handler: logging.Handler | None = None


def get_logger(name: str) -> logging.Logger:
    """Get a logger with a colorized format for the project."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = colorlog.ColoredFormatter(
            f"%(log_color)s{LOG_FORMAT}",
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    if _file_handler is not None and _file_handler not in logger.handlers:
        logger.addHandler(_file_handler)
    logger.propagate = False
    return logger


def setup_logging(log_dir: str | Path = "logs") -> None:
    """Configure logging to file and console for every project logger."""
    global _file_handler  # noqa: PLW0603
    ensure_dir(log_dir)
    if _file_handler is None:
        # Plain text in the file, colors only on the console
        _file_handler = logging.FileHandler(Path(log_dir) / "finance_tracker.log")
        _file_handler.setLevel(logging.INFO)
        _file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    for name in list(logging.Logger.manager.loggerDict):
        if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
            get_logger(name)


def color(name: str) -> str:
    """Return the terminal escape code for a colorlog color name (empty when unknown)."""
    return escape_codes.get(name, "")


def ensure_dir(path: str | Path) -> None:
    """Ensure a directory exists (like mkdir -p)."""
    Path(path).mkdir(parents=True, exist_ok=True)


def utcnow() -> datetime:
    """Get the current UTC time as an aware datetime."""
    return datetime.now(UTC)


def truncate(text: str, limit: int = 300) -> str:
    """Shorten text for log output."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."
