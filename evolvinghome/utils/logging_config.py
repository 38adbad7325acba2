"""
Logging setup for EvolvingHome.

Modules log through ``logging.getLogger(__name__)``; entry points (API,
CLI) call ``ensure_logging()`` once. Home and request context travels in
``extra=`` and is rendered by both formatters:

    logger.info("Recalculated score", extra={"home_id": home.id})
    # 2026-03-01 12:00:00 | INFO     | evolvinghome.scoring.service | Recalculated score [home_id=...]

Level comes from ``EVOLVINGHOME_LOG_LEVEL``; set ``EVOLVINGHOME_LOG_FILE``
to also append JSON lines to a file.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

CONTEXT_KEYS = ("home_id", "postcode", "category", "error_kind")

# HTTP client chatter from requests, supabase and the FastAPI test client
QUIET_LOGGERS = ("urllib3", "requests", "httpx", "httpcore", "hpack")


def _context(record: logging.LogRecord) -> dict:
    return {key: getattr(record, key) for key in CONTEXT_KEYS if hasattr(record, key)}


class ConsoleFormatter(logging.Formatter):
    """Pipe-separated console lines, coloured by level on a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: Optional[bool] = None):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.use_colors = sys.stdout.isatty() if use_colors is None else use_colors

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if context:
            line += " [" + ", ".join(f"{k}={v}" for k, v in context.items()) + "]"
        if not self.use_colors:
            return line
        return f"{self.LEVEL_COLORS.get(record.levelno, '')}{line}{self.RESET}"


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO", log_file: Optional[Union[str, Path]] = None) -> None:
    """
    (Re)configure the root logger.

    Replaces any existing root handlers with a console handler at ``level``
    and, when ``log_file`` is given, a DEBUG-level JSON-lines file handler.
    """
    numeric = getattr(logging, str(level).upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(numeric)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ConsoleFormatter())
    console.setLevel(numeric)
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(JsonLineFormatter())
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)
        if numeric > logging.DEBUG:
            # console keeps its own threshold; the file sees everything
            root.setLevel(logging.DEBUG)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


_initialized = False


def ensure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure logging on first call; later calls are no-ops."""
    global _initialized
    if not _initialized:
        setup_logging(level or "INFO", log_file)
        _initialized = True
