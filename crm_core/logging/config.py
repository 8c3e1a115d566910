# =============================================================================
# crm_core/logging/config.py
# Logging Setup for the CRM Dashboard
# =============================================================================

import logging
import sys
import time
from datetime import date
from pathlib import Path
from typing import List, Optional, Union


LOG_FORMAT = "%(asctime)s | %(threadName)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_DIR = Path("logs")

# Chatty at INFO; only their warnings are interesting here
QUIET_LOGGERS = ("urllib3", "requests", "watchdog")


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _build_handlers(log_to_file: bool, log_filename: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_to_file:
        LOG_DIR.mkdir(exist_ok=True)
        filename = log_filename or f"crm_{date.today():%Y-%m-%d}.log"
        handlers.append(logging.FileHandler(LOG_DIR / filename, encoding="utf-8"))
    return handlers


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_to_file: bool = True,
    log_filename: Optional[str] = None,
) -> None:
    """
    Configure the root logger once per process.

    ``level`` accepts a number or a name such as ``"DEBUG"``; unknown names
    fall back to INFO. File logs go to ``logs/crm_<date>.log`` unless
    ``log_filename`` says otherwise. The thread name is part of every line
    so background revalidation is easy to tell apart from page renders.
    """
    logging.basicConfig(
        level=_resolve_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=_build_handlers(log_to_file, log_filename),
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("crm_core").info("Logging initialized")


def get_logger(name: str) -> logging.Logger:
    """Module logger; call as ``get_logger(__name__)``."""
    return logging.getLogger(name)


class LogContext:
    """
    Times a block and logs its start and outcome.

    Usage:
        with LogContext(logger, "Deleting customer 42"):
            client.customers.delete("42")
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.INFO):
        self.logger = logger
        self.operation = operation
        self.level = level
        self._started: Optional[float] = None

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._started if self._started is not None else 0.0

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.log(self.level, f"{self.operation}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_val is None:
            self.logger.log(self.level, f"{self.operation} took {self.elapsed:.2f}s")
        else:
            self.logger.warning(f"{self.operation} failed after {self.elapsed:.2f}s: {exc_val}")
        return False
