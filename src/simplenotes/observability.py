"""Observability utilities for simplenotes.

Logging goes to a rotating file under ``~/.simplenotes/logs`` (plus the
console). Repository and service calls are timed into an in-process
``MetricsCollector`` whose summary is served by ``/health``, together with
the number of stale tags reclaimed since startup.
"""
import functools
import logging
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

# Default log directory (can be overridden via configure_logging)
DEFAULT_LOG_DIR = Path.home() / ".simplenotes" / "logs"

# Logging format with ISO 8601 timestamps
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

F = TypeVar('F', bound=Callable[..., Any])


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB per file
    backup_count: int = 5,
    console: bool = True,
) -> Path:
    """Configure persistent file logging with rotation.

    Sets up a rotating file handler for the ``simplenotes`` logger hierarchy.
    Log files are rotated when they reach max_bytes, keeping backup_count old files.

    Args:
        log_dir: Directory for log files. Defaults to ~/.simplenotes/logs/
        level: Logging level (default: INFO)
        max_bytes: Maximum size per log file before rotation (default: 10 MB)
        backup_count: Number of rotated files to keep (default: 5)
        console: Also log to console (default: True)

    Returns:
        Path to the log directory
    """
    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger("simplenotes")
    root_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    log_file = log_path / "simplenotes.log"
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    if console and not any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler)
        for h in root_logger.handlers
    ):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    root_logger.info(f"Logging configured: {log_file} (max {max_bytes} bytes, {backup_count} backups)")

    return log_path


@dataclass
class OperationStats:
    """Counters for one operation name (``update_note``, ``service.delete_note``, ...)."""
    calls: int = 0
    failures: int = 0
    total_ms: float = 0.0
    last_error: Optional[str] = None


class MetricsCollector:
    """Thread-safe, in-process counters served by the health endpoint."""

    def __init__(self):
        self._operations: Dict[str, OperationStats] = defaultdict(OperationStats)
        self._tags_reclaimed = 0
        self._lock = Lock()
        self._start_time = datetime.now(timezone.utc)

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None
    ) -> None:
        with self._lock:
            stats = self._operations[operation]
            stats.calls += 1
            stats.total_ms += duration_ms
            if not success:
                stats.failures += 1
                stats.last_error = error

    def record_reclaimed(self, count: int) -> None:
        """Add committed stale-tag deletions to the running total."""
        with self._lock:
            self._tags_reclaimed += count

    def get_summary(self) -> Dict[str, Any]:
        """Summary of server activity since startup (or the last reset)."""
        with self._lock:
            operations = {
                name: {
                    'calls': s.calls,
                    'failures': s.failures,
                    'avg_ms': round(s.total_ms / s.calls, 2) if s.calls else 0.0,
                    'last_error': s.last_error,
                }
                for name, s in self._operations.items()
            }
            return {
                'uptime_seconds': (datetime.now(timezone.utc) - self._start_time).total_seconds(),
                'total_operations': sum(s.calls for s in self._operations.values()),
                'total_failures': sum(s.failures for s in self._operations.values()),
                'tags_reclaimed': self._tags_reclaimed,
                'operations': operations,
            }

    def reset(self) -> None:
        """Reset all counters (useful for testing)."""
        with self._lock:
            self._operations.clear()
            self._tags_reclaimed = 0
            self._start_time = datetime.now(timezone.utc)


# Global metrics collector instance
metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context):
    """Time a block, log it at DEBUG with a correlation ID and record it.

    Yields a dict the block may fill with result details for the END line.
    Exceptions are recorded as failures and re-raised.
    """
    correlation_id = uuid.uuid4().hex[:8]
    start_time = time.perf_counter()
    result_info: Dict[str, Any] = {}

    context_str = ', '.join(f'{k}={v}' for k, v in context.items())
    logger.debug(f"[{correlation_id}] START {operation} ({context_str})")

    error_msg = None
    try:
        yield result_info
    except Exception as e:
        error_msg = str(e)
        raise
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        metrics.record_operation(operation, duration_ms, error_msg is None, error_msg)

        result_str = ', '.join(f'{k}={v}' for k, v in result_info.items())
        status = 'OK' if error_msg is None else f'ERROR: {error_msg}'
        logger.debug(
            f"[{correlation_id}] END {operation} "
            f"({duration_ms:.2f}ms) [{status}] {result_str}"
        )


def traced(operation_name: str) -> Callable[[F], F]:
    """Decorator that runs a repository method inside timed_operation.

    A ``note_id`` keyword argument is included in the log context.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            context = {}
            if "note_id" in kwargs:
                context["note_id"] = kwargs["note_id"]
            with timed_operation(operation_name, **context):
                return func(self, *args, **kwargs)

        return wrapper  # type: ignore
    return decorator
