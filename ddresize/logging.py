from __future__ import annotations

import os
import sys
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

DEFAULT_LOG_DIR = Path(
    os.environ.get(
        "DDRESIZE_LOG_DIR",
        Path.home() / ".local" / "state" / "ddresize" / "logs",
    )
)


def _should_log_progress(record) -> bool:
    """Filter per-chunk progress logs - only show in TRACE mode."""
    tags = record["extra"].get("tags", [])

    if "progress" in tags:
        return record["level"].no <= logger.level("TRACE").no

    return True


def _should_log_query(record) -> bool:
    """Filter raw inventory query dumps - these are noisy and not useful."""
    message = record["message"].lower()

    if message.startswith("stdout:") or message.startswith("stderr:"):
        return record["level"].no <= logger.level("TRACE").no

    return True


def _combined_filter(record) -> bool:
    """Combined filter for all log suppression rules."""
    return _should_log_progress(record) and _should_log_query(record)


def setup_logging(
    *,
    debug: bool = False,
    trace: bool = False,
    log_dir: Path | None = None,
) -> Logger:
    """
    Setup multi-tier logging with separate sinks for different log levels.

    Logging Tiers:
    - CRITICAL/ERROR: Device access failures, aborted copies
    - SUCCESS/INFO: Imaging sessions, device selection
    - DEBUG: Inventory queries, handle lifecycle
    - TRACE: Ultra-verbose (every chunk, raw query output)

    Log Files:
    - operations.log: INFO+ events (7 day retention)
    - debug.log: DEBUG+ events when --debug is enabled (3 day retention)
    - trace.log: TRACE+ events when --trace is enabled (1 day retention)
    - structured.jsonl: Structured JSON logs for analysis (7 day retention)

    Args:
        debug: Enable DEBUG level logging
        trace: Enable TRACE level logging (very verbose)
        log_dir: Custom log directory (defaults to ~/.local/state/ddresize/logs)
    """
    logger.remove()
    logger.configure(extra={"job_id": "-", "tags": [], "source": "APP"})

    if trace:
        console_level = "TRACE"
    elif debug:
        console_level = "DEBUG"
    else:
        # The console is shared with the progress bar; keep it quiet.
        console_level = "WARNING"

    # SINK 1: Console (stderr) - User-facing, filtered
    logger.add(
        sys.stderr,
        level=console_level,
        backtrace=False,
        diagnose=False,
        filter=_combined_filter,
        colorize=True,
        format=(
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[source]: <15}</cyan> | "
            "<blue>{extra[job_id]: <15}</blue> | "
            "{message}"
        ),
    )

    log_dir = log_dir or DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    # SINK 2: Operations Log - Important events only (INFO+)
    logger.add(
        log_dir / "operations.log",
        level="INFO",
        rotation="5 MB",
        retention="7 days",
        compression="zip",
        backtrace=False,
        diagnose=False,
        filter=lambda record: record["level"].no >= logger.level("INFO").no,
        format=(
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{extra[source]: <15} | "
            "{extra[job_id]: <15} | "
            "{message}"
        ),
    )

    # SINK 3: Debug Log - Detailed diagnostics (DEBUG+ when debug=True)
    if debug or trace:
        logger.add(
            log_dir / "debug.log",
            level="DEBUG",
            rotation="10 MB",
            retention="3 days",
            compression="zip",
            backtrace=True,
            diagnose=True,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{extra[source]: <15} | "
                "{extra[job_id]: <15} | "
                "{extra[tags]} | "
                "{message}"
            ),
        )

    # SINK 4: Trace Log - Ultra-verbose (TRACE only, when trace=True)
    if trace:
        logger.add(
            log_dir / "trace.log",
            level="TRACE",
            rotation="50 MB",
            retention="1 day",
            compression="zip",
            backtrace=False,
            diagnose=False,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{extra[source]: <15} | "
                "{extra[job_id]: <15} | "
                "{message}"
            ),
        )

    # SINK 5: Structured JSON Log - For analysis tools (INFO+)
    logger.add(
        log_dir / "structured.jsonl",
        level="INFO",
        rotation="10 MB",
        retention="7 days",
        compression="zip",
        serialize=True,
        format="{message}",
    )

    return logger


def get_logger(
    *,
    job_id: str | None = None,
    tags: Iterable[str] | None = None,
    source: str | None = None,
) -> Logger:
    """
    Get a logger with bound context.

    Args:
        job_id: Job identifier for tracking operations
        tags: Tags for filtering (e.g., ["imaging", "storage"])
        source: Source component (e.g., "imaging", "inventory")

    Returns:
        Logger with bound context
    """
    extras: dict[str, object] = {}
    if job_id is not None:
        extras["job_id"] = job_id
    if tags is not None:
        extras["tags"] = list(tags)
    if source is not None:
        extras["source"] = source
    return logger.bind(**extras)


@contextmanager
def operation_context(operation: str, job_id: str | None = None, **details):
    """
    Context manager for tracking long-running operations with automatic timing.

    Automatically logs operation start, completion, and failure with duration tracking.

    Args:
        operation: Operation name (e.g., "imaging")
        job_id: Identifier to bind; generated from the operation name if omitted
        **details: Operation-specific details to log

    Yields:
        Logger bound with job_id and operation context

    Example:
        with operation_context("imaging", source=r"\\\\.\\PHYSICALDRIVE1") as log:
            log.debug("Opening source device")
    """
    if job_id is None:
        job_id = f"{operation}-{uuid.uuid4().hex[:8]}"

    with logger.contextualize(
        job_id=job_id,
        operation=operation,
        **details,
    ):
        start_time = time.time()
        log = logger.bind(source=operation, job_id=job_id, tags=[operation])

        log.info(f"{operation.capitalize()} started", **details)

        try:
            yield log
            duration = time.time() - start_time
            log.success(
                f"{operation.capitalize()} completed", duration_seconds=round(duration, 2)
            )
        except Exception as e:
            duration = time.time() - start_time
            log.error(
                f"{operation.capitalize()} failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=round(duration, 2),
            )
            raise


class LoggerFactory:
    """
    Factory for creating domain-specific loggers with automatic context.

    Each factory method returns a logger pre-configured with appropriate
    source, tags, and context for the domain.
    """

    @staticmethod
    def for_imaging(job_id: str | None = None, **details) -> Logger:
        """Logger for device-to-file imaging sessions."""
        if job_id is None:
            job_id = f"image-{uuid.uuid4().hex[:8]}"
        return get_logger(
            job_id=job_id, source="imaging", tags=["imaging", "storage"]
        ).bind(**details)

    @staticmethod
    def for_inventory() -> Logger:
        """Logger for device enumeration and partition queries."""
        return get_logger(source="inventory", tags=["usb", "inventory"])

    @staticmethod
    def for_progress(job_id: str | None = None) -> Logger:
        """Logger for per-chunk progress events."""
        return get_logger(
            job_id=job_id or "-", source="progress", tags=["imaging", "progress"]
        )

    @staticmethod
    def for_system() -> Logger:
        """Logger for system operations (startup, shutdown, config)."""
        return get_logger(source="system", tags=["system"])


class ThrottledLogger:
    """
    Logger wrapper that throttles high-frequency log events.

    Useful for progress updates or other high-volume logs that should
    only be emitted at intervals.
    """

    def __init__(self, log: Logger, interval_seconds: float = 5.0):
        """
        Initialize throttled logger.

        Args:
            log: Base logger to wrap
            interval_seconds: Minimum seconds between log emissions
        """
        self.log = log
        self.interval = interval_seconds
        self.last_log_time: dict[str, float] = {}

    def info(self, key: str, message: str, **kwargs) -> None:
        """Log at INFO level, throttled by key."""
        self._throttled_log("INFO", key, message, **kwargs)

    def _throttled_log(self, level: str, key: str, message: str, **kwargs) -> None:
        now = time.time()
        last_time = self.last_log_time.get(key, 0)

        if now - last_time >= self.interval:
            log_method = getattr(self.log, level.lower())
            log_method(message, **kwargs)
            self.last_log_time[key] = now


class EventLogger:
    """
    Structured event logger using standardized schemas.

    Provides methods for logging common events with consistent structure
    and fields.
    """

    @staticmethod
    def log_imaging_started(
        log: Logger, source: str, destination: str, total_bytes: int, **extra
    ) -> None:
        """Log imaging session start."""
        log.info(
            "Imaging session started",
            event_type="imaging_started",
            source_device=source,
            destination_file=destination,
            total_bytes=total_bytes,
            **extra,
        )

    @staticmethod
    def log_imaging_progress(
        log: Logger, percent: float, bytes_copied: int, speed_mbps: float, **extra
    ) -> None:
        """Log imaging progress update."""
        log.debug(
            "Imaging progress update",
            event_type="imaging_progress",
            percent=round(percent, 2),
            bytes_copied=bytes_copied,
            speed_mbps=round(speed_mbps, 2),
            **extra,
        )

    @staticmethod
    def log_imaging_finished(
        log: Logger, outcome: str, bytes_copied: int, total_bytes: int, **extra
    ) -> None:
        """Log imaging session end with its terminal outcome."""
        level = "success" if outcome == "completed" else "warning"
        getattr(log, level)(
            f"Imaging session {outcome}",
            event_type="imaging_finished",
            outcome=outcome,
            bytes_copied=bytes_copied,
            total_bytes=total_bytes,
            **extra,
        )

    @staticmethod
    def log_devices_listed(log: Logger, count: int, **extra) -> None:
        """Log the result of a removable device enumeration."""
        log.info(
            f"Found {count} removable USB device(s)",
            event_type="devices_listed",
            device_count=count,
            **extra,
        )
