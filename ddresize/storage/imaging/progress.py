"""Progress computation and reporting for imaging sessions."""

from __future__ import annotations

import math
import time
from typing import NamedTuple, Optional, Protocol

from ddresize.logging import EventLogger, LoggerFactory, ThrottledLogger


SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


class ProgressReport(NamedTuple):
    fraction_complete: float
    copied_label: str
    total_label: str

    @property
    def percent(self) -> float:
        return self.fraction_complete * 100


def human_size(size_bytes: Optional[int], unit: Optional[str] = None) -> str:
    """Render a byte count in the largest unit whose value is still >= 1.

    The value is truncated, not rounded, to one decimal place. ``unit`` caps
    the scaling, e.g. ``human_size(5 * 1024**3, "MB") == "5120.0MB"``.
    """
    if size_bytes is None:
        size_bytes = 0
    size = float(size_bytes)
    order = 0
    while size >= 1024 and order < len(SIZE_UNITS) - 1:
        if unit == SIZE_UNITS[order]:
            break
        size /= 1024
        order += 1
    truncated = math.floor(size * 10) / 10
    return f"{truncated:.1f}{SIZE_UNITS[order]}"


def report(bytes_copied: int, total_bytes: int) -> ProgressReport:
    """Compute completion for a copy in flight.

    The fraction is clamped to [0, 1]: the final chunk is written in full and
    may carry ``bytes_copied`` past ``total_bytes``.
    """
    if total_bytes <= 0:
        fraction = 1.0
    else:
        fraction = min(1.0, max(0.0, bytes_copied / total_bytes))
    return ProgressReport(
        fraction_complete=fraction,
        copied_label=human_size(bytes_copied),
        total_label=human_size(total_bytes),
    )


class ProgressSink(Protocol):
    """Receiver of per-chunk progress. Called once after every chunk."""

    def on_progress(self, bytes_copied: int, total_bytes: int) -> None:
        ...


class NullProgressSink:
    def on_progress(self, bytes_copied: int, total_bytes: int) -> None:
        return None


class LogProgressSink:
    """Emit throttled structured progress events instead of drawing a bar."""

    def __init__(self, job_id: Optional[str] = None, interval_seconds: float = 5.0):
        self.job_id = job_id or "-"
        self.log = LoggerFactory.for_progress(self.job_id)
        self.throttled = ThrottledLogger(self.log, interval_seconds)
        self.started_at = time.monotonic()

    def on_progress(self, bytes_copied: int, total_bytes: int) -> None:
        progress = report(bytes_copied, total_bytes)
        self.log.trace(f"{progress.copied_label} of {progress.total_label}")
        self.throttled.info(
            self.job_id,
            f"Copied {progress.copied_label} of {progress.total_label}",
            percent=round(progress.percent, 2),
        )
        if progress.fraction_complete >= 1.0:
            elapsed = max(time.monotonic() - self.started_at, 1e-6)
            EventLogger.log_imaging_progress(
                self.log, progress.percent, bytes_copied, bytes_copied / elapsed / (1024 * 1024)
            )


class CompositeProgressSink:
    """Fan one progress stream out to several sinks."""

    def __init__(self, *sinks: ProgressSink):
        self.sinks = sinks

    def on_progress(self, bytes_copied: int, total_bytes: int) -> None:
        for sink in self.sinks:
            sink.on_progress(bytes_copied, total_bytes)
