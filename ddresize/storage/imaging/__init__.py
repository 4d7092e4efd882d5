"""Device-to-file imaging with progress reporting.

Main Functions:
    - create_image_file(): Image a raw device into a new file
    - ImageCopyEngine.copy(): Same, with a reusable engine

Progress:
    - report(): Clamped completion fraction and size labels
    - human_size(): Byte count in B/KB/MB/GB/TB, truncated to one decimal
    - LogProgressSink / NullProgressSink: ProgressSink implementations
"""

from .engine import ImageCopyEngine, create_image_file
from .progress import (
    CompositeProgressSink,
    LogProgressSink,
    NullProgressSink,
    ProgressReport,
    ProgressSink,
    human_size,
    report,
)


__all__ = [
    "ImageCopyEngine",
    "create_image_file",
    "CompositeProgressSink",
    "LogProgressSink",
    "NullProgressSink",
    "ProgressReport",
    "ProgressSink",
    "human_size",
    "report",
]
