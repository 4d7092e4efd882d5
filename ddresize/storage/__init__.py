"""Device inventory, resolution, sizing and imaging."""

from .catalog import list_removable_drives
from .partitions import CAPTURE_MARGIN_BYTES, compute_capture_size
from .resolver import ResolvedDevice, parse_device_index, resolve_physical_path


__all__ = [
    "CAPTURE_MARGIN_BYTES",
    "ResolvedDevice",
    "compute_capture_size",
    "list_removable_drives",
    "parse_device_index",
    "resolve_physical_path",
]
