"""Domain models for USB imaging operations."""

from __future__ import annotations

from .models import (
    BUS_KIND_USB,
    MEDIA_KIND_REMOVABLE,
    CaptureSize,
    CopyOutcome,
    CopyResult,
    CopySession,
    DeviceDescriptor,
    DiskPartition,
    LogicalVolume,
    PartitionDescriptor,
    PhysicalDisk,
)


__all__ = [
    "BUS_KIND_USB",
    "MEDIA_KIND_REMOVABLE",
    "CaptureSize",
    "CopyOutcome",
    "CopyResult",
    "CopySession",
    "DeviceDescriptor",
    "DiskPartition",
    "LogicalVolume",
    "PartitionDescriptor",
    "PhysicalDisk",
]
