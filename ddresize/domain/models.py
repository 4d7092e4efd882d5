"""Domain model for USB imaging operations.

Type-safe objects passed between the pipeline stages: enumeration produces
``DeviceDescriptor`` values, partition lookup produces ``PartitionDescriptor``
values, and the copy engine owns a single ``CopySession`` for its lifetime.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


MEDIA_KIND_REMOVABLE = "removable"
BUS_KIND_USB = "usb"


# ==============================================================================
# Device Domain
# ==============================================================================


@dataclass(frozen=True)
class DeviceDescriptor:
    """A block device as reported by the platform inventory."""

    index: int  # OS-assigned, stable for one enumeration call
    model: str  # e.g., "SanDisk Cruzer Blade USB Device"
    name: str  # e.g., "\\\\.\\PHYSICALDRIVE1" or "/dev/sdb"
    media_kind: str  # "removable", "fixed", ...
    bus_kind: str  # "usb", "sata", ...
    size_bytes: int

    @property
    def is_removable_usb(self) -> bool:
        """Only removable, USB-attached devices are imaged."""
        return (
            self.media_kind == MEDIA_KIND_REMOVABLE and self.bus_kind == BUS_KIND_USB
        )


@dataclass(frozen=True)
class PartitionDescriptor:
    """A partition belonging to a specific device index."""

    name: str
    size_bytes: int


@dataclass(frozen=True)
class CaptureSize:
    """Number of bytes to capture from a device, with its breakdown."""

    total_bytes: int
    partitions: tuple[PartitionDescriptor, ...]
    margin_bytes: int

    @property
    def partition_bytes(self) -> int:
        return sum(partition.size_bytes for partition in self.partitions)


# ==============================================================================
# Association Graph (device -> partition -> logical volume)
# ==============================================================================


@dataclass(frozen=True)
class LogicalVolume:
    """A mountable volume exposed by a partition.

    ``label`` is the drive letter on Windows (e.g., "E:") and the partition
    name or mountpoint on Linux.
    """

    label: str


@dataclass(frozen=True)
class DiskPartition:
    name: str
    size_bytes: int
    volumes: tuple[LogicalVolume, ...] = ()


@dataclass(frozen=True)
class PhysicalDisk:
    device_id: str  # raw-access path understood by the OS
    index: int
    partitions: tuple[DiskPartition, ...] = ()


# ==============================================================================
# Copy Session Domain
# ==============================================================================


class CopyOutcome(Enum):
    """Terminal outcome of an imaging session."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class CopySession:
    """State of one active copy.

    ``total_bytes`` is fixed for the session; ``bytes_copied`` only grows.
    """

    source_path: str
    destination_path: str
    total_bytes: int
    chunk_size: int
    bytes_copied: int = 0
    session_id: str = field(default_factory=lambda: f"image-{uuid.uuid4().hex[:8]}")

    def advance(self, count: int) -> None:
        if count < 0:
            raise ValueError(f"Cannot advance session by negative count: {count}")
        self.bytes_copied += count

    @property
    def is_complete(self) -> bool:
        return self.bytes_copied >= self.total_bytes


@dataclass(frozen=True)
class CopyResult:
    """Outcome of ``ImageCopyEngine.copy``."""

    outcome: CopyOutcome
    bytes_copied: int
    total_bytes: int
    reason: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is CopyOutcome.COMPLETED
