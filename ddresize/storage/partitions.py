"""Capture size calculation from a device's partition table."""

from __future__ import annotations

from typing import Optional

from ddresize.domain import CaptureSize
from ddresize.logging import LoggerFactory

from .inventory import DeviceInventoryProvider, get_inventory_provider


log = LoggerFactory.for_inventory()

# Covers boot sectors, disk signatures and padding between or after
# partitions. This is a fixed approximation, not a proven bound: disks with
# unusual alignment can hold data beyond it.
CAPTURE_MARGIN_BYTES = 1048576


def compute_capture_size(
    device_index: int,
    provider: Optional[DeviceInventoryProvider] = None,
) -> CaptureSize:
    """Sum the partition sizes of ``device_index`` and add the fixed margin.

    A device without partitions is valid and yields just the margin.

    Raises:
        PartitionQueryError: If the partition query cannot be executed
    """
    provider = provider or get_inventory_provider()
    partitions = tuple(provider.find_partitions_for_device(device_index))
    partition_bytes = sum(partition.size_bytes for partition in partitions)
    total_bytes = partition_bytes + CAPTURE_MARGIN_BYTES
    log.debug(
        f"Device {device_index}: {len(partitions)} partition(s), "
        f"{partition_bytes} bytes + {CAPTURE_MARGIN_BYTES} margin = {total_bytes}"
    )
    return CaptureSize(
        total_bytes=total_bytes,
        partitions=partitions,
        margin_bytes=CAPTURE_MARGIN_BYTES,
    )
