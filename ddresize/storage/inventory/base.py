"""Platform-independent device inventory capability."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator

from ddresize.domain import DeviceDescriptor, PartitionDescriptor, PhysicalDisk


class DeviceInventoryProvider(ABC):
    """Source of block device, partition and volume information.

    Implementations raise ``InventoryQueryError`` when the platform query
    itself cannot be performed, and ``PartitionQueryError`` from
    ``find_partitions_for_device``. Empty results are never errors.
    """

    @abstractmethod
    def list_block_devices(self) -> list[DeviceDescriptor]:
        """Return every whole-disk block device, unfiltered."""

    @abstractmethod
    def find_partitions_for_device(self, index: int) -> list[PartitionDescriptor]:
        """Return the partitions owned by the device with ``index``."""

    @abstractmethod
    def iter_physical_disks(self) -> Iterator[PhysicalDisk]:
        """Yield disks with their partitions and logical volumes."""

    def list_removable_block_devices(self) -> list[DeviceDescriptor]:
        return [device for device in self.list_block_devices() if device.is_removable_usb]
