"""Block device inventory for Windows using WMI (root\\CIMV2).

Classes queried:
    - Win32_DiskDrive: MediaType, InterfaceType, Size, Model, Name, Index, DeviceID
    - Win32_DiskPartition: Name, Size, filtered by DiskIndex
    - Win32_LogicalDisk: reached through the partition associations; its
      Name is the drive letter ("E:")
"""

from __future__ import annotations

from typing import Any, Iterator, Optional

from ddresize.domain import (
    BUS_KIND_USB,
    MEDIA_KIND_REMOVABLE,
    DeviceDescriptor,
    DiskPartition,
    LogicalVolume,
    PartitionDescriptor,
    PhysicalDisk,
)
from ddresize.logging import LoggerFactory
from ddresize.storage.exceptions import InventoryQueryError, PartitionQueryError

from .base import DeviceInventoryProvider


log = LoggerFactory.for_inventory()

WMI_NAMESPACE = "root\\CIMV2"
WMI_REMOVABLE_MEDIA = "Removable Media"
WMI_USB_INTERFACE = "USB"


def _media_kind(media_type: Optional[str]) -> str:
    if media_type == WMI_REMOVABLE_MEDIA:
        return MEDIA_KIND_REMOVABLE
    return (media_type or "unknown").lower()


def _bus_kind(interface_type: Optional[str]) -> str:
    if interface_type == WMI_USB_INTERFACE:
        return BUS_KIND_USB
    return (interface_type or "unknown").lower()


def _to_int(value: Any) -> int:
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return 0


class WmiInventoryProvider(DeviceInventoryProvider):
    """Device inventory backed by WMI.

    Args:
        connection: An existing ``wmi.WMI`` connection; one is opened on first
            use when omitted.
    """

    def __init__(self, connection: Any = None):
        self._connection = connection

    @property
    def connection(self) -> Any:
        if self._connection is None:
            import wmi

            try:
                self._connection = wmi.WMI(namespace=WMI_NAMESPACE, privileges=["Security"])
            except Exception as error:
                raise InventoryQueryError(WMI_NAMESPACE, str(error)) from error
            log.debug(f"Connected to WMI namespace {WMI_NAMESPACE}")
        return self._connection

    def list_block_devices(self) -> list[DeviceDescriptor]:
        connection = self.connection
        try:
            disks = list(connection.Win32_DiskDrive())
        except Exception as error:
            raise InventoryQueryError("Win32_DiskDrive", str(error)) from error
        descriptors = [
            DeviceDescriptor(
                index=_to_int(disk.Index),
                model=(disk.Model or "").strip(),
                name=disk.Name or "",
                media_kind=_media_kind(disk.MediaType),
                bus_kind=_bus_kind(disk.InterfaceType),
                size_bytes=_to_int(disk.Size),
            )
            for disk in disks
        ]
        log.debug(f"Win32_DiskDrive returned {len(descriptors)} disks")
        return descriptors

    def find_partitions_for_device(self, index: int) -> list[PartitionDescriptor]:
        try:
            partitions = list(self.connection.Win32_DiskPartition(DiskIndex=index))
        except Exception as error:
            raise PartitionQueryError(index, str(error)) from error
        return [
            PartitionDescriptor(name=partition.Name or "", size_bytes=_to_int(partition.Size))
            for partition in partitions
        ]

    def iter_physical_disks(self) -> Iterator[PhysicalDisk]:
        connection = self.connection
        try:
            for disk in connection.Win32_DiskDrive():
                partitions = []
                for partition in disk.associators("Win32_DiskDriveToDiskPartition"):
                    volumes = tuple(
                        LogicalVolume(label=str(logical.Name))
                        for logical in partition.associators("Win32_LogicalDiskToPartition")
                        if logical.Name
                    )
                    partitions.append(
                        DiskPartition(
                            name=partition.Name or "",
                            size_bytes=_to_int(partition.Size),
                            volumes=volumes,
                        )
                    )
                yield PhysicalDisk(
                    device_id=str(disk.DeviceID),
                    index=_to_int(disk.Index),
                    partitions=tuple(partitions),
                )
        except InventoryQueryError:
            raise
        except Exception as error:
            raise InventoryQueryError("Win32_DiskDrive associations", str(error)) from error
