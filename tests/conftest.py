"""
Pytest configuration and shared fixtures for ddresize tests.

This module provides common fixtures and utilities used across all test modules.
"""

import io
import json
from types import SimpleNamespace
from typing import Any, Dict, Iterator, List, Optional

import pytest

from ddresize.domain import (
    DeviceDescriptor,
    DiskPartition,
    LogicalVolume,
    PartitionDescriptor,
    PhysicalDisk,
)
from ddresize.storage.exceptions import InventoryQueryError, PartitionQueryError
from ddresize.storage.inventory import DeviceInventoryProvider
from ddresize.storage.reader import BlockDeviceReader


# ==============================================================================
# Inventory Fakes
# ==============================================================================


class FakeInventoryProvider(DeviceInventoryProvider):
    """In-memory inventory with optional query failures."""

    def __init__(
        self,
        devices: Optional[List[DeviceDescriptor]] = None,
        partitions: Optional[Dict[int, List[PartitionDescriptor]]] = None,
        disks: Optional[List[PhysicalDisk]] = None,
        fail_queries: bool = False,
    ):
        self.devices = devices or []
        self.partitions = partitions or {}
        self.disks = disks or []
        self.fail_queries = fail_queries
        self.disks_visited: List[str] = []

    def list_block_devices(self) -> List[DeviceDescriptor]:
        if self.fail_queries:
            raise InventoryQueryError("Win32_DiskDrive", "Access denied")
        return list(self.devices)

    def find_partitions_for_device(self, index: int) -> List[PartitionDescriptor]:
        if self.fail_queries:
            raise PartitionQueryError(index, "Access denied")
        return list(self.partitions.get(index, []))

    def iter_physical_disks(self) -> Iterator[PhysicalDisk]:
        if self.fail_queries:
            raise InventoryQueryError("Win32_DiskDrive associations", "Access denied")
        for disk in self.disks:
            self.disks_visited.append(disk.device_id)
            yield disk


@pytest.fixture
def usb_descriptor() -> DeviceDescriptor:
    return DeviceDescriptor(
        index=1,
        model="SanDisk Cruzer Blade USB Device",
        name="\\\\.\\PHYSICALDRIVE1",
        media_kind="removable",
        bus_kind="usb",
        size_bytes=16008609792,
    )


@pytest.fixture
def system_descriptor() -> DeviceDescriptor:
    return DeviceDescriptor(
        index=0,
        model="Samsung SSD 970 EVO",
        name="\\\\.\\PHYSICALDRIVE0",
        media_kind="fixed hard disk media",
        bus_kind="scsi",
        size_bytes=500107862016,
    )


@pytest.fixture
def windows_disks() -> List[PhysicalDisk]:
    """System disk with C:, USB drive with E: and F:."""
    return [
        PhysicalDisk(
            device_id="\\\\.\\PHYSICALDRIVE0",
            index=0,
            partitions=(
                DiskPartition("Disk #0, Partition #0", 104857600),
                DiskPartition(
                    "Disk #0, Partition #1",
                    499000000000,
                    (LogicalVolume("C:"),),
                ),
            ),
        ),
        PhysicalDisk(
            device_id="\\\\.\\PHYSICALDRIVE1",
            index=1,
            partitions=(
                DiskPartition("Disk #1, Partition #0", 8000000000, (LogicalVolume("E:"),)),
                DiskPartition("Disk #1, Partition #1", 4000000000, (LogicalVolume("F:"),)),
            ),
        ),
    ]


@pytest.fixture
def fake_provider(usb_descriptor, system_descriptor, windows_disks) -> FakeInventoryProvider:
    return FakeInventoryProvider(
        devices=[system_descriptor, usb_descriptor],
        partitions={
            1: [
                PartitionDescriptor("Disk #1, Partition #0", 8000000000),
                PartitionDescriptor("Disk #1, Partition #1", 4000000000),
            ],
        },
        disks=windows_disks,
    )


@pytest.fixture
def failing_provider() -> FakeInventoryProvider:
    return FakeInventoryProvider(fail_queries=True)


@pytest.fixture
def make_provider():
    """Factory for custom in-memory inventories."""
    return FakeInventoryProvider


# ==============================================================================
# lsblk Fixtures
# ==============================================================================


@pytest.fixture
def mock_usb_device() -> Dict[str, Any]:
    """
    Fixture providing a mock USB device dictionary.

    Returns:
        Dict representing a typical USB device as returned by lsblk.
    """
    return {
        "name": "sdb",
        "type": "disk",
        "size": 16106127360,
        "model": "Cruzer Blade",
        "vendor": "SanDisk ",
        "tran": "usb",
        "rm": True,
        "mountpoint": None,
        "label": None,
        "children": [
            {
                "name": "sdb1",
                "type": "part",
                "size": 536870912,
                "mountpoint": "/media/usb-boot",
                "label": "BOOT",
            },
            {
                "name": "sdb2",
                "type": "part",
                "size": 7516192768,
                "mountpoint": None,
                "label": "DATA",
            },
        ],
    }


@pytest.fixture
def mock_system_disk() -> Dict[str, Any]:
    """
    Fixture providing a mock system disk (non-removable).

    Returns:
        Dict representing a system disk that should never be imaged.
    """
    return {
        "name": "mmcblk0",
        "type": "disk",
        "size": "31914983424",
        "model": None,
        "vendor": None,
        "tran": None,
        "rm": "0",
        "mountpoint": None,
        "label": None,
        "children": [
            {
                "name": "mmcblk0p1",
                "type": "part",
                "size": "268435456",
                "mountpoint": "/boot",
                "label": "boot",
            },
            {
                "name": "mmcblk0p2",
                "type": "part",
                "size": "31646547968",
                "mountpoint": "/",
                "label": "rootfs",
            },
        ],
    }


@pytest.fixture
def mock_lsblk_output(mock_usb_device, mock_system_disk) -> str:
    """
    Fixture providing mock lsblk JSON output.

    Returns:
        JSON string representing lsblk output with multiple devices.
    """
    output = {
        "blockdevices": [
            mock_system_disk,
            {"name": "loop0", "type": "loop", "size": 4096, "rm": False},
            mock_usb_device,
        ]
    }
    return json.dumps(output)


@pytest.fixture
def mock_lsblk_empty() -> str:
    """Fixture providing empty lsblk output (no devices)."""
    return json.dumps({"blockdevices": []})


# ==============================================================================
# WMI Fakes
# ==============================================================================


def make_wmi_object(associations: Optional[Dict[str, list]] = None, **fields):
    """Build an object with WMI-style attributes and ``associators()``."""
    associations = associations or {}
    wmi_object = SimpleNamespace(**fields)
    wmi_object.associators = lambda assoc_class: associations.get(assoc_class, [])
    return wmi_object


@pytest.fixture
def wmi_connection(mocker):
    """Fake ``wmi.WMI`` connection with one system disk and one USB drive."""
    logical_c = make_wmi_object(Name="C:")
    logical_e = make_wmi_object(Name="E:")
    partition_c = make_wmi_object(
        {"Win32_LogicalDiskToPartition": [logical_c]},
        Name="Disk #0, Partition #1",
        Size="499000000000",
    )
    partition_e = make_wmi_object(
        {"Win32_LogicalDiskToPartition": [logical_e]},
        Name="Disk #2, Partition #0",
        Size="8000000000",
    )
    system_disk = make_wmi_object(
        {"Win32_DiskDriveToDiskPartition": [partition_c]},
        DeviceID="\\\\.\\PHYSICALDRIVE0",
        Index=0,
        MediaType="Fixed hard disk media",
        InterfaceType="SCSI",
        Model="Samsung SSD 970 EVO",
        Name="\\\\.\\PHYSICALDRIVE0",
        Size="500107862016",
    )
    usb_disk = make_wmi_object(
        {"Win32_DiskDriveToDiskPartition": [partition_e]},
        DeviceID="\\\\.\\PHYSICALDRIVE2",
        Index=2,
        MediaType="Removable Media",
        InterfaceType="USB",
        Model="Kingston DataTraveler 3.0 USB Device",
        Name="\\\\.\\PHYSICALDRIVE2",
        Size="15518924800",
    )
    connection = mocker.MagicMock()
    connection.Win32_DiskDrive.return_value = [system_disk, usb_disk]
    connection.Win32_DiskPartition.side_effect = lambda DiskIndex: {
        0: [partition_c],
        2: [partition_e],
    }.get(DiskIndex, [])
    return connection


# ==============================================================================
# Raw Device Fakes
# ==============================================================================


class FailingBytesIO(io.BytesIO):
    """Raises ``OSError`` once ``fail_after`` bytes have been read."""

    def __init__(self, data: bytes, fail_after: int):
        super().__init__(data)
        self.fail_after = fail_after

    def read(self, size=-1):
        if self.tell() >= self.fail_after:
            raise OSError(5, "Input/output error")
        return super().read(size)


class BytesDeviceReader(BlockDeviceReader):
    """Serves an in-memory byte string as a raw device."""

    def __init__(self, data: bytes, fail_after: Optional[int] = None):
        self.data = data
        self.fail_after = fail_after
        self.handles: List[io.BytesIO] = []
        self.reads: List[int] = []

    def open(self, path: str):
        if self.fail_after is None:
            handle = io.BytesIO(self.data)
        else:
            handle = FailingBytesIO(self.data, self.fail_after)
        self.handles.append(handle)
        return handle

    def read_chunk(self, handle, size: int) -> bytes:
        chunk = super().read_chunk(handle, size)
        self.reads.append(len(chunk))
        return chunk


@pytest.fixture
def device_bytes() -> bytes:
    """Deterministic 300000-byte pseudo device."""
    return bytes(i % 251 for i in range(300000))


@pytest.fixture
def bytes_reader(device_bytes) -> BytesDeviceReader:
    return BytesDeviceReader(device_bytes)


@pytest.fixture
def failing_reader(device_bytes) -> BytesDeviceReader:
    """Device that fails with EIO after two 81920-byte chunks."""
    return BytesDeviceReader(device_bytes, fail_after=163840)


class RecordingSink:
    def __init__(self):
        self.calls: List[tuple] = []

    def on_progress(self, bytes_copied: int, total_bytes: int) -> None:
        self.calls.append((bytes_copied, total_bytes))


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()
