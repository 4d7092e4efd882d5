"""Removable USB drive catalog."""

from __future__ import annotations

from typing import Optional

from ddresize.domain import DeviceDescriptor
from ddresize.logging import EventLogger, LoggerFactory

from .inventory import DeviceInventoryProvider, get_inventory_provider


log = LoggerFactory.for_inventory()


def list_removable_drives(
    provider: Optional[DeviceInventoryProvider] = None,
) -> list[DeviceDescriptor]:
    """Return the removable, USB-attached block devices currently present.

    Every call queries the platform again. An empty list means no removable
    USB device is attached.

    Raises:
        InventoryQueryError: If the platform inventory cannot be queried
    """
    provider = provider or get_inventory_provider()
    drives = provider.list_removable_block_devices()
    EventLogger.log_devices_listed(log, len(drives), names=[drive.name for drive in drives])
    return drives
