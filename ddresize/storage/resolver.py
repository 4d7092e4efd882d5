"""Map a user-facing drive identifier to a physical device.

The walk follows the platform's device -> partition -> logical volume graph and
stops at the first volume that matches. Drive letters are unique system-wide,
so enumeration order is the only tie-break.
"""

from __future__ import annotations

import re
from typing import NamedTuple, Optional

from ddresize.domain import LogicalVolume
from ddresize.logging import LoggerFactory

from .exceptions import DriveNotFoundError
from .inventory import DeviceInventoryProvider, get_inventory_provider


log = LoggerFactory.for_inventory()

_DRIVE_LETTER_REQUEST = re.compile(r"^([A-Za-z])(:[\\/]?)?$")
_DRIVE_LETTER_LABEL = re.compile(r"^[A-Za-z]:")
_PHYSICAL_DRIVE_NUMBER = re.compile(r"PHYSICALDRIVE(\d+)$", re.IGNORECASE)


class ResolvedDevice(NamedTuple):
    physical_path: str
    device_index: int


def parse_device_index(device_id: str) -> Optional[int]:
    """Extract the trailing integer of a Windows physical drive identifier.

    ``\\\\.\\PHYSICALDRIVE2`` yields 2. Other identifiers (``/dev/nvme0n1``)
    yield None; their index comes from the inventory enumeration.
    """
    match = _PHYSICAL_DRIVE_NUMBER.search(device_id or "")
    if not match:
        return None
    return int(match.group(1))


def _volume_matches(volume: LogicalVolume, request: str) -> bool:
    letter_match = _DRIVE_LETTER_REQUEST.match(request)
    if letter_match:
        if not _DRIVE_LETTER_LABEL.match(volume.label):
            return False
        return volume.label[0].upper() == letter_match.group(1).upper()
    return volume.label == request


def resolve_physical_path(
    drive_letter: str,
    provider: Optional[DeviceInventoryProvider] = None,
) -> ResolvedDevice:
    """Resolve ``drive_letter`` to the owning physical device path and index.

    ``drive_letter`` may be written ``E``, ``E:`` or ``E:\\``. Any other string is
    compared verbatim against volume labels (partition name, device node or
    mountpoint on Linux).

    Raises:
        DriveNotFoundError: If no logical volume matches
        InventoryQueryError: If the association graph cannot be queried
    """
    request = (drive_letter or "").strip()
    if not request:
        raise DriveNotFoundError("(empty)")
    provider = provider or get_inventory_provider()
    for disk in provider.iter_physical_disks():
        for partition in disk.partitions:
            for volume in partition.volumes:
                if not _volume_matches(volume, request):
                    continue
                index = parse_device_index(disk.device_id)
                if index is None:
                    index = disk.index
                log.debug(
                    f"Drive {request} is on {disk.device_id} "
                    f"(partition {partition.name}, index {index})"
                )
                return ResolvedDevice(physical_path=disk.device_id, device_index=index)
    raise DriveNotFoundError(request)
