"""Block device inventory for Linux using lsblk.

Uses lsblk with JSON output to enumerate block devices and their properties:
    - Device name (e.g., sda, sdb)
    - Size in bytes
    - Vendor and model strings
    - Transport (``tran``), where "usb" identifies USB-attached disks
    - Removable device flag (``rm``)
    - Child partitions with their mountpoints and filesystem labels

Linux has no OS-assigned disk index comparable to the Windows one, so each
whole disk is numbered by its position in the lsblk output. The numbering is
stable for one lsblk call; hot-plugging between calls may shift it.

Logical volumes of a partition are its kernel name (``sdb1``), its device node
(``/dev/sdb1``), its mountpoint and its filesystem label, so any of those can
be handed to the resolver.
"""

from __future__ import annotations

import json
import subprocess
from typing import Any, Iterator

from ddresize.domain import (
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

LSBLK_COLUMNS = "NAME,TYPE,SIZE,MODEL,VENDOR,TRAN,RM,MOUNTPOINT,LABEL"


def run_command(command, check=True, log_output=True):
    log.debug(f"Running command: {' '.join(command)}")
    try:
        result = subprocess.run(command, check=check, text=True, capture_output=True)
    except subprocess.CalledProcessError as error:
        log.debug(f"Command failed: {' '.join(command)}")
        if error.stderr:
            log.debug(f"stderr: {error.stderr.strip()}")
        raise
    if result.stdout and log_output:
        log.trace(f"stdout: {result.stdout.strip()}")
    log.debug(f"Command completed with return code {result.returncode}")
    return result


def _is_removable(value: Any) -> bool:
    # lsblk emits booleans in newer releases and "0"/"1" in older ones.
    if isinstance(value, bool):
        return value
    return str(value).strip() in ("1", "true")


def _to_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def get_children(device: dict) -> list[dict]:
    return device.get("children", []) or []


def _partitions_of(device: dict) -> list[dict]:
    return [child for child in get_children(device) if child.get("type") == "part"]


def _describe_model(device: dict) -> str:
    parts = [(device.get(key) or "").strip() for key in ("vendor", "model")]
    return " ".join(part for part in parts if part)


class LsblkInventoryProvider(DeviceInventoryProvider):
    """Device inventory backed by ``lsblk -J -b``."""

    def __init__(self, lsblk_path: str = "lsblk"):
        self.lsblk_path = lsblk_path

    def get_block_devices(self) -> list[dict]:
        """Return the raw lsblk device tree.

        Unlike a cached UI poller, every call re-queries lsblk so callers see
        current hardware state.
        """
        command = [self.lsblk_path, "-J", "-b", "-o", LSBLK_COLUMNS]
        try:
            result = run_command(command)
        except FileNotFoundError as error:
            raise InventoryQueryError("lsblk", "lsblk not found") from error
        except subprocess.CalledProcessError as error:
            reason = (error.stderr or "").strip() or f"exit status {error.returncode}"
            raise InventoryQueryError("lsblk", reason) from error
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as error:
            raise InventoryQueryError("lsblk", f"invalid JSON: {error}") from error
        return data.get("blockdevices", []) or []

    def _indexed_disks(self) -> list[tuple[int, dict]]:
        disks = [device for device in self.get_block_devices() if device.get("type") == "disk"]
        return list(enumerate(disks))

    def list_block_devices(self) -> list[DeviceDescriptor]:
        descriptors = []
        for index, device in self._indexed_disks():
            descriptors.append(
                DeviceDescriptor(
                    index=index,
                    model=_describe_model(device),
                    name=f"/dev/{device.get('name')}",
                    media_kind=MEDIA_KIND_REMOVABLE if _is_removable(device.get("rm")) else "fixed",
                    bus_kind=(device.get("tran") or "").lower(),
                    size_bytes=_to_int(device.get("size")),
                )
            )
        log.debug(f"lsblk found {len(descriptors)} disks")
        return descriptors

    def find_partitions_for_device(self, index: int) -> list[PartitionDescriptor]:
        try:
            disks = dict(self._indexed_disks())
        except InventoryQueryError as error:
            raise PartitionQueryError(index, error.reason) from error
        device = disks.get(index)
        if device is None:
            return []
        return [
            PartitionDescriptor(name=part.get("name") or "", size_bytes=_to_int(part.get("size")))
            for part in _partitions_of(device)
        ]

    def iter_physical_disks(self) -> Iterator[PhysicalDisk]:
        for index, device in self._indexed_disks():
            partitions = []
            for part in _partitions_of(device):
                name = part.get("name") or ""
                labels = [name, f"/dev/{name}", part.get("mountpoint"), part.get("label")]
                partitions.append(
                    DiskPartition(
                        name=name,
                        size_bytes=_to_int(part.get("size")),
                        volumes=tuple(LogicalVolume(label=label) for label in labels if label),
                    )
                )
            yield PhysicalDisk(
                device_id=f"/dev/{device.get('name')}",
                index=index,
                partitions=tuple(partitions),
            )
