"""Device inventory providers, one per supported platform."""

from __future__ import annotations

import sys
from typing import Optional

from .base import DeviceInventoryProvider
from .linux import LsblkInventoryProvider
from .windows import WmiInventoryProvider


def get_inventory_provider(platform: Optional[str] = None) -> DeviceInventoryProvider:
    """Return the inventory provider for ``platform`` (defaults to ``sys.platform``)."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WmiInventoryProvider()
    if platform.startswith("linux"):
        return LsblkInventoryProvider()
    raise NotImplementedError(f"No device inventory available for platform {platform!r}")


__all__ = [
    "DeviceInventoryProvider",
    "LsblkInventoryProvider",
    "WmiInventoryProvider",
    "get_inventory_provider",
]
