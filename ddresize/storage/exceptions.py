"""Custom exceptions for storage operations.

Every failure in the imaging pipeline is terminal: none of these are retried.

Exception Hierarchy:
    StorageError (base)
        ├── InventoryQueryError
        │   └── PartitionQueryError
        ├── DeviceError
        │   ├── DriveNotFoundError
        │   └── DeviceOpenError
        │       ├── DevicePermissionError
        │       └── DeviceMissingError
        └── ImagingError
            ├── DestinationExistsError
            └── CopyIOError

Usage:
    from ddresize.storage.exceptions import DriveNotFoundError

    if match is None:
        raise DriveNotFoundError(drive_letter)
"""

from typing import Optional


class StorageError(Exception):
    """Base exception for all storage operations."""



class InventoryQueryError(StorageError):
    """The platform device inventory could not be queried."""

    def __init__(self, query: str, reason: str = ""):
        self.query = query
        self.reason = reason
        msg = f"Device query failed: {query}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PartitionQueryError(InventoryQueryError):
    """Partitions for a device index could not be queried."""

    def __init__(self, device_index: int, reason: str = ""):
        self.device_index = device_index
        super().__init__(f"partitions of device {device_index}", reason)


class DeviceError(StorageError):
    """Base exception for device-related errors."""



class DriveNotFoundError(DeviceError):
    """No logical volume matches the requested drive identifier."""

    def __init__(self, drive: str):
        self.drive = drive
        super().__init__(f"Drive not found: {drive}")


class DeviceOpenError(DeviceError):
    """The raw device handle could not be obtained."""

    def __init__(self, device_path: str, error_code: Optional[int] = None, reason: str = ""):
        self.device_path = device_path
        self.error_code = error_code
        self.reason = reason
        msg = f"Unable to access drive {device_path}"
        if error_code is not None:
            msg += f". Error code {error_code}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class DevicePermissionError(DeviceOpenError):
    """Raw device access requires elevated privileges."""



class DeviceMissingError(DeviceOpenError):
    """The device path does not exist (device vanished or wrong path)."""



class ImagingError(StorageError):
    """Base exception for image file operations."""



class DestinationExistsError(ImagingError):
    """The destination image file already exists."""

    def __init__(self, destination: str):
        self.destination = destination
        super().__init__(f"Destination file already exists: {destination}")


class CopyIOError(ImagingError):
    """A read or write failed in the middle of the copy."""

    def __init__(
        self,
        message: str,
        bytes_copied: int = 0,
        source: Optional[str] = None,
        destination: Optional[str] = None,
    ):
        self.bytes_copied = bytes_copied
        self.source = source
        self.destination = destination
        super().__init__(message)
