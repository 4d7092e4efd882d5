"""Raw, read-only, sequential block device access.

The copy engine depends only on the ``BlockDeviceReader`` capability:
``open(path)`` returns an unbuffered binary handle or raises a
``DeviceOpenError`` subclass, and ``read_chunk(handle, size)`` returns the
next bytes, with ``b""`` meaning end of stream.

Raw device access needs elevated privileges on every supported platform
(root on Linux, Administrator on Windows).
"""

from __future__ import annotations

import errno
import os
import sys
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional

from ddresize.logging import LoggerFactory

from .exceptions import DeviceMissingError, DeviceOpenError, DevicePermissionError


log = LoggerFactory.for_imaging(job_id="-")

# Win32 constants for CreateFileW
GENERIC_READ = 0x80000000
FILE_SHARE_READ = 0x00000001
FILE_SHARE_WRITE = 0x00000002
FILE_SHARE_DELETE = 0x00000004
OPEN_EXISTING = 3
FILE_ATTRIBUTE_SYSTEM = 0x00000004
FILE_FLAG_SEQUENTIAL_SCAN = 0x08000000
INVALID_HANDLE_VALUE = -1

ERROR_FILE_NOT_FOUND = 2
ERROR_PATH_NOT_FOUND = 3
ERROR_ACCESS_DENIED = 5
ERROR_HANDLE_EOF = 38

_PERMISSION_ERRNOS = {errno.EACCES, errno.EPERM}
_MISSING_ERRNOS = {errno.ENOENT, errno.ENXIO, errno.ENODEV}


def _is_invalid_handle(handle) -> bool:
    # c_void_p reports INVALID_HANDLE_VALUE as an unsigned pointer-width value.
    return handle is None or handle in (INVALID_HANDLE_VALUE, 2**32 - 1, 2**64 - 1)


class BlockDeviceReader(ABC):
    """Capability for reading a whole device from its first byte."""

    @abstractmethod
    def open(self, path: str) -> BinaryIO:
        """Open ``path`` for raw sequential reading."""

    def read_chunk(self, handle: BinaryIO, size: int) -> bytes:
        """Read up to ``size`` bytes; ``b""`` signals end of stream."""
        return handle.read(size) or b""


class PosixBlockDeviceReader(BlockDeviceReader):
    """Open device nodes with ``os.open`` and advise sequential access."""

    def open(self, path: str) -> BinaryIO:
        flags = os.O_RDONLY | getattr(os, "O_BINARY", 0)
        try:
            fd = os.open(path, flags)
        except OSError as error:
            if error.errno in _PERMISSION_ERRNOS:
                raise DevicePermissionError(path, error.errno, error.strerror or "") from error
            if error.errno in _MISSING_ERRNOS:
                raise DeviceMissingError(path, error.errno, error.strerror or "") from error
            raise DeviceOpenError(path, error.errno, error.strerror or "") from error
        if hasattr(os, "posix_fadvise"):
            try:
                os.posix_fadvise(fd, 0, 0, os.POSIX_FADV_SEQUENTIAL)
            except OSError as error:
                log.debug(f"posix_fadvise not supported on {path}: {error}")
        log.debug(f"Opened {path} for raw reading (fd {fd})")
        return os.fdopen(fd, "rb", buffering=0)


class WindowsBlockDeviceReader(BlockDeviceReader):
    """Open ``\\\\.\\PHYSICALDRIVE<n>`` paths through ``CreateFileW``.

    Sharing is non-exclusive (read, write and delete) so unrelated handles on
    the device do not block the copy.
    """

    def __init__(self, kernel32=None):
        self._kernel32 = kernel32

    @property
    def kernel32(self):
        if self._kernel32 is None:
            import ctypes
            from ctypes import wintypes

            kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
            kernel32.CreateFileW.argtypes = [
                wintypes.LPCWSTR,
                wintypes.DWORD,
                wintypes.DWORD,
                ctypes.c_void_p,
                wintypes.DWORD,
                wintypes.DWORD,
                wintypes.HANDLE,
            ]
            kernel32.CreateFileW.restype = ctypes.c_void_p
            kernel32.CloseHandle.argtypes = [wintypes.HANDLE]
            self._kernel32 = kernel32
        return self._kernel32

    def _last_error(self) -> int:
        import ctypes

        return ctypes.get_last_error()

    def open(self, path: str) -> BinaryIO:
        kernel32 = self.kernel32
        handle = kernel32.CreateFileW(
            path,
            GENERIC_READ,
            FILE_SHARE_READ | FILE_SHARE_WRITE | FILE_SHARE_DELETE,
            None,
            OPEN_EXISTING,
            FILE_ATTRIBUTE_SYSTEM | FILE_FLAG_SEQUENTIAL_SCAN,
            None,
        )
        if _is_invalid_handle(handle):
            error_code = self._last_error()
            if error_code == ERROR_ACCESS_DENIED:
                raise DevicePermissionError(path, error_code, "run as Administrator")
            if error_code in (ERROR_FILE_NOT_FOUND, ERROR_PATH_NOT_FOUND):
                raise DeviceMissingError(path, error_code)
            raise DeviceOpenError(path, error_code)
        import msvcrt

        try:
            fd = msvcrt.open_osfhandle(handle, os.O_RDONLY | os.O_BINARY)
        except OSError as error:
            kernel32.CloseHandle(handle)
            raise DeviceOpenError(path, error.errno, str(error)) from error
        log.debug(f"Opened {path} for raw reading (handle {handle})")
        return os.fdopen(fd, "rb", buffering=0)

    def read_chunk(self, handle: BinaryIO, size: int) -> bytes:
        try:
            return handle.read(size) or b""
        except OSError as error:
            # Reading past the last sector reports EOF as an error.
            if getattr(error, "winerror", None) == ERROR_HANDLE_EOF:
                return b""
            raise


def get_block_device_reader(platform: Optional[str] = None) -> BlockDeviceReader:
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WindowsBlockDeviceReader()
    return PosixBlockDeviceReader()
