"""Safety validation for image destinations.

These checks run before the copy engine is invoked. An existing destination
is a hard stop and raises; the free space check is only advisory and returns
a flag the caller may warn about.

Example:
    from ddresize.storage.validation import ensure_destination_absent

    destination = resolve_destination("usb.img", PROGRAM_DIR)
    ensure_destination_absent(destination)  # raises DestinationExistsError
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

import psutil

from ddresize.logging import LoggerFactory

from .exceptions import DestinationExistsError


log = LoggerFactory.for_imaging(job_id="-")

PathLike = Union[str, Path]


def resolve_destination(destination: PathLike, base_dir: PathLike) -> Path:
    """Resolve ``destination`` relative to ``base_dir``.

    Absolute destinations are kept as given.
    """
    return Path(base_dir) / Path(destination)


def ensure_destination_absent(destination: PathLike) -> Path:
    """Refuse to overwrite an existing image file.

    Raises:
        DestinationExistsError: If anything already exists at ``destination``
    """
    path = Path(destination)
    if path.exists() or path.is_symlink():
        raise DestinationExistsError(str(path))
    return path


def check_destination_space(destination: PathLike, total_bytes: int) -> bool:
    """Return False when the destination filesystem looks too small.

    Only advisory: the copy may still stop early at end of device.
    """
    parent = Path(destination).parent
    try:
        free_bytes = psutil.disk_usage(str(parent)).free
    except OSError as error:
        log.warning(f"Cannot determine free space on {parent}: {error}")
        return True
    if free_bytes < total_bytes:
        log.warning(
            f"Destination {parent} has {free_bytes} bytes free, "
            f"image needs {total_bytes}"
        )
        return False
    return True
