"""Raw USB drive imaging bounded by partition table size."""

from .__version__ import __version__

__all__ = ["__version__"]
