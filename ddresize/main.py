import argparse
import os
import sys
from pathlib import Path

from ddresize import __version__
from ddresize.config import settings
from ddresize.domain import CopyOutcome
from ddresize.logging import LoggerFactory, operation_context, setup_logging
from ddresize.storage import compute_capture_size, list_removable_drives, resolve_physical_path
from ddresize.storage.exceptions import DestinationExistsError, StorageError
from ddresize.storage.imaging import (
    CompositeProgressSink,
    LogProgressSink,
    create_image_file,
    human_size,
    report,
)
from ddresize.storage.inventory import get_inventory_provider
from ddresize.storage.validation import (
    check_destination_space,
    ensure_destination_absent,
    resolve_destination,
)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130

log = LoggerFactory.for_system()


def program_dir() -> Path:
    """Directory that relative destinations are resolved against."""
    override = os.environ.get("DDRESIZE_OUTPUT_DIR")
    if override:
        return Path(override)
    return Path(sys.argv[0]).resolve().parent


class TerminalProgressSink:
    """Redraw a one-line ``[####    ] 12MB of 100MB`` bar on a terminal stream."""

    def __init__(self, stream=None, width=None):
        self.stream = stream or sys.stdout
        self.width = width or settings.get_int(
            "progress_bar_width", settings.DEFAULT_PROGRESS_BAR_WIDTH
        )

    def render(self, bytes_copied, total_bytes):
        progress = report(bytes_copied, total_bytes)
        filled = int(progress.fraction_complete * self.width)
        bar = "#" * filled + " " * (self.width - filled)
        copied = human_size(bytes_copied, "MB")
        total = human_size(total_bytes, "MB")
        return f"[{bar}] {copied} of {total}    "

    def on_progress(self, bytes_copied, total_bytes):
        self.stream.write("\r" + self.render(bytes_copied, total_bytes))
        self.stream.flush()


def build_parser():
    parser = argparse.ArgumentParser(
        prog="ddresize",
        description="Image a USB mass storage device, bounded by its partitions",
    )
    parser.add_argument(
        "-l", "--list", action="store_true", help="display list of usb mass storage devices"
    )
    parser.add_argument(
        "-s", "--source", help="source drive letter of USB mass storage device"
    )
    parser.add_argument("-d", "--destination", help="destination file to write")
    parser.add_argument(
        "-y", "--yes", action="store_true", help="do not ask for confirmation"
    )
    parser.add_argument(
        "--chunk-size", type=int, default=None, help="bytes per read/write cycle, a multiple of 512"
    )
    parser.add_argument("--debug", action="store_true", help="Enable verbose debug output")
    parser.add_argument("--trace", action="store_true", help="Enable trace output")
    parser.add_argument("--log-dir", type=Path, default=None, help="log file directory")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def print_examples(out=None):
    out = out or sys.stdout
    print(file=out)
    print("ex: ddresize -l", file=out)
    print("ex: ddresize -s E: -d tempfile.img", file=out)


def list_drives(provider):
    try:
        drives = list_removable_drives(provider)
    except StorageError as error:
        log.error(f"Device listing failed: {error}")
        print(f"Error: {error}", file=sys.stderr)
        return EXIT_FAILURE
    print(f"{'Index':<10}{'Model':<50}{'Name':<30}{'Size':<10}")
    for drive in drives:
        print(
            f"{drive.index:<10}{drive.model:<50}{drive.name:<30}"
            f"{human_size(drive.size_bytes, 'MB'):<10}"
        )
    return EXIT_OK


def confirm(prompt):
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.strip().lower().startswith("y")


def image_drive(args, provider):
    destination = resolve_destination(args.destination, program_dir())
    try:
        ensure_destination_absent(destination)
    except DestinationExistsError:
        log.warning(f"Refusing to overwrite {destination}")
        print("Destination file seems to exist. Aborting...")
        return EXIT_FAILURE

    try:
        with operation_context("prepare", drive=args.source):
            resolved = resolve_physical_path(args.source, provider)
            capture = compute_capture_size(resolved.device_index, provider)
    except StorageError as error:
        print(f"Error: {error}", file=sys.stderr)
        return EXIT_FAILURE

    print(f"Drive selected was: {args.source}")
    print("\nhas following partitions:")
    for partition in capture.partitions:
        print("-----------------------------------")
        print(f"Name:{partition.name}")
        print(f"Size:{partition.size_bytes} bytes")
    print(
        "\nTotal to write to destination file(added 1MB unallocated for safety): "
        + human_size(capture.total_bytes, "MB")
    )
    print(f"Destination file: {destination}")
    if not check_destination_space(destination, capture.total_bytes):
        print("Warning: destination may not have enough free space.")

    if not args.yes and not confirm(
        "\nIs the above information correct? Do you want to continue? [y/n]"
    ):
        print("\nAborted!")
        return EXIT_OK

    print()
    interval = settings.get_float(
        "progress_log_interval_seconds", settings.DEFAULT_PROGRESS_LOG_INTERVAL
    )
    sink = CompositeProgressSink(TerminalProgressSink(), LogProgressSink(interval_seconds=interval))
    try:
        result = create_image_file(
            resolved.physical_path,
            str(destination),
            capture.total_bytes,
            chunk_size=args.chunk_size,
            sink=sink,
        )
    except StorageError as error:
        log.error(f"Imaging failed: {error}")
        print(f"\nError: {error}", file=sys.stderr)
        return EXIT_FAILURE

    if result.outcome is CopyOutcome.COMPLETED:
        print("\nDone!")
        return EXIT_OK
    if result.outcome is CopyOutcome.CANCELLED:
        print("\nCancelled! Partial image left at " + str(destination))
        return EXIT_CANCELLED
    print(f"\nFailed: {result.reason}", file=sys.stderr)
    return EXIT_FAILURE


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    if not argv:
        parser.print_usage()
        print_examples()
        return EXIT_FAILURE
    args = parser.parse_args(argv)

    setup_logging(debug=args.debug, trace=args.trace, log_dir=args.log_dir)
    log.debug(f"ddresize {__version__} started with {argv}")

    if args.chunk_size is not None and (
        args.chunk_size <= 0 or args.chunk_size % settings.SECTOR_SIZE_BYTES
    ):
        print(
            "Invalid arguments.\n--chunk-size must be a positive multiple of "
            f"{settings.SECTOR_SIZE_BYTES}"
        )
        return EXIT_FAILURE

    try:
        provider = get_inventory_provider()
    except NotImplementedError as error:
        print(f"Error: {error}", file=sys.stderr)
        return EXIT_FAILURE

    if args.list:
        return list_drives(provider)

    if bool(args.source) != bool(args.destination):
        print("Invalid arguments.\nWe need both source and destination!")
        return EXIT_FAILURE

    if args.source and args.destination:
        try:
            return image_drive(args, provider)
        except KeyboardInterrupt:
            print("\nAborted!")
            return EXIT_CANCELLED

    parser.print_usage()
    print_examples()
    return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
