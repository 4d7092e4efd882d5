"""Bounded streaming copy from a raw device into an image file."""

from __future__ import annotations

import os
from contextlib import ExitStack
from typing import Optional

from ddresize.config import settings
from ddresize.domain import CopyOutcome, CopyResult, CopySession
from ddresize.logging import EventLogger, LoggerFactory
from ddresize.storage.exceptions import CopyIOError
from ddresize.storage.reader import BlockDeviceReader, get_block_device_reader

from .progress import NullProgressSink, ProgressSink, human_size


class ImageCopyEngine:
    """Copy ``total_bytes`` from a raw device into a new image file.

    Args:
        reader: Raw device access capability (platform default if omitted)
        chunk_size: Bytes moved per read/write cycle, a multiple of the
            512 byte sector (``chunk_size_bytes`` setting if omitted)
        sink: Progress receiver called after every chunk
    """

    def __init__(
        self,
        reader: Optional[BlockDeviceReader] = None,
        chunk_size: Optional[int] = None,
        sink: Optional[ProgressSink] = None,
    ):
        self.reader = reader or get_block_device_reader()
        if chunk_size is None:
            chunk_size = settings.get_chunk_size()
        if chunk_size <= 0 or chunk_size % settings.SECTOR_SIZE_BYTES:
            raise ValueError(
                f"chunk_size must be a positive multiple of {settings.SECTOR_SIZE_BYTES}, "
                f"got {chunk_size}"
            )
        self.chunk_size = chunk_size
        self.sink = sink or NullProgressSink()

    def copy(self, source_path: str, destination_path: str, total_bytes: int) -> CopyResult:
        """Run one imaging session to a terminal outcome.

        The source is opened before the destination, so a device that cannot
        be opened never leaves an empty image file behind. A mid-copy failure
        leaves the partial file in place.

        Raises:
            DeviceOpenError: If the raw device handle cannot be obtained
        """
        session = CopySession(
            source_path=source_path,
            destination_path=str(destination_path),
            total_bytes=total_bytes,
            chunk_size=self.chunk_size,
        )
        log = LoggerFactory.for_imaging(session.session_id)
        EventLogger.log_imaging_started(
            log,
            session.source_path,
            session.destination_path,
            session.total_bytes,
            chunk_size=session.chunk_size,
        )

        with ExitStack() as handles:
            source = handles.enter_context(self.reader.open(session.source_path))
            try:
                destination = handles.enter_context(open(session.destination_path, "wb"))
            except OSError as error:
                log.error(f"Cannot create {session.destination_path}: {error}")
                return self._finish(
                    log, session, CopyOutcome.FAILED, str(error),
                    CopyIOError(str(error), 0, session.source_path, session.destination_path),
                )
            log.debug(f"Handles open: {session.source_path} -> {session.destination_path}")

            try:
                self._stream(session, source, destination, log)
                destination.flush()
                os.fsync(destination.fileno())
            except OSError as error:
                reason = f"I/O error after {human_size(session.bytes_copied)}: {error}"
                log.error(reason)
                return self._finish(
                    log, session, CopyOutcome.FAILED, reason,
                    CopyIOError(reason, session.bytes_copied, session.source_path, session.destination_path),
                )
            except KeyboardInterrupt:
                log.warning(f"Interrupted after {human_size(session.bytes_copied)}")
                return self._finish(log, session, CopyOutcome.CANCELLED, "interrupted by operator")

        return self._finish(log, session, CopyOutcome.COMPLETED)

    def _stream(self, session: CopySession, source, destination, log) -> None:
        while not session.is_complete:
            chunk = self.reader.read_chunk(source, session.chunk_size)
            if not chunk:
                log.warning(
                    f"Source exhausted at {session.bytes_copied} of {session.total_bytes} bytes"
                )
                return
            # The final chunk is written in full even when it overshoots.
            destination.write(chunk)
            session.advance(len(chunk))
            self.sink.on_progress(session.bytes_copied, session.total_bytes)

    @staticmethod
    def _finish(
        log,
        session: CopySession,
        outcome: CopyOutcome,
        reason: Optional[str] = None,
        error: Optional[BaseException] = None,
    ) -> CopyResult:
        EventLogger.log_imaging_finished(
            log, outcome.value, session.bytes_copied, session.total_bytes
        )
        return CopyResult(
            outcome=outcome,
            bytes_copied=session.bytes_copied,
            total_bytes=session.total_bytes,
            reason=reason,
            error=error,
        )


def create_image_file(
    source_path: str,
    destination_path: str,
    total_bytes: int,
    *,
    reader: Optional[BlockDeviceReader] = None,
    chunk_size: Optional[int] = None,
    sink: Optional[ProgressSink] = None,
) -> CopyResult:
    """Image ``source_path`` into ``destination_path`` with a one-off engine."""
    engine = ImageCopyEngine(reader=reader, chunk_size=chunk_size, sink=sink)
    return engine.copy(source_path, destination_path, total_bytes)
