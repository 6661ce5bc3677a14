"""Output destinations and the parse → normalize → serialize pipeline."""

from __future__ import annotations

import fcntl
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from typing import BinaryIO

import structlog

from .clock import Clock, system_clock
from .config import SpoolConfig
from .errors import MessageWriteError
from .headers import HeaderNormalizer
from .mbox import MboxSerializer
from .message import Message, MessageParser

logger = structlog.get_logger()

STDOUT_DESTINATION = "<stdout>"


@contextmanager
def open_spool(path: str) -> Iterator[BinaryIO]:
    """Open an existing spool file for append under an exclusive flock.

    The file is never created.  The lock is released after the buffered
    data has been flushed.
    """
    try:
        fd = os.open(path, os.O_WRONLY | os.O_APPEND)
    except OSError as exc:
        raise MessageWriteError(path, str(exc)) from exc

    fh = os.fdopen(fd, "ab")
    try:
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
            logger.debug("spool_locked", path=path)
            try:
                yield fh
                fh.flush()
            finally:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        except OSError as exc:
            raise MessageWriteError(path, str(exc)) from exc
    except BaseException:
        # Closing flushes whatever the failed write left buffered; the
        # error already propagating is the one to report.
        with suppress(OSError):
            fh.close()
        raise

    try:
        fh.close()
    except OSError as exc:
        raise MessageWriteError(path, str(exc)) from exc


@contextmanager
def open_destination(config: SpoolConfig, stdout: BinaryIO | None = None) -> Iterator[tuple[BinaryIO, str]]:
    """Yield ``(sink, destination_name)`` for the configured spool."""
    if config.writes_to_stdout:
        yield (stdout if stdout is not None else sys.stdout.buffer), STDOUT_DESTINATION
    else:
        with open_spool(config.spool_file) as fh:
            yield fh, config.spool_file


def deliver(
    stream: BinaryIO,
    config: SpoolConfig,
    *,
    sender: str | None = None,
    clock: Clock = system_clock,
    stdout: BinaryIO | None = None,
) -> Message:
    """Read one message from *stream* and append it to the configured spool.

    The whole message is read before the spool is opened and locked.  A
    single clock reading is shared by every timestamp in the record.
    """
    sender = sender or config.sender
    now = clock()

    message = MessageParser().parse(stream)
    HeaderNormalizer(fix_headers=config.fix_headers).normalize(message, now)

    serializer = MboxSerializer(product=config.product, received_header=config.received_header)
    with open_destination(config, stdout) as (sink, destination):
        written = serializer.write(message, sink, sender, now, destination=destination)

    logger.info(
        "message_delivered",
        destination=destination,
        sender=sender,
        headers=len(message.headers),
        bytes=written,
    )
    return message
