"""RFC 4155 mbox serialization.

A record is::

    From <sender> <ctime, UTC, no zone>\\n
    [Received: by localhost with <product>; <RFC 2822 date>\\n]
    <escaped header lines>
    \\n
    <escaped body lines, each ending in \\n>
    \\n

Lines use a single LF; CRLF pairs from the parsed message are collapsed.
Lines that would read as an envelope line get ``>From`` quoting, see
http://qmail.org/man/man5/mbox.html
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from datetime import datetime
from typing import BinaryIO

import structlog

from .clock import Clock, system_clock
from .errors import MessageWriteError
from .headers import rfc2822_date
from .message import Message

logger = structlog.get_logger()

DEFAULT_PRODUCT = "sendmail-to-a-spool-file"
LF = b"\n"


def ctime_timestamp(now: datetime) -> str:
    """UTC ``ctime`` rendering of *now*, e.g. ``Sun Jul  8 00:34:56 2001``."""
    return time.asctime(now.utctimetuple())


def escape_from_line(line: bytes) -> bytes:
    """Collapse CRLF to LF and apply ``>From`` quoting to one line.

    ``From ``, ``>From ``, ``>>From `` ... each gain one leading ``>``.
    """
    line = line.replace(b"\r\n", b"\n")
    if line.lstrip(b">").startswith(b"From "):
        line = b">" + line
    return line


def _body_lines(body: bytes) -> Iterator[bytes]:
    """Split *body* on LF, dropping the terminator (and a preceding CR)."""
    if not body:
        return
    lines = body.split(LF)
    if lines[-1] == b"":
        lines.pop()
    for line in lines:
        if line.endswith(b"\r"):
            line = line[:-1]
        yield line


class MboxSerializer:
    """Message → mbox record bytes.

    *received_header* toggles the synthetic ``Received:`` trace line.
    """

    def __init__(
        self,
        *,
        product: str = DEFAULT_PRODUCT,
        received_header: bool = True,
        clock: Clock = system_clock,
    ) -> None:
        self._product = product
        self._received_header = received_header
        self._clock = clock

    def envelope_line(self, sender: str, now: datetime) -> bytes:
        return f"From {sender} {ctime_timestamp(now)}\n".encode()

    def received_line(self, now: datetime) -> bytes:
        return f"Received: by localhost with {self._product}; {rfc2822_date(now)}\n".encode()

    def iter_record(self, message: Message, sender: str, now: datetime) -> Iterator[bytes]:
        """Yield the record in output order, one chunk per line."""
        yield self.envelope_line(sender, now)
        if self._received_header:
            yield self.received_line(now)
        for header in message.headers:
            yield escape_from_line(header)
        # Blank line between headers and body
        yield LF
        for line in _body_lines(message.body):
            yield escape_from_line(line) + LF
        # Record terminator
        yield LF

    def serialize(self, message: Message, sender: str, now: datetime | None = None) -> bytes:
        if now is None:
            now = self._clock()
        return b"".join(self.iter_record(message, sender, now))

    def write(
        self,
        message: Message,
        sink: BinaryIO,
        sender: str,
        now: datetime | None = None,
        *,
        destination: str = "<stream>",
    ) -> int:
        """Write the record to *sink* and flush it.  Returns bytes written.

        Raises :class:`MessageWriteError` naming *destination*; whatever was
        already written stays in the sink.
        """
        if now is None:
            now = self._clock()
        written = 0
        try:
            for chunk in self.iter_record(message, sender, now):
                sink.write(chunk)
                written += len(chunk)
            sink.flush()
        except OSError as exc:
            raise MessageWriteError(destination, str(exc)) from exc
        logger.debug("mbox_record_written", destination=destination, bytes=written)
        return written

