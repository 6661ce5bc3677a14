"""Header fix-ups applied before a message is stored.

A delivery agent must not leak ``Bcc:`` recipients into the stored copy,
and every stored message gets a ``Date:`` and a ``Message-ID:`` if the
submitting client left them out.  Header names are matched case-sensitively.
"""

from __future__ import annotations

import email.utils
from datetime import datetime

import structlog

from .clock import Clock, system_clock
from .message import CRLF, Message

logger = structlog.get_logger()

BCC = b"Bcc:"
DATE = b"Date:"
MESSAGE_ID = b"Message-ID:"


def make_message_id(now: datetime) -> str:
    """``<seconds>.<millis>.<micros>@localhost`` for *now*."""
    seconds = int(now.timestamp())
    millis, micros = divmod(now.microsecond, 1000)
    return f"<{seconds}.{millis:03d}.{micros:03d}@localhost>"


def rfc2822_date(now: datetime) -> str:
    """RFC 2822 date-time of *now* in local time, with numeric offset."""
    return email.utils.format_datetime(now.astimezone())


def _has_header(headers: list[bytes], name: bytes) -> bool:
    return any(line.startswith(name) for line in headers)


def _is_continuation(line: bytes) -> bool:
    return line[:1] in (b" ", b"\t")


class HeaderNormalizer:
    """Mutates a :class:`Message`'s header list in place.

    Running :meth:`normalize` twice leaves the headers as they were after the
    first run.
    """

    def __init__(self, *, fix_headers: bool = True, clock: Clock = system_clock) -> None:
        self._fix_headers = fix_headers
        self._clock = clock

    def normalize(self, message: Message, now: datetime | None = None) -> None:
        if now is None:
            now = self._clock()

        message.headers = self.remove_bcc(message.headers)

        if not self._fix_headers:
            return

        if not _has_header(message.headers, MESSAGE_ID):
            message.headers.insert(0, MESSAGE_ID + b" " + make_message_id(now).encode("ascii") + CRLF)
            logger.info("header_injected", header="Message-ID")

        if not _has_header(message.headers, DATE):
            message.headers.insert(0, DATE + b" " + rfc2822_date(now).encode("ascii") + CRLF)
            logger.info("header_injected", header="Date")

    @staticmethod
    def remove_bcc(headers: list[bytes]) -> list[bytes]:
        """Drop every ``Bcc:`` line together with its folded continuation lines."""
        kept: list[bytes] = []
        dropping = False
        removed = 0
        for line in headers:
            if line.startswith(BCC):
                dropping = True
                removed += 1
                continue
            if dropping and _is_continuation(line):
                continue
            dropping = False
            kept.append(line)
        if removed:
            logger.info("header_removed", header="Bcc", count=removed)
        return kept
