"""Split a raw message stream into a header block and a body.

The parser is deliberately lenient in the way ``sendmail`` is: input without
a blank separator line is accepted and treated as a body with no headers.
Lines are kept as ``bytes`` so 8-bit content passes through unchanged.
"""

from __future__ import annotations

import enum
import io
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import BinaryIO

import structlog

from .errors import MessageReadError

logger = structlog.get_logger()

CRLF = b"\r\n"


@dataclass
class Message:
    """A single mail message captured from the input stream.

    Every header line ends with ``\\r\\n``.  Order is significant and
    duplicate header names are allowed.  ``body`` is one blob whose lines all
    end with ``\\r\\n``.
    """

    headers: list[bytes] = field(default_factory=list)
    body: bytes = b""


class ParserState(enum.Enum):
    COLLECTING_HEADERS = "collecting_headers"
    COLLECTING_BODY = "collecting_body"


def _strip_line_ending(line: bytes) -> bytes:
    if line.endswith(b"\n"):
        line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
    return line


class MessageParser:
    """Stateless parser: raw byte stream → :class:`Message`."""

    def parse(self, stream: BinaryIO | Iterable[bytes]) -> Message:
        """Read *stream* to the end and return the parsed message.

        Raises :class:`MessageReadError` if reading fails; no partial message
        is returned.
        """
        state = ParserState.COLLECTING_HEADERS
        headers: list[bytes] = []
        buffer: list[bytes] = []

        try:
            for raw_line in stream:
                line = _strip_line_ending(raw_line)
                if state is ParserState.COLLECTING_HEADERS and not line:
                    # First blank line closes the header block
                    headers, buffer = buffer, []
                    state = ParserState.COLLECTING_BODY
                    continue
                buffer.append(line + CRLF)
        except OSError as exc:
            raise MessageReadError(str(exc)) from exc

        message = Message(headers=headers, body=b"".join(buffer))
        logger.debug(
            "message_parsed",
            headers=len(message.headers),
            body_bytes=len(message.body),
            separator_found=state is ParserState.COLLECTING_BODY,
        )
        return message

    def parse_bytes(self, raw: bytes) -> Message:
        """Parse an in-memory message."""
        return self.parse(io.BytesIO(raw))
