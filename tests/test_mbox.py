"""Tests for sendmail_spool.mbox."""

from __future__ import annotations

import email.utils
import io
import re
from datetime import datetime, timedelta, timezone

import pytest

from tests.conftest import FIXED_CTIME

from sendmail_spool.errors import MessageWriteError
from sendmail_spool.mbox import MboxSerializer, ctime_timestamp, escape_from_line
from sendmail_spool.message import Message


@pytest.fixture
def qmail_message() -> Message:
    # http://qmail.org/man/man5/mbox.html
    return Message(
        headers=[b"From: djb\r\n", b"To: god\r\n"],
        body=(
            b"From now through August I'll be doing beta testing.\r\n"
            b"Thanks for your interest.\r\n"
        ),
    )


class TestEscapeFromLine:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            (b"From the start", b">From the start"),
            (b">From already quoted", b">>From already quoted"),
            (b">>>From deep", b">>>>From deep"),
            (b"From: djb\r\n", b"From: djb\n"),
            (b"Fromage", b"Fromage"),
            (b"from lowercase", b"from lowercase"),
            (b" From indented", b" From indented"),
            (b"> quoted reply", b"> quoted reply"),
            (b"", b""),
        ],
    )
    def test_quoting(self, line: bytes, expected: bytes):
        assert escape_from_line(line) == expected

    def test_crlf_collapsed_before_check(self):
        assert escape_from_line(b"From x\r\n") == b">From x\n"


class TestCtimeTimestamp:
    def test_format(self, fixed_now: datetime):
        assert ctime_timestamp(fixed_now) == FIXED_CTIME

    def test_converts_to_utc(self, fixed_now: datetime):
        shifted = fixed_now.astimezone(timezone(timedelta(hours=9)))
        assert ctime_timestamp(shifted) == FIXED_CTIME


class TestEnvelope:
    def test_first_line(self, qmail_message: Message, fixed_now: datetime):
        out = MboxSerializer().serialize(qmail_message, "djb", fixed_now)
        first_line = out.split(b"\n", 1)[0] + b"\n"
        assert re.fullmatch(rb"From djb .+\n", first_line)
        assert b"\r" not in first_line
        assert first_line == f"From djb {FIXED_CTIME}\n".encode()

    def test_received_line(self, qmail_message: Message, fixed_now: datetime):
        out = MboxSerializer().serialize(qmail_message, "djb", fixed_now)
        received = out.split(b"\n")[1].decode()
        prefix = "Received: by localhost with sendmail-to-a-spool-file; "
        assert received.startswith(prefix)
        stamp = email.utils.parsedate_to_datetime(received[len(prefix) :])
        assert stamp == fixed_now.replace(microsecond=0)

    def test_custom_product(self, qmail_message: Message, fixed_now: datetime):
        out = MboxSerializer(product="acme-mda").serialize(qmail_message, "djb", fixed_now)
        assert out.split(b"\n")[1].startswith(b"Received: by localhost with acme-mda; ")

    def test_uses_clock(self, qmail_message: Message, clock):
        out = MboxSerializer(clock=clock).serialize(qmail_message, "djb")
        assert out.startswith(f"From djb {FIXED_CTIME}\n".encode())


class TestRecord:
    def test_qmail_example(self, qmail_message: Message, fixed_now: datetime):
        out = MboxSerializer(received_header=False).serialize(qmail_message, "djb", fixed_now)
        assert out.split(b"\n", 1)[1] == (
            b"From: djb\n"
            b"To: god\n"
            b"\n"
            b">From now through August I'll be doing beta testing.\n"
            b"Thanks for your interest.\n"
            b"\n"
        )

    def test_full_record_with_received(self, qmail_message: Message, fixed_now: datetime):
        out = MboxSerializer().serialize(qmail_message, "djb", fixed_now)
        lines = out.split(b"\n")
        assert lines[0] == f"From djb {FIXED_CTIME}".encode()
        assert lines[1].startswith(b"Received: ")
        assert lines[2:] == [
            b"From: djb",
            b"To: god",
            b"",
            b">From now through August I'll be doing beta testing.",
            b"Thanks for your interest.",
            b"",
            b"",
        ]

    def test_no_crlf_in_output(self, qmail_message: Message, fixed_now: datetime):
        out = MboxSerializer().serialize(qmail_message, "djb", fixed_now)
        assert b"\r\n" not in out

    def test_empty_message(self, fixed_now: datetime):
        out = MboxSerializer(received_header=False).serialize(Message(), "djb", fixed_now)
        assert out == f"From djb {FIXED_CTIME}\n\n\n".encode()

    def test_blank_body_lines_kept(self, fixed_now: datetime):
        mail = Message(headers=[b"A: 1\r\n"], body=b"one\r\n\r\ntwo\r\n")
        out = MboxSerializer(received_header=False).serialize(mail, "djb", fixed_now)
        assert out.split(b"\n", 1)[1] == b"A: 1\n\none\n\ntwo\n\n"

    def test_quoted_header_line(self, fixed_now: datetime):
        mail = Message(headers=[b"From someone odd\r\n"])
        out = MboxSerializer(received_header=False).serialize(mail, "djb", fixed_now)
        assert b"\n>From someone odd\n" in out


class TestWrite:
    def test_write_matches_serialize(self, qmail_message: Message, fixed_now: datetime):
        serializer = MboxSerializer()
        sink = io.BytesIO()
        written = serializer.write(qmail_message, sink, "djb", fixed_now)
        assert sink.getvalue() == serializer.serialize(qmail_message, "djb", fixed_now)
        assert written == len(sink.getvalue())

    def test_write_failure(self, qmail_message: Message, fixed_now: datetime):
        class FailingSink(io.BytesIO):
            def write(self, b):
                if self.tell() > 0:
                    raise OSError("No space left on device")
                return super().write(b)

        sink = FailingSink()
        with pytest.raises(MessageWriteError) as excinfo:
            MboxSerializer().write(qmail_message, sink, "djb", fixed_now, destination="/var/mail/alice")
        assert excinfo.value.destination == "/var/mail/alice"
        assert "No space left on device" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, OSError)
        # The envelope line already went out; nothing is rolled back
        assert sink.getvalue().startswith(b"From djb ")
