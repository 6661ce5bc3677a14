"""Shared test fixtures for the delivery command test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from sendmail_spool.clock import Clock, fixed_clock
from sendmail_spool.config import SpoolConfig

FIXED_NOW = datetime(2001, 7, 8, 0, 34, 56, 123456, tzinfo=timezone.utc)
FIXED_CTIME = "Sun Jul  8 00:34:56 2001"

REPO_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> Clock:
    return fixed_clock(FIXED_NOW)


@pytest.fixture
def raw_message() -> bytes:
    # http://qmail.org/man/man5/mbox.html
    return (
        b"From: djb\r\n"
        b"To: god\r\n"
        b"Bcc: secret@example.com\r\n"
        b"Subject: beta\r\n"
        b"\r\n"
        b"From now through August I'll be doing beta testing.\r\n"
        b"Thanks for your interest.\r\n"
    )


@pytest.fixture
def stdout_config() -> SpoolConfig:
    return SpoolConfig(spool_file="-", sender="MAILER-DAEMON@localhost")


@pytest.fixture
def spool_file(tmp_path: Path) -> Path:
    path = tmp_path / "alice"
    path.write_bytes(b"")
    return path


@pytest.fixture
def file_config(spool_file: Path) -> SpoolConfig:
    return SpoolConfig(spool_file=str(spool_file), sender="MAILER-DAEMON@localhost")
