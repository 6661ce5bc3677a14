"""Entry point for the delivery command.

Usage::

    sendmail-to-a-spool-file [-f sender] [-oi] [-t] [recipient ...] < message

Accepts the flags mail clients commonly pass to ``sendmail``; only ``-f``/``-r``
has an effect (it overrides the configured envelope sender).
"""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Sequence
from typing import BinaryIO

import structlog

from .clock import Clock, system_clock
from .config import DEFAULT_CONFIG_FILE_PATH, load_config
from .errors import SpoolError
from .logging import setup_logging
from .spool import deliver

CONFIG_FILE_ENV = "SENDMAIL_CONFIG_FILE"

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sendmail-to-a-spool-file",
        description="Read a mail message from standard input and append it to an mbox spool file",
    )
    parser.add_argument("-f", "-r", dest="sender", default=None, help="Envelope sender address")
    parser.add_argument("-F", dest="full_name", default=None, help="Sender full name (ignored)")
    parser.add_argument("-i", dest="ignore_dots", action="store_true", help="Ignored")
    parser.add_argument("-t", dest="read_recipients", action="store_true", help="Ignored")
    parser.add_argument("-o", dest="options", action="append", default=[], help="sendmail -oX option (ignored)")
    parser.add_argument(
        "--config",
        default=None,
        help=f"Config file (default: ${CONFIG_FILE_ENV} or {DEFAULT_CONFIG_FILE_PATH})",
    )
    parser.add_argument("--log-level", default="WARNING", help="Log level name")
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log lines")
    parser.add_argument("recipients", nargs="*", help="Recipients (ignored)")
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
    clock: Clock = system_clock,
) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(json=args.log_json, level=args.log_level)

    config_path = args.config or os.environ.get(CONFIG_FILE_ENV) or DEFAULT_CONFIG_FILE_PATH
    stream = stdin if stdin is not None else sys.stdin.buffer

    try:
        config = load_config(config_path)
        deliver(stream, config, sender=args.sender, clock=clock, stdout=stdout)
    except SpoolError as exc:
        logger.error("delivery_failed", error=str(exc), kind=exc.kind)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
