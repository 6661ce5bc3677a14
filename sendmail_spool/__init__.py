"""sendmail-compatible delivery command that appends to an mbox spool file."""

from .clock import Clock, fixed_clock, system_clock
from .config import DEFAULT_CONFIG_FILE_PATH, SpoolConfig, load_config
from .errors import (
    ConfigError,
    ConfigFormatError,
    ConfigIOError,
    ConfigPermissionError,
    MessageReadError,
    MessageWriteError,
    SpoolError,
)
from .headers import HeaderNormalizer, make_message_id, rfc2822_date
from .mbox import MboxSerializer, ctime_timestamp, escape_from_line
from .message import Message, MessageParser
from .spool import deliver, open_destination, open_spool

__all__ = [
    "DEFAULT_CONFIG_FILE_PATH",
    "Clock",
    "ConfigError",
    "ConfigFormatError",
    "ConfigIOError",
    "ConfigPermissionError",
    "HeaderNormalizer",
    "MboxSerializer",
    "Message",
    "MessageParser",
    "MessageReadError",
    "MessageWriteError",
    "SpoolConfig",
    "SpoolError",
    "ctime_timestamp",
    "deliver",
    "escape_from_line",
    "fixed_clock",
    "load_config",
    "make_message_id",
    "open_destination",
    "open_spool",
    "rfc2822_date",
    "system_clock",
]
