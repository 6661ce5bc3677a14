"""Exception hierarchy for the delivery command.

Every failure surfaces as a :class:`SpoolError` subclass so the entry point
can report it and pick an exit status.  The underlying ``OSError`` (or parser
error) is always chained as ``__cause__``.
"""

from __future__ import annotations

from pathlib import Path


class SpoolError(Exception):
    """Base class for every error raised by this package."""

    kind = "spool"


class ConfigError(SpoolError):
    """The configuration file could not be used."""

    kind = "config"

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to load config file `{self.path}`: {reason}")


class ConfigIOError(ConfigError):
    """The configuration file could not be opened or read."""


class ConfigFormatError(ConfigError):
    """The configuration file is not valid TOML or misses required keys."""


class ConfigPermissionError(ConfigError):
    """The configuration file or one of its ancestors is writable by others."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(path, "the file or one of its parent directories is group or world writable")


class MessageReadError(SpoolError):
    """Reading the mail message from the input stream failed."""

    kind = "read"

    def __init__(self, reason: str = "") -> None:
        self.reason = reason
        message = "Failed to read the mail message from stream"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MessageWriteError(SpoolError):
    """Writing the mbox record to its destination failed.

    The record may be partially written; nothing is rolled back.
    """

    kind = "write"

    def __init__(self, destination: str, reason: str) -> None:
        self.destination = destination
        self.reason = reason
        super().__init__(f"Failed to write to `{destination}`: {reason}")
