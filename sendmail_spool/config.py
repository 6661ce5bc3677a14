"""Delivery configuration loaded from a TOML file.

Values come from the file; any field can be overridden with a
``SENDMAIL_SPOOL_*`` environment variable (pydantic-settings).  The file is
refused if it, or any directory above it, is group or world writable.
"""

from __future__ import annotations

import fcntl
import os
import stat
import tomllib
from pathlib import Path

import structlog
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from .errors import ConfigFormatError, ConfigIOError, ConfigPermissionError
from .mbox import DEFAULT_PRODUCT

logger = structlog.get_logger()

DEFAULT_CONFIG_FILE_PATH = "/etc/sendmail-to-a-spool-file.toml"
STDOUT_SPOOL = "-"


class SpoolConfig(BaseSettings):
    """Where to deliver and how to frame the record."""

    model_config = SettingsConfigDict(env_prefix="SENDMAIL_SPOOL_", extra="forbid")

    spool_file: str = Field(description='Path of the mbox spool file, or "-" for standard output')
    sender: str = Field(description="Envelope sender address written on the From_ line")
    received_header: bool = Field(
        default=True,
        description="Add a Received: trace line recording local injection",
    )
    fix_headers: bool = Field(
        default=True,
        description="Inject Date: and Message-ID: when the message lacks them",
    )
    product: str = Field(
        default=DEFAULT_PRODUCT,
        description="Product name used in the Received: line",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over values read from the config file
        return (env_settings, init_settings)

    @property
    def writes_to_stdout(self) -> bool:
        return self.spool_file == STDOUT_SPOOL


def is_world_writable(path: Path) -> bool:
    """True if *path* has the group- or other-write bit set."""
    return bool(os.stat(path).st_mode & (stat.S_IWGRP | stat.S_IWOTH))


def is_world_writable_ancestors(path: Path) -> bool:
    """True if *path* or any of its parent directories is writable by others.

    Paths whose metadata cannot be read count as not writable.
    """
    path = Path(os.path.abspath(path))
    for candidate in (path, *path.parents):
        try:
            if is_world_writable(candidate):
                return True
        except OSError:
            return False
    return False


def _read_locked(path: Path) -> str:
    with open(path, encoding="utf-8") as fh:
        fcntl.flock(fh.fileno(), fcntl.LOCK_SH)
        try:
            return fh.read()
        finally:
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


def load_config(path: str | Path, *, check_permissions: bool = True) -> SpoolConfig:
    """Load and validate the TOML config at *path*."""
    path = Path(path)
    if check_permissions and is_world_writable_ancestors(path):
        raise ConfigPermissionError(path)

    try:
        text = _read_locked(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigIOError(path, str(exc)) from exc

    try:
        data = tomllib.loads(text)
        config = SpoolConfig(**data)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFormatError(path, str(exc)) from exc
    except ValidationError as exc:
        raise ConfigFormatError(path, f"{exc.error_count()} invalid setting(s): {exc}") from exc

    logger.debug("config_loaded", path=str(path), spool_file=config.spool_file)
    return config
