"""
Configuration models for spoollog using Pydantic v2 Settings.

Values are read from the environment with the ``SPOOLLOG_`` prefix and ``__``
as the nested delimiter, e.g. ``SPOOLLOG_SINK__MAX_FILE_SIZE=8388608``.

Numeric bounds clamp rather than reject, mirroring the runtime setters on
``LogSink``: a too-small size or interval is raised to its minimum.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (  # type: ignore[import-not-found]
    BaseSettings,
    SettingsConfigDict,
)

from .defaults import (
    DEFAULT_CHANNEL_CAPACITY,
    DEFAULT_FILENAME,
    DEFAULT_FLUSH_INTERVAL_SECONDS,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_POOL_MAX_SIZE,
    clamp_channel_capacity,
    clamp_flush_interval,
    clamp_max_file_count,
    clamp_max_file_size,
)

LATEST_CONFIG_SCHEMA_VERSION = "1.0"


class SinkSettings(BaseModel):
    """Settings for a single spool sink."""

    directory: str = Field(
        default="",
        description="Directory holding the active and rotated files ('' = cwd)",
    )
    filename: str = Field(
        default=DEFAULT_FILENAME,
        description="Base name of the active log file",
    )
    max_file_size: int = Field(
        default=DEFAULT_MAX_FILE_SIZE,
        description="Maximum size in bytes of the active file before rotation",
    )
    max_file_count: int = Field(
        default=0,
        description="Maximum number of rotated files to retain (0 = unlimited)",
    )
    flush_interval_seconds: float = Field(
        default=DEFAULT_FLUSH_INTERVAL_SECONDS,
        description="Period of the flush pump timer",
    )
    channel_capacity: int = Field(
        default=DEFAULT_CHANNEL_CAPACITY,
        description="Number of in-flight records allowed before writers block",
    )
    pool_max_size: int = Field(
        default=DEFAULT_POOL_MAX_SIZE,
        ge=0,
        description="Maximum number of idle record buffers kept for reuse",
    )
    enable_metrics: bool = Field(
        default=False,
        description="Enable Prometheus-compatible metrics",
    )
    internal_logging_enabled: bool = Field(
        default=False,
        description="Emit diagnostics for contained internal errors",
    )
    atexit_drain_enabled: bool = Field(
        default=True,
        description="Drain live sinks from an atexit hook",
    )
    atexit_drain_timeout_seconds: float = Field(
        default=2.0,
        gt=0.0,
        description="Upper bound for the atexit drain of each sink",
    )

    @field_validator("filename")
    @classmethod
    def _ensure_plain_filename(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("filename must not be empty")
        if "/" in value or "\\" in value:
            raise ValueError("filename must not contain a path separator")
        return value

    @field_validator("max_file_size")
    @classmethod
    def _clamp_max_file_size(cls, value: int) -> int:
        return clamp_max_file_size(value)

    @field_validator("max_file_count")
    @classmethod
    def _clamp_max_file_count(cls, value: int) -> int:
        return clamp_max_file_count(value)

    @field_validator("flush_interval_seconds")
    @classmethod
    def _clamp_flush_interval(cls, value: float) -> float:
        return clamp_flush_interval(value)

    @field_validator("channel_capacity")
    @classmethod
    def _clamp_channel_capacity(cls, value: int) -> int:
        return clamp_channel_capacity(value)


class Settings(BaseSettings):
    """Top-level configuration model."""

    schema_version: str = Field(default=LATEST_CONFIG_SCHEMA_VERSION)

    sink: SinkSettings = Field(default_factory=SinkSettings)

    model_config = SettingsConfigDict(
        env_prefix="SPOOLLOG_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    def to_dict(self) -> dict[str, object]:
        from typing import cast

        return cast(
            dict[str, object],
            self.model_dump(by_alias=True, exclude_none=True),
        )
