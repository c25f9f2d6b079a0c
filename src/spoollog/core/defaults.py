from __future__ import annotations

MIB = 1024 * 1024

DEFAULT_FILENAME = "log.txt"
DEFAULT_MAX_FILE_SIZE = 4 * MIB
DEFAULT_FLUSH_INTERVAL_SECONDS = 0.5
DEFAULT_CHANNEL_CAPACITY = 1024
DEFAULT_POOL_MAX_SIZE = 1024

MIN_MAX_FILE_SIZE = MIB
MIN_CHANNEL_CAPACITY = 10
MIN_FLUSH_INTERVAL_SECONDS = 0.01

# Upper bound of the pump's accumulation buffer before an eager flush
MAX_CACHE_SIZE = MIB

# Rotated files are named "<filename>.<ROTATION_TIMESTAMP_FORMAT>" in local time
ROTATION_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def clamp_channel_capacity(capacity: int) -> int:
    return max(capacity, MIN_CHANNEL_CAPACITY)


def clamp_flush_interval(seconds: float) -> float:
    return max(seconds, MIN_FLUSH_INTERVAL_SECONDS)


def clamp_max_file_size(size: int) -> int:
    return max(size, MIN_MAX_FILE_SIZE)


def clamp_max_file_count(count: int) -> int:
    """Return a non-negative retention count; 0 disables retention."""
    return max(count, 0)


def max_cache_size(max_file_size: int) -> int:
    """Return the accumulation limit for a given max file size."""
    return min(max_file_size, MAX_CACHE_SIZE)
