"""
Conversion between timezone-aware datetimes and file-time ticks.

A tick is 100 nanoseconds counted from 1601-01-01T00:00:00Z. Both the
operations queue sequence and the delta-token watermark are persisted in this
representation, which keeps a single absolute-time integer in storage no matter
which UTC offset the caller used.
"""

from datetime import datetime, timedelta, timezone

FILE_TIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)
TICKS_PER_SECOND = 10_000_000
TICKS_PER_MICROSECOND = 10


def to_file_time(value: datetime) -> int:
    """
    Encode an aware datetime as file-time ticks.

    Args:
        value: Timezone-aware datetime (any UTC offset)

    Returns:
        Number of 100ns ticks since the file-time epoch

    Raises:
        ValueError: If the datetime is naive
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"Timestamp must be timezone-aware: {value!r}")

    delta = value - FILE_TIME_EPOCH
    seconds = delta.days * 86_400 + delta.seconds
    return seconds * TICKS_PER_SECOND + delta.microseconds * TICKS_PER_MICROSECOND


def from_file_time(ticks: int) -> datetime:
    """
    Decode file-time ticks into a UTC datetime.

    Sub-microsecond ticks are truncated since datetime cannot hold them.
    """
    return FILE_TIME_EPOCH + timedelta(microseconds=ticks // TICKS_PER_MICROSECOND)
