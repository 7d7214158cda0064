import time
from datetime import datetime, timedelta, timezone

from loguru import logger

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_ms() -> int:
    """Returns the current time as milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """Converts epoch milliseconds to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=timestamp_ms)


def datetime_to_ms(dt_obj: datetime) -> int:
    """Converts a datetime to epoch milliseconds. Naive datetimes are assumed UTC."""
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=timezone.utc)
    return (dt_obj - _EPOCH) // timedelta(milliseconds=1)


def ms_to_rfc3339(timestamp_ms: int) -> str:
    """Formats epoch milliseconds as RFC3339 in UTC with millisecond precision.

    Example: 1683040800000 -> "2023-05-02T15:20:00.000Z"
    """
    return (
        ms_to_datetime(timestamp_ms)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def parse_datetime(text: str) -> datetime:
    """Parses an ISO 8601 / RFC3339 string into an aware UTC datetime.

    Handles a trailing 'Z' and the space-separated form
    ``YYYY-MM-DD HH:MM:SS +09:00``. Naive values are assumed to be UTC.

    Raises:
        ValueError: If the string is not a recognizable timestamp.
    """
    candidate = text.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    # "2023-01-01 09:00:00 +09:00" -> "2023-01-01 09:00:00+09:00"
    if len(candidate) > 6 and candidate[-7] == " " and candidate[-6] in "+-":
        candidate = candidate[:-7] + candidate[-6:]
    try:
        dt_obj = datetime.fromisoformat(candidate)
    except ValueError as e:
        logger.warning(f"Could not parse timestamp string '{text}': {e}")
        err_msg = f"Invalid or unrecognized timestamp string format: {text}"
        raise ValueError(err_msg) from e
    if dt_obj.tzinfo is None:
        return dt_obj.replace(tzinfo=timezone.utc)
    return dt_obj.astimezone(timezone.utc)


def rfc3339_to_ms(text: str) -> int:
    """Parses an RFC3339 timestamp into epoch milliseconds."""
    return datetime_to_ms(parse_datetime(text))
