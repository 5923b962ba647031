"""
Date helpers for payload parsing and export

Dates are stored as naive UTC datetimes; clients send and receive them as
epoch seconds (ISO 8601 strings are also accepted on input).
"""
from datetime import datetime, timezone

from workout_gym.errors import InvalidInput


def to_epoch(value):
    """Naive UTC datetime to epoch seconds, None stays None"""
    if value is None:
        return None
    return int(value.replace(tzinfo=timezone.utc).timestamp())


def parse_datetime(value, field='date'):
    """
    Parse a client-supplied date

    Args:
        value: Epoch seconds (int, float or numeric string), ISO 8601 string, or None/''
        field: Field name used in the error message

    Returns:
        Naive UTC datetime or None

    Raises:
        InvalidInput: If the value cannot be interpreted as a date
    """
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise InvalidInput(f"Invalid {field}: {value!r}")
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, (int, float)):
        return _from_epoch(value, field)
    if isinstance(value, str):
        text = value.strip()
        try:
            return _from_epoch(float(text), field)
        except ValueError:
            pass
        try:
            return _naive_utc(datetime.fromisoformat(text.replace('Z', '+00:00')))
        except ValueError:
            raise InvalidInput(f"Invalid {field}: {value!r}")
    raise InvalidInput(f"Invalid {field}: {value!r}")


def _from_epoch(seconds, field):
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError):
        raise InvalidInput(f"Invalid {field}: {seconds!r}")


def _naive_utc(value):
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
