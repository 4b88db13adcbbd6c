from datetime import date, datetime, timezone

from services.errors import InvalidDateRange


def to_datetime(value, field="date") -> datetime:
    """
    Accepts a datetime, a date or an ISO string ("2024-01-05" or
    "2024-01-05T10:00:00"). Aware values are normalised to naive UTC,
    which is what the database stores.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            raise InvalidDateRange(f"Invalid {field}. Use ISO format e.g. 2024-01-05", field=field)
    else:
        raise InvalidDateRange(f"{field} is required", field=field)

    if dt.tzinfo is not None:
        try:
            dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
        except OverflowError:
            raise InvalidDateRange(f"{field} is out of range", field=field)
    return dt


def parse_range(start, end):
    """Parse both ends and enforce start < end."""
    st = to_datetime(start, "start_date")
    et = to_datetime(end, "end_date")
    if et <= st:
        raise InvalidDateRange()
    return st, et
