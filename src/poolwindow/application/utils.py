from datetime import datetime, timezone

_NAIVE_FORMAT = "%Y-%m-%d %H:%M:%S"


def now_ts() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def parse_timestamp(value: str | int) -> int:
    """Unix seconds from an int, a digit string, "YYYY-MM-DD HH:MM:SS" or ISO-8601.

    Naive datetimes are taken as UTC.
    """
    if isinstance(value, int):
        return value
    s = value.strip()
    if s.isdigit():
        return int(s)
    try:
        dt = datetime.strptime(s, _NAIVE_FORMAT)
    except ValueError:
        try:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"Failed to parse date: {value!r}") from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())
