from datetime import UTC, datetime


def utcnow_naive():
    """Return current UTC timestamp as naive datetime for DB timestamp columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def isoformat_or_none(value):
    return value.isoformat() if value else None


def parse_iso_datetime(raw_value):
    """Parse an ISO-8601 string into a naive UTC datetime, or None."""
    if raw_value in (None, ''):
        return None
    try:
        parsed = datetime.fromisoformat(str(raw_value).strip().replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def minutes_since(timestamp, now):
    """Whole minutes elapsed between ``timestamp`` and ``now``."""
    return int((now - timestamp).total_seconds() // 60)
