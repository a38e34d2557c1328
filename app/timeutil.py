"""UTC helpers shared by the models and the mutation pipeline."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Normalize a datetime to UTC.

    Naive values carry no zone information and are taken to already be
    UTC. Aware values are converted.

    Args:
        value (datetime | None): Datetime to normalize.

    Returns:
        datetime | None: Aware UTC datetime, or ``None``.
    """
    if value is None:
        return None
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
