from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime.

    Every timestamp in the store is naive UTC, so comparisons against values
    read back from SQLite or MySQL never mix aware and naive datetimes. All
    expiry checks go through this function.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """Normalize a datetime to naive UTC.

    Naive values are assumed to already be UTC. Aware values are converted.
    """
    if dt is None:
        return None
    if getattr(dt, "tzinfo", None) is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)

