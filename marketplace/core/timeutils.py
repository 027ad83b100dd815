from datetime import UTC, datetime, timedelta


def utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC; naive inputs are assumed to already be UTC."""
    if dt.tzinfo is not None:
        return dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, rounded down."""
    return int((end - start) // timedelta(minutes=1))
