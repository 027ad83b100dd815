"""
Overlap detection for half-open [start, end) intervals.

Two intervals overlap iff s1 < e2 and s2 < e1, so intervals that only touch
at an endpoint (back-to-back bookings, adjacent availability windows) are
accepted. The same predicate is used for availability windows and bookings;
callers scope the candidate set (same provider, active rows only).
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol, TypeVar

from sqlalchemy import and_
from sqlalchemy.sql.elements import ColumnElement


class Interval(Protocol):
    start_datetime: datetime
    end_datetime: datetime


T = TypeVar("T", bound=Interval)


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and start_b < end_a


def find_overlap(start: datetime, end: datetime, existing: Iterable[T]) -> T | None:
    """Return the first interval in `existing` that intersects [start, end), if any."""
    for interval in existing:
        if overlaps(start, end, interval.start_datetime, interval.end_datetime):
            return interval
    return None


def overlap_clause(model, start: datetime, end: datetime) -> ColumnElement[bool]:
    """SQL form of `overlaps` against a model with start_datetime/end_datetime columns."""
    return and_(model.start_datetime < end, model.end_datetime > start)


def interval_payload(interval: Interval) -> dict[str, str]:
    """JSON description of a blocking interval for 400 responses."""
    return {
        "start": interval.start_datetime.isoformat(),
        "end": interval.end_datetime.isoformat(),
    }
