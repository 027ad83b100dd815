from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.timeutils import minutes_between
from marketplace.models.availability import ProviderAvailability
from marketplace.models.booking import ACTIVE_BOOKING_STATUSES, Booking
from marketplace.services.overlap import Interval, overlap_clause, overlaps


@dataclass(frozen=True)
class FreeSlot:
    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start, self.end)


def _subtract_bookings(window: Interval, bookings: Iterable[Interval]) -> list[FreeSlot]:
    """Residual segments of one window after removing every booking that intersects it."""
    w_start, w_end = window.start_datetime, window.end_datetime
    conflicting = sorted(
        (b for b in bookings if overlaps(b.start_datetime, b.end_datetime, w_start, w_end)),
        key=lambda b: b.start_datetime,
    )
    if not conflicting:
        return [FreeSlot(w_start, w_end)]

    free: list[FreeSlot] = []
    cursor = w_start
    for booking in conflicting:
        if cursor < booking.start_datetime:
            free.append(FreeSlot(cursor, booking.start_datetime))
        cursor = max(cursor, booking.end_datetime)
    if cursor < w_end:
        free.append(FreeSlot(cursor, w_end))
    return free


def compute_free_slots(
    windows: Iterable[Interval],
    bookings: Iterable[Interval],
    min_duration_minutes: int | None = None,
) -> list[FreeSlot]:
    """Free sub-intervals of the given availability windows not covered by any booking.

    Windows are processed independently in the order given; inputs need not be
    sorted. Segments shorter than `min_duration_minutes` are dropped afterwards.
    """
    bookings = list(bookings)
    slots: list[FreeSlot] = []
    for window in windows:
        slots.extend(_subtract_bookings(window, bookings))
    if min_duration_minutes:
        slots = [s for s in slots if s.duration_minutes >= min_duration_minutes]
    return slots


async def get_active_windows_in_range(
    session: AsyncSession, provider_id: int, start: datetime, end: datetime
) -> list[ProviderAvailability]:
    result = await session.execute(
        select(ProviderAvailability)
        .where(
            ProviderAvailability.provider_id == provider_id,
            ProviderAvailability.is_active == True,  # noqa: E712
            ProviderAvailability.start_datetime <= end,
            ProviderAvailability.end_datetime >= start,
        )
        .order_by(ProviderAvailability.start_datetime)
    )
    return list(result.scalars().all())


async def get_active_bookings_in_range(
    session: AsyncSession, provider_id: int, start: datetime, end: datetime
) -> list[Booking]:
    result = await session.execute(
        select(Booking)
        .where(
            Booking.provider_id == provider_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            overlap_clause(Booking, start, end),
        )
        .order_by(Booking.start_datetime)
    )
    return list(result.scalars().all())


async def get_available_slots(
    session: AsyncSession,
    provider_id: int,
    start: datetime,
    end: datetime,
    min_duration_minutes: int | None = None,
) -> list[FreeSlot]:
    """Recomputed on every call from the provider's active windows and active bookings."""
    windows = await get_active_windows_in_range(session, provider_id, start, end)
    if not windows:
        return []
    # Windows may extend past the query range; subtract every booking they cover.
    span_start = min(w.start_datetime for w in windows)
    span_end = max(w.end_datetime for w in windows)
    bookings = await get_active_bookings_in_range(session, provider_id, span_start, span_end)
    return compute_free_slots(windows, bookings, min_duration_minutes)
