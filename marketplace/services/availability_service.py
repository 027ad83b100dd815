import logging
from datetime import datetime, timedelta

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import settings
from marketplace.core.errors import api_error
from marketplace.core.timeutils import to_naive_utc, utc_naive_now
from marketplace.models.availability import ProviderAvailability
from marketplace.models.booking import ACTIVE_BOOKING_STATUSES, Booking
from marketplace.models.provider import Provider
from marketplace.services.overlap import find_overlap, interval_payload, overlap_clause
from marketplace.services.provider_service import lock_provider

logger = logging.getLogger(__name__)


def _validate_range(start: datetime, end: datetime) -> None:
    if start >= end:
        raise api_error(status.HTTP_400_BAD_REQUEST, "Start must be before end")


async def find_overlapping_window(
    session: AsyncSession,
    provider_id: int,
    start: datetime,
    end: datetime,
    exclude_id: int | None = None,
) -> ProviderAvailability | None:
    q = (
        select(ProviderAvailability)
        .where(
            ProviderAvailability.provider_id == provider_id,
            ProviderAvailability.is_active == True,  # noqa: E712
            overlap_clause(ProviderAvailability, start, end),
        )
        .order_by(ProviderAvailability.start_datetime)
    )
    if exclude_id is not None:
        q = q.where(ProviderAvailability.id != exclude_id)
    result = await session.execute(q)
    return find_overlap(start, end, result.scalars().all())


async def _ensure_no_overlap(
    session: AsyncSession,
    provider_id: int,
    start: datetime,
    end: datetime,
    exclude_id: int | None = None,
) -> None:
    await lock_provider(session, provider_id)
    existing = await find_overlapping_window(session, provider_id, start, end, exclude_id)
    if existing:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "An availability already exists in this period",
            overlapping=interval_payload(existing),
        )


async def get_containing_window(
    session: AsyncSession, provider_id: int, start: datetime, end: datetime
) -> ProviderAvailability | None:
    """Active window that fully contains [start, end)."""
    result = await session.execute(
        select(ProviderAvailability)
        .where(
            ProviderAvailability.provider_id == provider_id,
            ProviderAvailability.is_active == True,  # noqa: E712
            ProviderAvailability.start_datetime <= start,
            ProviderAvailability.end_datetime >= end,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_availability(
    session: AsyncSession,
    provider: Provider,
    start_datetime: datetime,
    end_datetime: datetime,
    now: datetime | None = None,
) -> ProviderAvailability:
    start = to_naive_utc(start_datetime)
    end = to_naive_utc(end_datetime)
    _validate_range(start, end)
    # Small tolerance for clock skew between client and server
    cutoff = (now or utc_naive_now()) - timedelta(minutes=settings.booking_past_tolerance_minutes)
    if end < cutoff:
        raise api_error(status.HTTP_400_BAD_REQUEST, "Cannot create an availability that has already ended")
    await _ensure_no_overlap(session, provider.id, start, end)
    availability = ProviderAvailability(
        provider_id=provider.id,
        start_datetime=start,
        end_datetime=end,
        is_active=True,
    )
    session.add(availability)
    await session.flush()
    await session.refresh(availability)
    logger.info(
        "Availability %s created for provider %s: %s - %s",
        availability.id, provider.id, start.isoformat(), end.isoformat(),
    )
    return availability


async def list_availabilities(
    session: AsyncSession,
    provider_id: int,
    active: bool | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[ProviderAvailability]:
    q = select(ProviderAvailability).where(ProviderAvailability.provider_id == provider_id)
    if active is not None:
        q = q.where(ProviderAvailability.is_active == active)
    if start is not None:
        q = q.where(ProviderAvailability.end_datetime >= to_naive_utc(start))
    if end is not None:
        q = q.where(ProviderAvailability.start_datetime <= to_naive_utc(end))
    result = await session.execute(q.order_by(ProviderAvailability.start_datetime))
    return list(result.scalars().all())


async def _get_owned_window(
    session: AsyncSession, provider: Provider, availability_id: int, action: str
) -> ProviderAvailability:
    availability = await session.get(ProviderAvailability, availability_id)
    if not availability:
        raise api_error(status.HTTP_404_NOT_FOUND, "Availability not found")
    if availability.provider_id != provider.id:
        raise api_error(status.HTTP_403_FORBIDDEN, f"You are not allowed to {action} this availability")
    return availability


async def update_availability(
    session: AsyncSession,
    provider: Provider,
    availability_id: int,
    start_datetime: datetime | None = None,
    end_datetime: datetime | None = None,
    is_active: bool | None = None,
) -> ProviderAvailability:
    availability = await _get_owned_window(session, provider, availability_id, "edit")
    new_start = to_naive_utc(start_datetime) if start_datetime else availability.start_datetime
    new_end = to_naive_utc(end_datetime) if end_datetime else availability.end_datetime
    will_be_active = availability.is_active if is_active is None else is_active
    moved = new_start != availability.start_datetime or new_end != availability.end_datetime
    reactivated = will_be_active and not availability.is_active

    _validate_range(new_start, new_end)
    # Re-check whenever the window ends up active with a new range or comes back to life
    if will_be_active and (moved or reactivated):
        await _ensure_no_overlap(session, provider.id, new_start, new_end, exclude_id=availability.id)

    availability.start_datetime = new_start
    availability.end_datetime = new_end
    availability.is_active = will_be_active
    session.add(availability)
    await session.flush()
    await session.refresh(availability)
    logger.info("Availability %s updated by provider %s", availability.id, provider.id)
    return availability


async def count_active_bookings_within(
    session: AsyncSession, provider_id: int, start: datetime, end: datetime
) -> int:
    result = await session.execute(
        select(func.count(Booking.id)).where(
            Booking.provider_id == provider_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.start_datetime >= start,
            Booking.end_datetime <= end,
        )
    )
    return result.scalar_one()


async def delete_availability(session: AsyncSession, provider: Provider, availability_id: int) -> None:
    availability = await _get_owned_window(session, provider, availability_id, "delete")
    # Same lock create_booking takes, held until the delete commits
    await lock_provider(session, provider.id)
    bookings_count = await count_active_bookings_within(
        session, provider.id, availability.start_datetime, availability.end_datetime
    )
    if bookings_count > 0:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "Cannot delete an availability that has active bookings",
            bookingsCount=bookings_count,
        )
    await session.delete(availability)
    await session.flush()
    logger.info("Availability %s deleted by provider %s", availability_id, provider.id)
