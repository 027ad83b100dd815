import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from fastapi import status
from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from marketplace.core.config import settings
from marketplace.core.errors import api_error
from marketplace.core.timeutils import to_naive_utc, utc_naive_now
from marketplace.models.booking import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingStatus,
    InvalidTransitionError,
)
from marketplace.models.catalog import Service, ServiceVariation
from marketplace.models.notification import NotificationType
from marketplace.models.provider import Provider
from marketplace.models.user import User
from marketplace.services.availability_service import get_containing_window
from marketplace.services.notification_service import record_notification
from marketplace.services.overlap import find_overlap, interval_payload, overlap_clause
from marketplace.services.provider_service import get_provider_by_user_id, lock_provider

logger = logging.getLogger(__name__)

ClientUser = aliased(User, name="client_user")
ProviderUser = aliased(User, name="provider_user")


@dataclass
class BookingContext:
    """A booking with the rows needed to describe it to people."""

    booking: Booking
    service: Service
    variation: ServiceVariation
    client: User
    provider_user: User


def _detail_query() -> Select:
    return (
        select(Booking, Service, ServiceVariation, ClientUser, ProviderUser)
        .join(Service, Service.id == Booking.service_id)
        .join(ServiceVariation, ServiceVariation.id == Booking.service_variation_id)
        .join(ClientUser, ClientUser.id == Booking.client_id)
        .join(Provider, Provider.id == Booking.provider_id)
        .join(ProviderUser, ProviderUser.id == Provider.user_id)
    )


def _to_context(row) -> BookingContext:
    booking, service, variation, client, provider_user = row
    return BookingContext(booking, service, variation, client, provider_user)


async def find_overlapping_booking(
    session: AsyncSession, provider_id: int, start: datetime, end: datetime
) -> Booking | None:
    result = await session.execute(
        select(Booking)
        .where(
            Booking.provider_id == provider_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            overlap_clause(Booking, start, end),
        )
        .order_by(Booking.start_datetime)
    )
    return find_overlap(start, end, result.scalars().all())


def _overlap_error(existing: Booking | None):
    extra = {"conflictingBooking": interval_payload(existing)} if existing else {}
    return api_error(status.HTTP_400_BAD_REQUEST, "This time slot is already taken", **extra)


async def create_booking(
    session: AsyncSession,
    client: User,
    service_id: int,
    variation_id: int,
    start_datetime: datetime,
    now: datetime | None = None,
) -> BookingContext:
    """Validate and insert an APPROVED booking; checks run in a fixed order and the
    first failure aborts."""
    service = await session.get(Service, service_id)
    if not service:
        raise api_error(status.HTTP_404_NOT_FOUND, "Service not found")
    if not service.is_active:
        raise api_error(status.HTTP_400_BAD_REQUEST, "This service is no longer available")

    variation = await session.get(ServiceVariation, variation_id)
    if not variation:
        raise api_error(status.HTTP_404_NOT_FOUND, "Service variation not found")
    if variation.service_id != service.id:
        raise api_error(status.HTTP_400_BAD_REQUEST, "This variation does not belong to the selected service")
    if not variation.is_active:
        raise api_error(status.HTTP_400_BAD_REQUEST, "This variation is no longer available")

    start = to_naive_utc(start_datetime)
    end = start + timedelta(minutes=variation.duration_minutes)

    cutoff = (now or utc_naive_now()) - timedelta(minutes=settings.booking_past_tolerance_minutes)
    if start < cutoff:
        raise api_error(status.HTTP_400_BAD_REQUEST, "Cannot book in the past")

    provider_id = service.provider_id
    await lock_provider(session, provider_id)

    if not await get_containing_window(session, provider_id, start, end):
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "Provider is not available at this time",
            hint=f"Use GET /api/v1/providers/{provider_id}/available-slots to see available times",
        )

    existing = await find_overlapping_booking(session, provider_id, start, end)
    if existing:
        raise _overlap_error(existing)

    provider = await session.get(Provider, provider_id)
    if provider.user_id == client.id:
        raise api_error(status.HTTP_400_BAD_REQUEST, "You cannot book your own services")

    booking = Booking(
        client_id=client.id,
        provider_id=provider_id,
        service_id=service.id,
        service_variation_id=variation.id,
        start_datetime=start,
        end_datetime=end,
        price_at_booking=variation.price,
        # No manual approval step: bookings are approved on creation
        status=BookingStatus.APPROVED,
    )
    session.add(booking)
    try:
        await session.flush()
    except IntegrityError as e:
        # Storage-level exclusion constraint caught a concurrent insert
        logger.warning("Booking insert rejected by constraint for provider %s: %s", provider_id, e)
        raise _overlap_error(None) from e
    await session.refresh(booking)

    provider_user = await session.get(User, provider.user_id)
    await record_notification(
        session,
        provider_id=provider_id,
        booking_id=booking.id,
        type_=NotificationType.NEW_BOOKING,
        message=(
            f"New booking from {client.name} for {service.title} - {variation.name} "
            f"on {start.strftime('%Y-%m-%d %H:%M')} UTC"
        ),
    )
    logger.info(
        "Booking %s created: client=%s provider=%s %s - %s",
        booking.id, client.id, provider_id, start.isoformat(), end.isoformat(),
    )
    return BookingContext(booking, service, variation, client, provider_user)


async def get_booking_context(session: AsyncSession, booking_id: int) -> BookingContext | None:
    result = await session.execute(_detail_query().where(Booking.id == booking_id))
    row = result.first()
    return _to_context(row) if row else None


async def get_booking_for_user(session: AsyncSession, booking_id: int, user: User) -> BookingContext:
    """Only the booking's client or its provider may see it."""
    ctx = await get_booking_context(session, booking_id)
    if not ctx:
        raise api_error(status.HTTP_404_NOT_FOUND, "Booking not found")
    if ctx.client.id != user.id and ctx.provider_user.id != user.id:
        raise api_error(status.HTTP_403_FORBIDDEN, "You are not allowed to view this booking")
    return ctx


async def list_client_bookings(
    session: AsyncSession,
    client_id: int,
    status_filter: BookingStatus | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[BookingContext]:
    q = _detail_query().where(Booking.client_id == client_id)
    if status_filter:
        q = q.where(Booking.status == status_filter)
    if start:
        q = q.where(Booking.start_datetime >= to_naive_utc(start))
    if end:
        q = q.where(Booking.start_datetime <= to_naive_utc(end))
    result = await session.execute(q.order_by(Booking.start_datetime.desc()))
    return [_to_context(row) for row in result.all()]


async def list_provider_bookings(
    session: AsyncSession,
    provider_id: int,
    page: int,
    limit: int,
    status_filter: BookingStatus | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> tuple[list[BookingContext], int]:
    """Bookings starting within [start, end], earliest first. Returns (page_items, total_matching)."""
    conditions = [Booking.provider_id == provider_id]
    if status_filter:
        conditions.append(Booking.status == status_filter)
    if start:
        conditions.append(Booking.start_datetime >= to_naive_utc(start))
    if end:
        conditions.append(Booking.start_datetime <= to_naive_utc(end))
    total = (await session.execute(select(func.count(Booking.id)).where(*conditions))).scalar_one()
    result = await session.execute(
        _detail_query()
        .where(*conditions)
        .order_by(Booking.start_datetime.asc(), Booking.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return [_to_context(row) for row in result.all()], total


async def list_upcoming_provider_bookings(
    session: AsyncSession, provider_id: int, now: datetime | None = None, limit: int = 5
) -> list[BookingContext]:
    """Next active bookings of the provider, soonest first."""
    result = await session.execute(
        _detail_query()
        .where(
            Booking.provider_id == provider_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.start_datetime >= (now or utc_naive_now()),
        )
        .order_by(Booking.start_datetime.asc())
        .limit(limit)
    )
    return [_to_context(row) for row in result.all()]


def _apply_cancel(booking: Booking, reason: str) -> None:
    current = BookingStatus(booking.status)
    if current == BookingStatus.CANCELLED:
        raise api_error(status.HTTP_400_BAD_REQUEST, "This booking is already cancelled")
    if current == BookingStatus.COMPLETED:
        raise api_error(status.HTTP_400_BAD_REQUEST, "Cannot cancel a completed booking")
    try:
        booking.transition(BookingStatus.CANCELLED)
    except InvalidTransitionError as e:
        raise api_error(status.HTTP_400_BAD_REQUEST, str(e), currentStatus=current.value) from e
    booking.cancellation_reason = reason


async def cancel_booking(
    session: AsyncSession,
    booking_id: int,
    actor: User,
    reason: str | None = None,
    as_provider: bool = False,
) -> BookingContext:
    """Cancel as the booking's client, or as its provider when `as_provider` is set."""
    ctx = await get_booking_context(session, booking_id)
    if not ctx:
        raise api_error(status.HTTP_404_NOT_FOUND, "Booking not found")
    booking = ctx.booking

    if as_provider:
        provider = await get_provider_by_user_id(session, actor.id)
        if not provider or booking.provider_id != provider.id:
            raise api_error(status.HTTP_403_FORBIDDEN, "You are not allowed to cancel this booking")
        default_reason = "Cancelled by provider"
    else:
        if booking.client_id != actor.id:
            raise api_error(status.HTTP_403_FORBIDDEN, "You are not allowed to cancel this booking")
        default_reason = "Cancelled by client"

    _apply_cancel(booking, reason or default_reason)
    session.add(booking)
    await session.flush()
    await session.refresh(booking)

    await record_notification(
        session,
        provider_id=booking.provider_id,
        booking_id=booking.id,
        type_=NotificationType.BOOKING_CANCELLED,
        message=(
            f"Booking cancelled: {ctx.service.title} - {ctx.variation.name}. "
            f"Reason: {booking.cancellation_reason}"
        ),
    )
    logger.info("Booking %s cancelled by user %s (%s)", booking.id, actor.id, booking.cancellation_reason)
    return ctx


async def complete_elapsed_bookings(session: AsyncSession, now: datetime | None = None) -> int:
    """Mark APPROVED bookings whose end has passed as COMPLETED. Returns count updated."""
    current = now or utc_naive_now()
    result = await session.execute(
        select(Booking).where(
            Booking.status == BookingStatus.APPROVED,
            Booking.end_datetime <= current,
        )
    )
    bookings = list(result.scalars().all())
    for booking in bookings:
        booking.transition(BookingStatus.COMPLETED, at=current)
        session.add(booking)
    await session.flush()
    return len(bookings)
