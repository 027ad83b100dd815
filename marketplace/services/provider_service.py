from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.timeutils import utc_naive_now
from marketplace.models.booking import Booking, BookingStatus
from marketplace.models.catalog import Service
from marketplace.models.provider import Provider, ProviderUpdate
from marketplace.models.user import User
from marketplace.services.notification_service import count_unread


async def get_provider_by_user_id(session: AsyncSession, user_id: int) -> Provider | None:
    result = await session.execute(select(Provider).where(Provider.user_id == user_id))
    return result.scalar_one_or_none()


async def get_provider_with_user(
    session: AsyncSession, provider_id: int
) -> tuple[Provider, User] | None:
    result = await session.execute(
        select(Provider, User).join(User, User.id == Provider.user_id).where(Provider.id == provider_id)
    )
    row = result.first()
    return (row[0], row[1]) if row else None


async def lock_provider(session: AsyncSession, provider_id: int) -> None:
    """Row lock on the provider for the rest of the transaction.

    Serialises check-then-insert of availability windows and bookings for one
    provider on PostgreSQL. SQLite ignores FOR UPDATE (it serialises writers anyway).
    """
    await session.execute(select(Provider.id).where(Provider.id == provider_id).with_for_update())


async def update_provider_profile(
    session: AsyncSession, provider: Provider, data: ProviderUpdate
) -> Provider:
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(provider, key, value)
    session.add(provider)
    await session.flush()
    await session.refresh(provider)
    return provider


SEARCH_SORTS = ("recent", "services_count")


async def search_providers(
    session: AsyncSession,
    page: int,
    limit: int,
    city: str | None = None,
    state: str | None = None,
    service_type_id: int | None = None,
    search: str | None = None,
    sort_by: str = "recent",
) -> tuple[list[tuple[Provider, User, int]], int]:
    """Providers matching the filters with their active service count. Returns (page_items, total)."""
    services_count = (
        select(func.count(Service.id))
        .where(Service.provider_id == Provider.id, Service.is_active == True)  # noqa: E712
        .correlate(Provider)
        .scalar_subquery()
        .label("services_count")
    )
    q = select(Provider, User, services_count).join(User, User.id == Provider.user_id)
    if city:
        q = q.where(func.lower(Provider.city) == city.lower())
    if state:
        q = q.where(func.lower(Provider.state) == state.lower())
    if service_type_id:
        q = q.where(
            exists().where(
                Service.provider_id == Provider.id,
                Service.service_type_id == service_type_id,
                Service.is_active == True,  # noqa: E712
            )
        )
    if search:
        pattern = f"%{search.lower()}%"
        q = q.where(or_(func.lower(User.name).like(pattern), func.lower(Provider.bio).like(pattern)))

    total = (await session.execute(select(func.count()).select_from(q.subquery()))).scalar_one()
    if sort_by == "services_count":
        q = q.order_by(services_count.desc(), Provider.id.desc())
    else:
        q = q.order_by(Provider.id.desc())
    result = await session.execute(q.offset((page - 1) * limit).limit(limit))
    return [(p, u, count) for p, u, count in result.all()], total


@dataclass
class ProviderStats:
    counts: dict[BookingStatus, int]
    this_month: int
    this_week: int
    revenue_total: Decimal
    revenue_this_month: Decimal
    unread_notifications: int


def _month_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = datetime(now.year, now.month, 1)
    end = datetime(now.year + 1, 1, 1) if now.month == 12 else datetime(now.year, now.month + 1, 1)
    return start, end


def _week_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Monday 00:00 to the next Monday 00:00."""
    start = datetime(now.year, now.month, now.day) - timedelta(days=now.weekday())
    return start, start + timedelta(days=7)


async def get_provider_stats(session: AsyncSession, provider_id: int, now: datetime | None = None) -> ProviderStats:
    """Dashboard figures. Month and week counts go by booking start; revenue counts COMPLETED bookings only."""
    current = now or utc_naive_now()
    month_start, month_end = _month_bounds(current)
    week_start, week_end = _week_bounds(current)
    own = Booking.provider_id == provider_id

    rows = await session.execute(
        select(Booking.status, func.count(Booking.id)).where(own).group_by(Booking.status)
    )
    counts = {status: 0 for status in BookingStatus}
    for status, count in rows.all():
        counts[BookingStatus(status)] = count

    async def count_between(start: datetime, end: datetime) -> int:
        result = await session.execute(
            select(func.count(Booking.id)).where(
                own, Booking.start_datetime >= start, Booking.start_datetime < end
            )
        )
        return result.scalar_one()

    async def revenue(*conditions) -> Decimal:
        result = await session.execute(
            select(func.sum(Booking.price_at_booking)).where(
                own, Booking.status == BookingStatus.COMPLETED, *conditions
            )
        )
        total = result.scalar_one()
        return Decimal(str(total)) if total is not None else Decimal("0")

    return ProviderStats(
        counts=counts,
        this_month=await count_between(month_start, month_end),
        this_week=await count_between(week_start, week_end),
        revenue_total=await revenue(),
        revenue_this_month=await revenue(
            Booking.start_datetime >= month_start, Booking.start_datetime < month_end
        ),
        unread_notifications=await count_unread(session, provider_id),
    )
