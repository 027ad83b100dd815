import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.deps import get_current_provider, get_session, require_role
from marketplace.api.routes.bookings import schedule_cancellation_email, to_detail
from marketplace.api.routes.services import to_service_public
from marketplace.api.schemas.availability import (
    AvailabilityCreateRequest,
    AvailabilityListResponse,
    AvailabilityPublic,
    AvailabilityResponse,
    AvailabilityUpdateRequest,
    AvailableSlotsResponse,
    Period,
    ProviderRef,
    SlotInfo,
)
from marketplace.api.schemas.booking import (
    BookingPublic,
    BookingResponse,
    CancelBookingRequest,
    ProviderBookingListResponse,
)
from marketplace.api.schemas.common import MessageResponse, Pagination
from marketplace.api.schemas.notification import (
    NotificationListResponse,
    NotificationPublic,
    NotificationResponse,
)
from marketplace.api.schemas.provider import (
    BookingCounts,
    NotificationSummary,
    ProviderDetailResponse,
    ProviderProfileResponse,
    ProviderPublic,
    ProviderSearchItem,
    ProviderSearchResponse,
    ProviderStatsResponse,
    ProviderUpdateRequest,
    RevenueSummary,
)
from marketplace.core.config import settings
from marketplace.core.errors import api_error
from marketplace.core.timeutils import to_naive_utc
from marketplace.models.booking import BookingStatus
from marketplace.models.provider import Provider, ProviderUpdate
from marketplace.models.user import User, UserRole
from marketplace.services import (
    availability_service,
    booking_service,
    catalog_service,
    notification_service,
    provider_service,
)
from marketplace.services.slot_service import get_available_slots

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/providers", tags=["providers"])


def _parse_query_datetime(value: str) -> datetime:
    try:
        return to_naive_utc(datetime.fromisoformat(value))
    except ValueError:
        raise api_error(status.HTTP_400_BAD_REQUEST, "Invalid date format. Use ISO 8601")


def _page_size(limit: int | None) -> int:
    return min(limit or settings.default_page_size, settings.max_page_size)


# --- Availability windows (provider only) ---


@router.post("/availabilities", response_model=AvailabilityResponse, status_code=status.HTTP_201_CREATED)
async def create_availability(
    body: AvailabilityCreateRequest,
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> AvailabilityResponse:
    availability = await availability_service.create_availability(
        session, provider, body.start_datetime, body.end_datetime
    )
    return AvailabilityResponse(
        message="Availability created",
        availability=AvailabilityPublic.model_validate(availability),
    )


@router.get("/availabilities", response_model=AvailabilityListResponse)
async def list_my_availabilities(
    active: bool | None = Query(None),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> AvailabilityListResponse:
    availabilities = await availability_service.list_availabilities(
        session, provider.id, active=active, start=start_date, end=end_date
    )
    return AvailabilityListResponse(
        count=len(availabilities),
        availabilities=[AvailabilityPublic.model_validate(a) for a in availabilities],
    )


@router.put("/availabilities/{availability_id}", response_model=AvailabilityResponse)
async def update_availability(
    availability_id: int,
    body: AvailabilityUpdateRequest,
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> AvailabilityResponse:
    availability = await availability_service.update_availability(
        session,
        provider,
        availability_id,
        start_datetime=body.start_datetime,
        end_datetime=body.end_datetime,
        is_active=body.is_active,
    )
    return AvailabilityResponse(
        message="Availability updated",
        availability=AvailabilityPublic.model_validate(availability),
    )


@router.delete("/availabilities/{availability_id}", response_model=MessageResponse)
async def delete_availability(
    availability_id: int,
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> MessageResponse:
    await availability_service.delete_availability(session, provider, availability_id)
    return MessageResponse(message="Availability deleted")


# --- Bookings and notifications (provider only) ---


@router.get("/bookings", response_model=ProviderBookingListResponse)
async def list_provider_bookings(
    status_filter: BookingStatus | None = Query(None, alias="status"),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> ProviderBookingListResponse:
    size = _page_size(limit)
    contexts, total = await booking_service.list_provider_bookings(
        session,
        provider.id,
        page,
        size,
        status_filter=status_filter,
        start=_parse_query_datetime(start_date) if start_date else None,
        end=_parse_query_datetime(end_date) if end_date else None,
    )
    return ProviderBookingListResponse(
        count=len(contexts),
        bookings=[to_detail(c) for c in contexts],
        pagination=Pagination.build(page, size, total),
    )


@router.patch("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_provider_booking(
    booking_id: int,
    background_tasks: BackgroundTasks,
    body: CancelBookingRequest | None = None,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(UserRole.PROVIDER)),
) -> BookingResponse:
    ctx = await booking_service.cancel_booking(
        session, booking_id, current_user, reason=body.reason if body else None, as_provider=True
    )
    schedule_cancellation_email(background_tasks, ctx, notify=ctx.client)
    return BookingResponse(message="Booking cancelled", booking=BookingPublic.model_validate(ctx.booking))


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    is_read: bool | None = Query(None, alias="isRead"),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> NotificationListResponse:
    size = _page_size(limit)
    notifications, total = await notification_service.list_notifications(
        session, provider.id, page, size, is_read=is_read
    )
    unread = await notification_service.count_unread(session, provider.id)
    return NotificationListResponse(
        count=len(notifications),
        unread_count=unread,
        notifications=[NotificationPublic.model_validate(n) for n in notifications],
        pagination=Pagination.build(page, size, total),
    )


@router.patch("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> NotificationResponse:
    notification = await notification_service.mark_as_read(session, provider.id, notification_id)
    return NotificationResponse(
        message="Notification marked as read",
        notification=NotificationPublic.model_validate(notification),
    )


@router.get("/dashboard/stats", response_model=ProviderStatsResponse)
async def dashboard_stats(
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> ProviderStatsResponse:
    stats = await provider_service.get_provider_stats(session, provider.id)
    upcoming = await booking_service.list_upcoming_provider_bookings(session, provider.id)
    return ProviderStatsResponse(
        bookings=BookingCounts(
            total=sum(stats.counts.values()),
            pending=stats.counts[BookingStatus.PENDING],
            approved=stats.counts[BookingStatus.APPROVED],
            completed=stats.counts[BookingStatus.COMPLETED],
            cancelled=stats.counts[BookingStatus.CANCELLED],
            this_month=stats.this_month,
            this_week=stats.this_week,
        ),
        revenue=RevenueSummary(total=stats.revenue_total, this_month=stats.revenue_this_month),
        upcoming=[to_detail(c) for c in upcoming],
        notifications=NotificationSummary(unread=stats.unread_notifications),
    )


# --- Profile ---


@router.put("/profile", response_model=ProviderProfileResponse)
async def update_profile(
    body: ProviderUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(UserRole.PROVIDER)),
    provider: Provider = Depends(get_current_provider),
) -> ProviderProfileResponse:
    data = ProviderUpdate.model_validate(body.model_dump(exclude_unset=True))
    provider = await provider_service.update_provider_profile(session, provider, data)
    return ProviderProfileResponse(
        message="Profile updated",
        provider=ProviderPublic(
            id=provider.id,
            user_id=provider.user_id,
            name=current_user.name,
            bio=provider.bio,
            city=provider.city,
            state=provider.state,
        ),
    )


# --- Public routes; /{provider_id} paths stay last so they don't capture the ones above ---


@router.get("/search", response_model=ProviderSearchResponse)
async def search_providers(
    city: str | None = Query(None),
    state: str | None = Query(None),
    service_type_id: int | None = Query(None, alias="serviceTypeId"),
    search: str | None = Query(None),
    sort_by: str = Query("recent", alias="sortBy"),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    session: AsyncSession = Depends(get_session),
) -> ProviderSearchResponse:
    if sort_by not in provider_service.SEARCH_SORTS:
        raise api_error(
            status.HTTP_400_BAD_REQUEST, "Invalid sortBy", allowed=list(provider_service.SEARCH_SORTS)
        )
    size = _page_size(limit)
    rows, total = await provider_service.search_providers(
        session,
        page,
        size,
        city=city,
        state=state,
        service_type_id=service_type_id,
        search=search,
        sort_by=sort_by,
    )
    return ProviderSearchResponse(
        providers=[
            ProviderSearchItem(
                id=provider.id,
                user_id=provider.user_id,
                name=user.name,
                bio=provider.bio,
                city=provider.city,
                state=provider.state,
                services_count=count,
            )
            for provider, user, count in rows
        ],
        pagination=Pagination.build(page, size, total),
    )


@router.get("/{provider_id}/available-slots", response_model=AvailableSlotsResponse)
async def available_slots(
    provider_id: int,
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    duration_minutes: int | None = Query(None, alias="durationMinutes", gt=0),
    session: AsyncSession = Depends(get_session),
) -> AvailableSlotsResponse:
    """Free periods of the provider: active availability windows minus active bookings."""
    if not start_date or not end_date:
        raise api_error(status.HTTP_400_BAD_REQUEST, "startDate and endDate are required")
    start = _parse_query_datetime(start_date)
    end = _parse_query_datetime(end_date)

    found = await provider_service.get_provider_with_user(session, provider_id)
    if not found:
        raise api_error(status.HTTP_404_NOT_FOUND, "Provider not found")
    provider, user = found

    slots = await get_available_slots(session, provider.id, start, end, duration_minutes)
    return AvailableSlotsResponse(
        provider=ProviderRef(id=provider.id, name=user.name),
        period=Period(start=start, end=end),
        available_slots=[
            SlotInfo(start=s.start, end=s.end, duration_minutes=s.duration_minutes) for s in slots
        ],
        total_slots=len(slots),
    )


@router.get("/{provider_id}", response_model=ProviderDetailResponse)
async def get_provider(
    provider_id: int,
    session: AsyncSession = Depends(get_session),
) -> ProviderDetailResponse:
    found = await provider_service.get_provider_with_user(session, provider_id)
    if not found:
        raise api_error(status.HTTP_404_NOT_FOUND, "Provider not found")
    provider, user = found
    services = await catalog_service.list_provider_services(session, provider.id, active_only=True)
    variations = await catalog_service.get_variations_for(session, [s.id for s in services])
    return ProviderDetailResponse(
        provider=ProviderPublic(
            id=provider.id,
            user_id=provider.user_id,
            name=user.name,
            bio=provider.bio,
            city=provider.city,
            state=provider.state,
            services=[to_service_public(s, variations.get(s.id)) for s in services],
        )
    )
