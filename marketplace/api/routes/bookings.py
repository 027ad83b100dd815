import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.deps import get_current_user, get_session, require_role
from marketplace.api.schemas.booking import (
    BookingCreateRequest,
    BookingDetail,
    BookingDetailResponse,
    BookingListResponse,
    BookingPublic,
    BookingResponse,
    CancelBookingRequest,
)
from marketplace.models.booking import BookingStatus
from marketplace.models.user import User, UserRole
from marketplace.services import booking_service
from marketplace.services.booking_service import BookingContext
from marketplace.services.email_service import send_booking_cancelled_email, send_new_booking_email

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


def to_detail(ctx: BookingContext) -> BookingDetail:
    """Booking row plus the names a client or provider needs to recognise it."""
    public = BookingPublic.model_validate(ctx.booking)
    return BookingDetail(
        **public.model_dump(),
        service_title=ctx.service.title,
        variation_name=ctx.variation.name,
        duration_minutes=ctx.variation.duration_minutes,
        client_name=ctx.client.name,
        provider_name=ctx.provider_user.name,
    )


def schedule_cancellation_email(background_tasks: BackgroundTasks, ctx: BookingContext, notify: User) -> None:
    background_tasks.add_task(
        send_booking_cancelled_email,
        to_email=notify.email,
        recipient_name=notify.name,
        service_title=ctx.service.title,
        start=ctx.booking.start_datetime,
        end=ctx.booking.end_datetime,
        reason=ctx.booking.cancellation_reason,
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    body: BookingCreateRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(UserRole.CLIENT)),
) -> BookingResponse:
    ctx = await booking_service.create_booking(
        session, current_user, body.service_id, body.variation_id, body.start_datetime
    )
    # Provider e-mail in background (uses sync SMTP); the notification row is already stored
    background_tasks.add_task(
        send_new_booking_email,
        to_email=ctx.provider_user.email,
        provider_name=ctx.provider_user.name,
        client_name=current_user.name,
        service_title=ctx.service.title,
        variation_name=ctx.variation.name,
        start=ctx.booking.start_datetime,
        end=ctx.booking.end_datetime,
    )
    return BookingResponse(message="Booking created", booking=BookingPublic.model_validate(ctx.booking))


@router.get("/my", response_model=BookingListResponse)
async def list_my_bookings(
    status_filter: BookingStatus | None = Query(None, alias="status"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(UserRole.CLIENT)),
) -> BookingListResponse:
    contexts = await booking_service.list_client_bookings(
        session, current_user.id, status_filter, start=start_date, end=end_date
    )
    return BookingListResponse(count=len(contexts), bookings=[to_detail(c) for c in contexts])


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking(
    booking_id: int,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> BookingDetailResponse:
    ctx = await booking_service.get_booking_for_user(session, booking_id, current_user)
    return BookingDetailResponse(booking=to_detail(ctx))


@router.patch("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    background_tasks: BackgroundTasks,
    body: CancelBookingRequest | None = None,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(UserRole.CLIENT)),
) -> BookingResponse:
    ctx = await booking_service.cancel_booking(
        session, booking_id, current_user, reason=body.reason if body else None
    )
    schedule_cancellation_email(background_tasks, ctx, notify=ctx.provider_user)
    return BookingResponse(message="Booking cancelled", booking=BookingPublic.model_validate(ctx.booking))
