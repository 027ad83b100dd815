from datetime import datetime
from decimal import Decimal

from marketplace.api.schemas.common import CamelModel, Pagination
from marketplace.models.booking import BookingStatus


class BookingCreateRequest(CamelModel):
    service_id: int
    variation_id: int
    start_datetime: datetime


class CancelBookingRequest(CamelModel):
    reason: str | None = None


class BookingPublic(CamelModel):
    id: int
    client_id: int
    provider_id: int
    service_id: int
    service_variation_id: int
    start_datetime: datetime
    end_datetime: datetime
    price_at_booking: Decimal
    status: BookingStatus
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    completed_at: datetime | None = None
    created_at: datetime


class BookingDetail(BookingPublic):
    service_title: str
    variation_name: str
    duration_minutes: int
    client_name: str
    provider_name: str


class BookingResponse(CamelModel):
    message: str
    booking: BookingPublic


class BookingDetailResponse(CamelModel):
    booking: BookingDetail


class BookingListResponse(CamelModel):
    count: int
    bookings: list[BookingDetail]


class ProviderBookingListResponse(BookingListResponse):
    pagination: Pagination
