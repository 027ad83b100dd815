from decimal import Decimal

from marketplace.api.schemas.booking import BookingDetail
from marketplace.api.schemas.catalog import ServicePublic
from marketplace.api.schemas.common import CamelModel, Pagination


class ProviderUpdateRequest(CamelModel):
    bio: str | None = None
    document: str | None = None
    city: str | None = None
    state: str | None = None


class ProviderPublic(CamelModel):
    id: int
    user_id: int
    name: str
    bio: str | None = None
    city: str | None = None
    state: str | None = None
    services: list[ServicePublic] = []


class ProviderProfileResponse(CamelModel):
    message: str
    provider: ProviderPublic


class ProviderDetailResponse(CamelModel):
    provider: ProviderPublic


class ProviderSearchItem(CamelModel):
    id: int
    user_id: int
    name: str
    bio: str | None = None
    city: str | None = None
    state: str | None = None
    services_count: int


class ProviderSearchResponse(CamelModel):
    providers: list[ProviderSearchItem]
    pagination: Pagination


class BookingCounts(CamelModel):
    total: int
    pending: int
    approved: int
    completed: int
    cancelled: int
    this_month: int
    this_week: int


class RevenueSummary(CamelModel):
    total: Decimal
    this_month: Decimal


class NotificationSummary(CamelModel):
    unread: int


class ProviderStatsResponse(CamelModel):
    bookings: BookingCounts
    revenue: RevenueSummary
    upcoming: list[BookingDetail]
    notifications: NotificationSummary
