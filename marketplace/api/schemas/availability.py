from datetime import datetime

from marketplace.api.schemas.common import CamelModel


class AvailabilityCreateRequest(CamelModel):
    start_datetime: datetime
    end_datetime: datetime


class AvailabilityUpdateRequest(CamelModel):
    start_datetime: datetime | None = None
    end_datetime: datetime | None = None
    is_active: bool | None = None


class AvailabilityPublic(CamelModel):
    id: int
    provider_id: int
    start_datetime: datetime
    end_datetime: datetime
    is_active: bool
    created_at: datetime


class AvailabilityResponse(CamelModel):
    message: str
    availability: AvailabilityPublic


class AvailabilityListResponse(CamelModel):
    count: int
    availabilities: list[AvailabilityPublic]


class SlotInfo(CamelModel):
    start: datetime
    end: datetime
    duration_minutes: int


class ProviderRef(CamelModel):
    id: int
    name: str


class Period(CamelModel):
    start: datetime
    end: datetime


class AvailableSlotsResponse(CamelModel):
    provider: ProviderRef
    period: Period
    available_slots: list[SlotInfo]
    total_slots: int
