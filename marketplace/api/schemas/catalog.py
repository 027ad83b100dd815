from datetime import datetime
from decimal import Decimal

from pydantic import Field

from marketplace.api.schemas.common import CamelModel, Pagination


class ServiceCreateRequest(CamelModel):
    name: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=500)
    service_type_id: int
    allows_multiple_days: bool = False


class ServiceUpdateRequest(CamelModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, min_length=10, max_length=500)
    service_type_id: int | None = None
    allows_multiple_days: bool | None = None
    is_active: bool | None = None


class VariationCreateRequest(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    duration_minutes: int = Field(gt=0)
    discount_percentage: int | None = Field(default=None, ge=0, le=100)
    discount_days: int | None = Field(default=None, gt=0)


class VariationUpdateRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    price: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    duration_minutes: int | None = Field(default=None, gt=0)
    discount_percentage: int | None = Field(default=None, ge=0, le=100)
    discount_days: int | None = Field(default=None, gt=0)
    is_active: bool | None = None


class VariationPublic(CamelModel):
    id: int
    service_id: int
    name: str
    price: Decimal
    duration_minutes: int
    discount_percentage: int | None = None
    discount_days: int | None = None
    is_active: bool


class ServicePublic(CamelModel):
    id: int
    provider_id: int
    service_type_id: int
    title: str
    description: str
    is_multiday: bool
    is_active: bool
    created_at: datetime
    variations: list[VariationPublic] = []


class ServiceResponse(CamelModel):
    message: str
    service: ServicePublic


class ServiceDetailResponse(CamelModel):
    service: ServicePublic


class ServiceListResponse(CamelModel):
    services: list[ServicePublic]
    pagination: Pagination


class VariationResponse(CamelModel):
    message: str
    variation: VariationPublic


class ServiceTypePublic(CamelModel):
    id: int
    name: str
    description: str | None = None
