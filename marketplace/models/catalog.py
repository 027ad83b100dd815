from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from marketplace.core.timeutils import utc_naive_now


class ServiceType(SQLModel, table=True):
    __tablename__ = "service_types"
    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True)
    description: str | None = None


class Service(SQLModel, table=True):
    __tablename__ = "services"
    id: int | None = Field(default=None, primary_key=True)
    provider_id: int = Field(foreign_key="providers.id", index=True)
    service_type_id: int = Field(foreign_key="service_types.id", index=True)
    title: str
    description: str
    is_multiday: bool = False
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_naive_now, sa_type=DateTime())


class ServiceVariation(SQLModel, table=True):
    __tablename__ = "service_variations"
    id: int | None = Field(default=None, primary_key=True)
    service_id: int = Field(foreign_key="services.id", index=True)
    name: str
    price: Decimal = Field(max_digits=10, decimal_places=2)
    duration_minutes: int
    discount_percentage: int | None = None
    discount_days: int | None = None
    is_active: bool = True
