from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from marketplace.core.timeutils import utc_naive_now


class ProviderAvailability(SQLModel, table=True):
    """A [start, end) window in which a provider accepts bookings.

    Active windows of the same provider never overlap; this is checked on
    write, not by a database constraint.
    """

    __tablename__ = "provider_availabilities"
    id: int | None = Field(default=None, primary_key=True)
    provider_id: int = Field(foreign_key="providers.id", index=True)
    start_datetime: datetime = Field(index=True, sa_type=DateTime())
    end_datetime: datetime = Field(index=True, sa_type=DateTime())
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_naive_now, sa_type=DateTime())
