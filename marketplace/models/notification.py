from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from marketplace.core.timeutils import utc_naive_now


class NotificationType(str, Enum):
    NEW_BOOKING = "NEW_BOOKING"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"
    id: int | None = Field(default=None, primary_key=True)
    provider_id: int = Field(foreign_key="providers.id", index=True)
    booking_id: int | None = Field(default=None, foreign_key="bookings.id")
    type: NotificationType
    message: str
    is_read: bool = False
    created_at: datetime = Field(default_factory=utc_naive_now, sa_type=DateTime())
