from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from marketplace.core.timeutils import utc_naive_now


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_BOOKING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]


# Only these count toward overlap checks and slot subtraction
ACTIVE_BOOKING_STATUSES: tuple[BookingStatus, ...] = (BookingStatus.PENDING, BookingStatus.APPROVED)

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.APPROVED, BookingStatus.CANCELLED}),
    BookingStatus.APPROVED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


class InvalidTransitionError(Exception):
    """Raised when a booking status change is not in ALLOWED_TRANSITIONS."""

    def __init__(self, current: BookingStatus, target: BookingStatus) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot move booking from {current.value} to {target.value}")


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    id: int | None = Field(default=None, primary_key=True)
    client_id: int = Field(foreign_key="users.id", index=True)
    provider_id: int = Field(foreign_key="providers.id", index=True)
    service_id: int = Field(foreign_key="services.id", index=True)
    service_variation_id: int = Field(foreign_key="service_variations.id")
    start_datetime: datetime = Field(index=True, sa_type=DateTime())
    end_datetime: datetime = Field(index=True, sa_type=DateTime())
    price_at_booking: Decimal = Field(max_digits=10, decimal_places=2)
    status: BookingStatus = Field(default=BookingStatus.PENDING, index=True)
    cancelled_at: datetime | None = Field(default=None, sa_type=DateTime())
    cancellation_reason: str | None = None
    completed_at: datetime | None = Field(default=None, sa_type=DateTime())
    created_at: datetime = Field(default_factory=utc_naive_now, sa_type=DateTime())

    def transition(self, target: BookingStatus, at: datetime | None = None) -> None:
        """Move to `target` or raise InvalidTransitionError; stamps the terminal timestamps."""
        current = BookingStatus(self.status)
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransitionError(current, target)
        when = at or utc_naive_now()
        if target == BookingStatus.CANCELLED:
            self.cancelled_at = when
        elif target == BookingStatus.COMPLETED:
            self.completed_at = when
        self.status = target
