from marketplace.models.user import User, UserRole
from marketplace.models.provider import Provider, ProviderUpdate
from marketplace.models.catalog import Service, ServiceType, ServiceVariation
from marketplace.models.availability import ProviderAvailability
from marketplace.models.booking import (
    ACTIVE_BOOKING_STATUSES,
    ALLOWED_TRANSITIONS,
    Booking,
    BookingStatus,
    InvalidTransitionError,
)
from marketplace.models.notification import Notification, NotificationType
from marketplace.models.review import Review

__all__ = [
    "User",
    "UserRole",
    "Provider",
    "ProviderUpdate",
    "Service",
    "ServiceType",
    "ServiceVariation",
    "ProviderAvailability",
    "ACTIVE_BOOKING_STATUSES",
    "ALLOWED_TRANSITIONS",
    "Booking",
    "BookingStatus",
    "InvalidTransitionError",
    "Notification",
    "NotificationType",
    "Review",
]
