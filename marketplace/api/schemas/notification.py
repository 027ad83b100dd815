from datetime import datetime

from marketplace.api.schemas.common import CamelModel, Pagination
from marketplace.models.notification import NotificationType


class NotificationPublic(CamelModel):
    id: int
    provider_id: int
    booking_id: int | None = None
    type: NotificationType
    message: str
    is_read: bool
    created_at: datetime


class NotificationListResponse(CamelModel):
    count: int
    unread_count: int
    notifications: list[NotificationPublic]
    pagination: Pagination


class NotificationResponse(CamelModel):
    message: str
    notification: NotificationPublic
