import logging

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.errors import api_error
from marketplace.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


async def record_notification(
    session: AsyncSession,
    provider_id: int,
    booking_id: int | None,
    type_: NotificationType,
    message: str,
) -> Notification:
    notification = Notification(
        provider_id=provider_id,
        booking_id=booking_id,
        type=type_,
        message=message,
    )
    session.add(notification)
    await session.flush()
    logger.debug("Notification %s recorded for provider %s", type_.value, provider_id)
    return notification


async def list_notifications(
    session: AsyncSession,
    provider_id: int,
    page: int,
    limit: int,
    is_read: bool | None = None,
) -> tuple[list[Notification], int]:
    """Newest first. Returns (page_items, total_matching)."""
    q = select(Notification).where(Notification.provider_id == provider_id)
    if is_read is not None:
        q = q.where(Notification.is_read == is_read)
    total = (await session.execute(select(func.count()).select_from(q.subquery()))).scalar_one()
    result = await session.execute(
        q.order_by(Notification.created_at.desc(), Notification.id.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


async def count_unread(session: AsyncSession, provider_id: int) -> int:
    result = await session.execute(
        select(func.count(Notification.id)).where(
            Notification.provider_id == provider_id,
            Notification.is_read == False,  # noqa: E712
        )
    )
    return result.scalar_one()


async def mark_as_read(session: AsyncSession, provider_id: int, notification_id: int) -> Notification:
    notification = await session.get(Notification, notification_id)
    if not notification:
        raise api_error(status.HTTP_404_NOT_FOUND, "Notification not found")
    if notification.provider_id != provider_id:
        raise api_error(status.HTTP_403_FORBIDDEN, "You are not allowed to update this notification")
    notification.is_read = True
    session.add(notification)
    await session.flush()
    return notification
