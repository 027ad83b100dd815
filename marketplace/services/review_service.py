import logging

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.errors import api_error
from marketplace.core.timeutils import utc_naive_now
from marketplace.models.booking import Booking, BookingStatus
from marketplace.models.catalog import Service
from marketplace.models.review import Review
from marketplace.models.user import User

logger = logging.getLogger(__name__)


async def create_review(
    session: AsyncSession,
    client: User,
    booking_id: int,
    rating: int,
    comment: str | None = None,
) -> Review:
    booking = await session.get(Booking, booking_id)
    if not booking:
        raise api_error(status.HTTP_404_NOT_FOUND, "Booking not found")
    if booking.client_id != client.id:
        raise api_error(status.HTTP_403_FORBIDDEN, "You cannot review another client's booking")
    if BookingStatus(booking.status) != BookingStatus.COMPLETED:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "Only completed bookings can be reviewed",
            currentStatus=BookingStatus(booking.status).value,
        )
    existing = await session.execute(select(Review.id).where(Review.booking_id == booking.id))
    if existing.scalar_one_or_none() is not None:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "You have already reviewed this booking. Use PUT /api/v1/reviews/{id} to update it.",
        )
    review = Review(
        booking_id=booking.id,
        service_id=booking.service_id,
        client_id=client.id,
        rating=rating,
        comment=comment,
    )
    session.add(review)
    await session.flush()
    await session.refresh(review)
    logger.info("Review %s created for booking %s", review.id, booking.id)
    return review


async def list_service_reviews(
    session: AsyncSession,
    service_id: int,
    page: int,
    limit: int,
    min_rating: int | None = None,
    max_rating: int | None = None,
) -> tuple[list[Review], int, float | None]:
    """Returns (page_items, total_matching, average_rating_over_all_reviews_of_the_service)."""
    if not await session.get(Service, service_id):
        raise api_error(status.HTTP_404_NOT_FOUND, "Service not found")
    q = select(Review).where(Review.service_id == service_id)
    if min_rating is not None:
        q = q.where(Review.rating >= min_rating)
    if max_rating is not None:
        q = q.where(Review.rating <= max_rating)
    total = (await session.execute(select(func.count()).select_from(q.subquery()))).scalar_one()
    result = await session.execute(
        q.order_by(Review.created_at.desc(), Review.id.desc()).offset((page - 1) * limit).limit(limit)
    )
    avg = (
        await session.execute(select(func.avg(Review.rating)).where(Review.service_id == service_id))
    ).scalar_one()
    average = round(float(avg), 2) if avg is not None else None
    return list(result.scalars().all()), total, average


async def list_client_reviews(
    session: AsyncSession, client_id: int, page: int, limit: int
) -> tuple[list[Review], int]:
    q = select(Review).where(Review.client_id == client_id)
    total = (await session.execute(select(func.count()).select_from(q.subquery()))).scalar_one()
    result = await session.execute(
        q.order_by(Review.created_at.desc(), Review.id.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


async def get_review(session: AsyncSession, review_id: int) -> Review:
    review = await session.get(Review, review_id)
    if not review:
        raise api_error(status.HTTP_404_NOT_FOUND, "Review not found")
    return review


async def _get_own_review(session: AsyncSession, client: User, review_id: int, action: str) -> Review:
    review = await get_review(session, review_id)
    if review.client_id != client.id:
        raise api_error(status.HTTP_403_FORBIDDEN, f"You are not allowed to {action} this review")
    return review


async def update_review(session: AsyncSession, client: User, review_id: int, changes: dict) -> Review:
    review = await _get_own_review(session, client, review_id, "edit")
    for key, value in changes.items():
        setattr(review, key, value)
    review.updated_at = utc_naive_now()
    session.add(review)
    await session.flush()
    await session.refresh(review)
    return review


async def delete_review(session: AsyncSession, client: User, review_id: int) -> None:
    review = await _get_own_review(session, client, review_id, "delete")
    await session.delete(review)
    await session.flush()
