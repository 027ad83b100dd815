from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.deps import get_session, require_role
from marketplace.api.schemas.common import MessageResponse, Pagination
from marketplace.api.schemas.review import (
    ReviewCreateRequest,
    ReviewListResponse,
    ReviewPublic,
    ReviewResponse,
    ReviewUpdateRequest,
    ServiceReviewsResponse,
)
from marketplace.core.config import settings
from marketplace.models.user import User, UserRole
from marketplace.services import review_service

router = APIRouter(prefix="/reviews", tags=["reviews"])


def _page_size(limit: int | None) -> int:
    return min(limit or settings.default_page_size, settings.max_page_size)


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    body: ReviewCreateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(UserRole.CLIENT)),
) -> ReviewResponse:
    review = await review_service.create_review(
        session, current_user, body.booking_id, body.rating, body.comment
    )
    return ReviewResponse(message="Review created", review=ReviewPublic.model_validate(review))


@router.get("/my", response_model=ReviewListResponse)
async def list_my_reviews(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(UserRole.CLIENT)),
) -> ReviewListResponse:
    size = _page_size(limit)
    reviews, total = await review_service.list_client_reviews(session, current_user.id, page, size)
    return ReviewListResponse(
        reviews=[ReviewPublic.model_validate(r) for r in reviews],
        pagination=Pagination.build(page, size, total),
    )


@router.get("/service/{service_id}", response_model=ServiceReviewsResponse)
async def list_service_reviews(
    service_id: int,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    min_rating: int | None = Query(None, alias="minRating", ge=1, le=5),
    max_rating: int | None = Query(None, alias="maxRating", ge=1, le=5),
    session: AsyncSession = Depends(get_session),
) -> ServiceReviewsResponse:
    size = _page_size(limit)
    reviews, total, average = await review_service.list_service_reviews(
        session, service_id, page, size, min_rating=min_rating, max_rating=max_rating
    )
    return ServiceReviewsResponse(
        reviews=[ReviewPublic.model_validate(r) for r in reviews],
        average_rating=average,
        pagination=Pagination.build(page, size, total),
    )


@router.get("/{review_id}", response_model=ReviewPublic)
async def get_review(review_id: int, session: AsyncSession = Depends(get_session)) -> ReviewPublic:
    return ReviewPublic.model_validate(await review_service.get_review(session, review_id))


@router.put("/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: int,
    body: ReviewUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(UserRole.CLIENT)),
) -> ReviewResponse:
    review = await review_service.update_review(
        session, current_user, review_id, body.model_dump(exclude_unset=True, exclude_none=True)
    )
    return ReviewResponse(message="Review updated", review=ReviewPublic.model_validate(review))


@router.delete("/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: int,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(UserRole.CLIENT)),
) -> MessageResponse:
    await review_service.delete_review(session, current_user, review_id)
    return MessageResponse(message="Review deleted")
