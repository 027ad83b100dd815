from datetime import datetime

from pydantic import Field

from marketplace.api.schemas.common import CamelModel, Pagination


class ReviewCreateRequest(CamelModel):
    booking_id: int
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, min_length=10, max_length=500)


class ReviewUpdateRequest(CamelModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    comment: str | None = Field(default=None, min_length=10, max_length=500)


class ReviewPublic(CamelModel):
    id: int
    booking_id: int
    service_id: int
    client_id: int
    rating: int
    comment: str | None = None
    created_at: datetime
    updated_at: datetime


class ReviewResponse(CamelModel):
    message: str
    review: ReviewPublic


class ReviewListResponse(CamelModel):
    reviews: list[ReviewPublic]
    pagination: Pagination


class ServiceReviewsResponse(ReviewListResponse):
    average_rating: float | None = None
