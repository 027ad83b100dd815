from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.deps import get_current_provider, get_session
from marketplace.api.schemas.catalog import (
    ServiceCreateRequest,
    ServiceDetailResponse,
    ServiceListResponse,
    ServicePublic,
    ServiceResponse,
    ServiceUpdateRequest,
    VariationCreateRequest,
    VariationPublic,
    VariationResponse,
    VariationUpdateRequest,
)
from marketplace.api.schemas.common import MessageResponse, Pagination
from marketplace.core.config import settings
from marketplace.models.catalog import Service, ServiceVariation
from marketplace.models.provider import Provider
from marketplace.services import catalog_service

router = APIRouter(prefix="/services", tags=["services"])


def to_service_public(service: Service, variations: list[ServiceVariation] | None = None) -> ServicePublic:
    public = ServicePublic.model_validate(service)
    public.variations = [VariationPublic.model_validate(v) for v in variations or []]
    return public


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    body: ServiceCreateRequest,
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> ServiceResponse:
    service = await catalog_service.create_service(
        session,
        provider,
        name=body.name,
        description=body.description,
        service_type_id=body.service_type_id,
        allows_multiple_days=body.allows_multiple_days,
    )
    return ServiceResponse(message="Service created", service=to_service_public(service))


@router.get("", response_model=ServiceListResponse)
async def list_services(
    service_type_id: int | None = Query(None, alias="serviceTypeId"),
    city: str | None = Query(None),
    state: str | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    session: AsyncSession = Depends(get_session),
) -> ServiceListResponse:
    """Active services of the marketplace, with filters and pagination."""
    limit = min(limit or settings.default_page_size, settings.max_page_size)
    services, total = await catalog_service.list_services(
        session, page, limit, service_type_id=service_type_id, city=city, state=state, search=search
    )
    variations = await catalog_service.get_variations_for(session, [s.id for s in services])
    return ServiceListResponse(
        services=[to_service_public(s, variations.get(s.id)) for s in services],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/my", response_model=list[ServicePublic])
async def list_my_services(
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> list[ServicePublic]:
    services = await catalog_service.list_provider_services(session, provider.id)
    variations = await catalog_service.get_variations_for(session, [s.id for s in services], active_only=False)
    return [to_service_public(s, variations.get(s.id)) for s in services]


@router.get("/{service_id}", response_model=ServiceDetailResponse)
async def get_service(
    service_id: int,
    session: AsyncSession = Depends(get_session),
) -> ServiceDetailResponse:
    service = await catalog_service.get_service(session, service_id)
    variations = await catalog_service.get_variations_for(session, [service.id])
    return ServiceDetailResponse(service=to_service_public(service, variations.get(service.id)))


@router.put("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    body: ServiceUpdateRequest,
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> ServiceResponse:
    service = await catalog_service.update_service(
        session,
        provider,
        service_id,
        name=body.name,
        description=body.description,
        service_type_id=body.service_type_id,
        allows_multiple_days=body.allows_multiple_days,
        is_active=body.is_active,
    )
    return ServiceResponse(message="Service updated", service=to_service_public(service))


@router.delete("/{service_id}", response_model=MessageResponse)
async def delete_service(
    service_id: int,
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> MessageResponse:
    await catalog_service.deactivate_service(session, provider, service_id)
    return MessageResponse(message="Service deactivated")


# --- Variations ---


@router.post("/{service_id}/variations", response_model=VariationResponse, status_code=status.HTTP_201_CREATED)
async def create_variation(
    service_id: int,
    body: VariationCreateRequest,
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> VariationResponse:
    variation = await catalog_service.create_variation(
        session,
        provider,
        service_id,
        name=body.name,
        price=body.price,
        duration_minutes=body.duration_minutes,
        discount_percentage=body.discount_percentage,
        discount_days=body.discount_days,
    )
    return VariationResponse(message="Variation created", variation=VariationPublic.model_validate(variation))


@router.put("/{service_id}/variations/{variation_id}", response_model=VariationResponse)
async def update_variation(
    service_id: int,
    variation_id: int,
    body: VariationUpdateRequest,
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> VariationResponse:
    variation = await catalog_service.update_variation(
        session, provider, service_id, variation_id, body.model_dump(exclude_unset=True, exclude_none=True)
    )
    return VariationResponse(message="Variation updated", variation=VariationPublic.model_validate(variation))


@router.delete("/{service_id}/variations/{variation_id}", response_model=MessageResponse)
async def delete_variation(
    service_id: int,
    variation_id: int,
    session: AsyncSession = Depends(get_session),
    provider: Provider = Depends(get_current_provider),
) -> MessageResponse:
    await catalog_service.deactivate_variation(session, provider, service_id, variation_id)
    return MessageResponse(message="Variation deactivated")
