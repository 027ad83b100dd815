from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.deps import get_session
from marketplace.api.schemas.catalog import ServiceTypePublic
from marketplace.services import catalog_service

router = APIRouter(prefix="/service-types", tags=["service-types"])


@router.get("", response_model=list[ServiceTypePublic])
async def list_service_types(session: AsyncSession = Depends(get_session)) -> list[ServiceTypePublic]:
    return [ServiceTypePublic.model_validate(t) for t in await catalog_service.list_service_types(session)]


@router.get("/{service_type_id}", response_model=ServiceTypePublic)
async def get_service_type(
    service_type_id: int,
    session: AsyncSession = Depends(get_session),
) -> ServiceTypePublic:
    return ServiceTypePublic.model_validate(await catalog_service.get_service_type(session, service_type_id))
