import logging

from fastapi import status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.errors import api_error
from marketplace.models.catalog import Service, ServiceType, ServiceVariation
from marketplace.models.provider import Provider

logger = logging.getLogger(__name__)


async def list_service_types(session: AsyncSession) -> list[ServiceType]:
    result = await session.execute(select(ServiceType).order_by(ServiceType.name))
    return list(result.scalars().all())


async def get_service_type(session: AsyncSession, service_type_id: int) -> ServiceType:
    service_type = await session.get(ServiceType, service_type_id)
    if not service_type:
        raise api_error(status.HTTP_404_NOT_FOUND, "Service type not found")
    return service_type


async def get_variations_for(
    session: AsyncSession, service_ids: list[int], active_only: bool = True
) -> dict[int, list[ServiceVariation]]:
    """Variations grouped by service id, cheapest first."""
    if not service_ids:
        return {}
    q = select(ServiceVariation).where(ServiceVariation.service_id.in_(service_ids))
    if active_only:
        q = q.where(ServiceVariation.is_active == True)  # noqa: E712
    result = await session.execute(q.order_by(ServiceVariation.price, ServiceVariation.id))
    grouped: dict[int, list[ServiceVariation]] = {sid: [] for sid in service_ids}
    for variation in result.scalars().all():
        grouped[variation.service_id].append(variation)
    return grouped


async def create_service(
    session: AsyncSession,
    provider: Provider,
    name: str,
    description: str,
    service_type_id: int,
    allows_multiple_days: bool = False,
) -> Service:
    if not await session.get(ServiceType, service_type_id):
        raise api_error(status.HTTP_400_BAD_REQUEST, "Service type not found")
    service = Service(
        provider_id=provider.id,
        service_type_id=service_type_id,
        title=name,
        description=description,
        is_multiday=allows_multiple_days,
        is_active=True,
    )
    session.add(service)
    await session.flush()
    await session.refresh(service)
    logger.info("Service %s created by provider %s", service.id, provider.id)
    return service


async def list_services(
    session: AsyncSession,
    page: int,
    limit: int,
    service_type_id: int | None = None,
    city: str | None = None,
    state: str | None = None,
    search: str | None = None,
) -> tuple[list[Service], int]:
    """Active services matching the filters, newest first. Returns (page_items, total)."""
    q = select(Service).join(Provider, Provider.id == Service.provider_id).where(Service.is_active == True)  # noqa: E712
    if service_type_id:
        q = q.where(Service.service_type_id == service_type_id)
    if city:
        q = q.where(func.lower(Provider.city) == city.lower())
    if state:
        q = q.where(func.lower(Provider.state) == state.lower())
    if search:
        pattern = f"%{search.lower()}%"
        q = q.where(or_(func.lower(Service.title).like(pattern), func.lower(Service.description).like(pattern)))

    total = (await session.execute(select(func.count()).select_from(q.subquery()))).scalar_one()
    result = await session.execute(
        q.order_by(Service.created_at.desc(), Service.id.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


async def list_provider_services(session: AsyncSession, provider_id: int, active_only: bool = False) -> list[Service]:
    q = select(Service).where(Service.provider_id == provider_id)
    if active_only:
        q = q.where(Service.is_active == True)  # noqa: E712
    result = await session.execute(q.order_by(Service.created_at.desc(), Service.id.desc()))
    return list(result.scalars().all())


async def get_service(session: AsyncSession, service_id: int) -> Service:
    service = await session.get(Service, service_id)
    if not service:
        raise api_error(status.HTTP_404_NOT_FOUND, "Service not found")
    return service


async def get_owned_service(session: AsyncSession, provider: Provider, service_id: int) -> Service:
    service = await get_service(session, service_id)
    if service.provider_id != provider.id:
        raise api_error(status.HTTP_403_FORBIDDEN, "You are not allowed to change this service")
    return service


async def update_service(
    session: AsyncSession,
    provider: Provider,
    service_id: int,
    name: str | None = None,
    description: str | None = None,
    service_type_id: int | None = None,
    allows_multiple_days: bool | None = None,
    is_active: bool | None = None,
) -> Service:
    service = await get_owned_service(session, provider, service_id)
    if service_type_id is not None:
        if not await session.get(ServiceType, service_type_id):
            raise api_error(status.HTTP_400_BAD_REQUEST, "Service type not found")
        service.service_type_id = service_type_id
    if name is not None:
        service.title = name
    if description is not None:
        service.description = description
    if allows_multiple_days is not None:
        service.is_multiday = allows_multiple_days
    if is_active is not None:
        service.is_active = is_active
    session.add(service)
    await session.flush()
    await session.refresh(service)
    return service


async def deactivate_service(session: AsyncSession, provider: Provider, service_id: int) -> Service:
    """Soft delete: bookings and reviews keep pointing at the row."""
    service = await get_owned_service(session, provider, service_id)
    service.is_active = False
    session.add(service)
    await session.flush()
    logger.info("Service %s deactivated by provider %s", service.id, provider.id)
    return service


async def create_variation(
    session: AsyncSession,
    provider: Provider,
    service_id: int,
    name: str,
    price,
    duration_minutes: int,
    discount_percentage: int | None = None,
    discount_days: int | None = None,
) -> ServiceVariation:
    service = await get_owned_service(session, provider, service_id)
    variation = ServiceVariation(
        service_id=service.id,
        name=name,
        price=price,
        duration_minutes=duration_minutes,
        discount_percentage=discount_percentage,
        discount_days=discount_days,
        is_active=True,
    )
    session.add(variation)
    await session.flush()
    await session.refresh(variation)
    return variation


async def _get_owned_variation(
    session: AsyncSession, provider: Provider, service_id: int, variation_id: int
) -> ServiceVariation:
    service = await get_owned_service(session, provider, service_id)
    variation = await session.get(ServiceVariation, variation_id)
    if not variation:
        raise api_error(status.HTTP_404_NOT_FOUND, "Service variation not found")
    if variation.service_id != service.id:
        raise api_error(status.HTTP_403_FORBIDDEN, "This variation does not belong to the service")
    return variation


async def update_variation(
    session: AsyncSession,
    provider: Provider,
    service_id: int,
    variation_id: int,
    changes: dict,
) -> ServiceVariation:
    variation = await _get_owned_variation(session, provider, service_id, variation_id)
    for key, value in changes.items():
        setattr(variation, key, value)
    session.add(variation)
    await session.flush()
    await session.refresh(variation)
    return variation


async def deactivate_variation(
    session: AsyncSession, provider: Provider, service_id: int, variation_id: int
) -> ServiceVariation:
    variation = await _get_owned_variation(session, provider, service_id, variation_id)
    variation.is_active = False
    session.add(variation)
    await session.flush()
    return variation
