from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_session, get_cache
from backend.app.core.auth import Actor, require_admin
from backend.app.core.exceptions import ServiceError
from backend.app.core.limiter import limiter, RESOLVE_RATE_LIMIT
from backend.app.core.logging import get_logger
from backend.app.schemas import DeliveryZoneCreate, DeliveryZoneUpdate
from backend.app.services.cache import CacheService
from backend.app.services.delivery_slots import DeliverySlotService
from backend.app.services.delivery_zones import DeliveryZoneService
from backend.app.services.zone_resolver import ZoneResolver

router = APIRouter()
logger = get_logger(__name__)


def _handle_service_error(e: ServiceError):
    raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("")
async def list_zones(
    include_inactive: bool = False,
    session: AsyncSession = Depends(get_session),
):
    """Active zones ordered by priority; admins may ask for inactive ones too."""
    service = DeliveryZoneService(session)
    return await service.get_zones(include_inactive=include_inactive)


@router.get("/resolve")
@limiter.limit(RESOLVE_RATE_LIMIT)
async def resolve_zone(
    request: Request,
    latitude: float = Query(...),
    longitude: float = Query(...),
    session: AsyncSession = Depends(get_session),
    cache: CacheService = Depends(get_cache),
):
    """Which zone serves this point and what delivery costs there."""
    try:
        resolution = await ZoneResolver(session, cache).resolve(latitude, longitude)
    except ServiceError as e:
        _handle_service_error(e)
    return resolution.to_dict()


@router.post("", status_code=201)
async def create_zone(
    data: DeliveryZoneCreate,
    admin: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    cache: CacheService = Depends(get_cache),
):
    service = DeliveryZoneService(session, cache)
    try:
        zone = await service.create_zone(data.model_dump(mode="python"))
        await session.commit()
    except ServiceError as e:
        await session.rollback()
        logger.warning("Zone creation failed", admin_id=admin.user_id, error=e.message)
        _handle_service_error(e)
    return zone


@router.post("/restore-defaults")
async def restore_default_zones(
    admin: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    cache: CacheService = Depends(get_cache),
):
    service = DeliveryZoneService(session, cache)
    try:
        zones = await service.restore_defaults()
        await session.commit()
    except ServiceError as e:
        await session.rollback()
        _handle_service_error(e)
    logger.info("Default zones restored", admin_id=admin.user_id)
    return zones


@router.put("/{zone_id}")
async def update_zone(
    zone_id: int,
    data: DeliveryZoneUpdate,
    admin: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    cache: CacheService = Depends(get_cache),
):
    service = DeliveryZoneService(session, cache)
    try:
        zone = await service.update_zone(zone_id, data.model_dump(mode="python", exclude_unset=True))
        await session.commit()
    except ServiceError as e:
        await session.rollback()
        logger.warning("Zone update failed", zone_id=zone_id, admin_id=admin.user_id, error=e.message)
        _handle_service_error(e)
    return zone


@router.delete("/{zone_id}")
async def delete_zone(
    zone_id: int,
    _admin: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    cache: CacheService = Depends(get_cache),
):
    """Soft delete: the zone is deactivated, historical orders keep pointing at it."""
    service = DeliveryZoneService(session, cache)
    try:
        await service.deactivate_zone(zone_id)
        await session.commit()
    except ServiceError as e:
        await session.rollback()
        _handle_service_error(e)
    return {"status": "ok", "zone_id": zone_id}


@router.get("/{zone_id}/slots")
async def list_available_slots(
    zone_id: int,
    day: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    """Bookable slots for a weekday (name or 0-6); defaults to today."""
    service = DeliverySlotService(session)
    try:
        slots = await service.get_available_slots(zone_id, day=_parse_day(day))
    except ServiceError as e:
        _handle_service_error(e)
    return [s.to_dict() for s in slots]


@router.post("/{zone_id}/slots/materialize")
async def materialize_slots(
    zone_id: int,
    day: str = Query(...),
    _admin: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    cache: CacheService = Depends(get_cache),
):
    service = DeliverySlotService(session)
    try:
        slots = await service.materialize_hourly_slots(zone_id, _parse_day(day))
        await session.commit()
        await cache.invalidate_zones()
    except ServiceError as e:
        await session.rollback()
        _handle_service_error(e)
    return [s.to_dict() for s in slots]


def _parse_day(day: Optional[str]):
    if day is None:
        return None
    day = day.strip()
    return int(day) if day.isdigit() else day
