from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_session
from backend.app.core.auth import Actor, require_admin
from backend.app.core.exceptions import OutsideDeliveryAreaError, ServiceError
from backend.app.core.limiter import limiter, RESOLVE_RATE_LIMIT
from backend.app.core.logging import get_logger
from backend.app.schemas import RestaurantCreate, RestaurantUpdate
from backend.app.services.restaurants import RestaurantService

router = APIRouter()
logger = get_logger(__name__)


def _handle_service_error(e: ServiceError):
    if isinstance(e, OutsideDeliveryAreaError):
        raise HTTPException(
            status_code=e.status_code,
            detail={"message": e.message, "restaurant": e.restaurant, "distance_km": round(e.distance, 3)},
        )
    raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("")
async def list_restaurants(session: AsyncSession = Depends(get_session)):
    """Active branches with their linked zones and current open state."""
    return await RestaurantService(session).get_restaurants()


@router.get("/nearest")
@limiter.limit(RESOLVE_RATE_LIMIT)
async def nearest_restaurant(
    request: Request,
    latitude: Optional[float] = Query(None),
    longitude: Optional[float] = Query(None),
    session: AsyncSession = Depends(get_session),
):
    """Nearest branch, the zone that serves the point, its fee and an ETA."""
    try:
        nearest = await RestaurantService(session).find_nearest(latitude, longitude)
    except ServiceError as e:
        _handle_service_error(e)
    return nearest.to_dict()


@router.post("", status_code=201)
async def create_restaurant(
    data: RestaurantCreate,
    admin: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    service = RestaurantService(session)
    try:
        restaurant = await service.create_restaurant(data.model_dump(mode="python"))
        await session.commit()
    except ServiceError as e:
        await session.rollback()
        logger.warning("Restaurant creation failed", admin_id=admin.user_id, error=e.message)
        _handle_service_error(e)
    return restaurant


@router.put("/{restaurant_id}")
async def update_restaurant(
    restaurant_id: int,
    data: RestaurantUpdate,
    admin: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    service = RestaurantService(session)
    try:
        restaurant = await service.update_restaurant(restaurant_id, data.model_dump(mode="python", exclude_unset=True))
        await session.commit()
    except ServiceError as e:
        await session.rollback()
        logger.warning("Restaurant update failed", restaurant_id=restaurant_id, admin_id=admin.user_id, error=e.message)
        _handle_service_error(e)
    return restaurant


@router.delete("/{restaurant_id}")
async def delete_restaurant(
    restaurant_id: int,
    _admin: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    service = RestaurantService(session)
    try:
        await service.delete_restaurant(restaurant_id)
        await session.commit()
    except ServiceError as e:
        await session.rollback()
        _handle_service_error(e)
    return {"status": "ok", "restaurant_id": restaurant_id}
