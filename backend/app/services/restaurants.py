"""
Restaurant branches and the nearest-branch lookup.

The nearest active branch wins (ties go to the lower id). Only that
branch's own active delivery zones are then checked against the
customer location, in priority order. A location none of them covers is
reported together with the branch and its distance.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Dict, Any, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    InvalidInputError,
    NoRestaurantAvailableError,
    NotFoundError,
    OutsideDeliveryAreaError,
)
from backend.app.core.geo import Coordinate, distance_km, validate_coordinate
from backend.app.core.logging import get_logger
from backend.app.core.metrics import restaurant_lookups_total
from backend.app.core.settings import get_settings
from backend.app.core.timeutils import day_hours, normalize_weekday
from backend.app.models.delivery_zone import DeliveryZone
from backend.app.models.restaurant import RestaurantLocation
from backend.app.services.delivery_zones import (
    ZoneSnapshot,
    fee_for_location,
    validate_operating_hours,
    zone_contains,
)

logger = get_logger(__name__)

REQUIRED_FIELDS = (
    "name", "branch_name", "address", "city", "district", "province",
    "country", "latitude", "longitude", "contact_number",
)
TEXT_FIELDS = (
    "name", "branch_name", "address", "city", "district", "province",
    "country", "contact_number",
)
RESTAURANT_FIELDS = TEXT_FIELDS + ("latitude", "longitude", "is_active", "operating_hours")


def is_open(operating_hours: Optional[dict], now: datetime) -> bool:
    """Open and close minutes are both inclusive; an unset day is closed."""
    hours = day_hours(operating_hours, normalize_weekday(now))
    if hours is None:
        return False
    minutes = now.hour * 60 + now.minute
    return hours[0] <= minutes <= hours[1]


def estimate_delivery_minutes(max_delivery_time: int, distance: float, radius_km: float) -> int:
    """Scale the zone's maximum delivery time by how far out the customer is, capped at the maximum."""
    if radius_km <= 0:
        return max_delivery_time
    return min(max_delivery_time, math.ceil(max_delivery_time * distance / radius_km))


def restaurant_coordinate(restaurant: RestaurantLocation) -> Coordinate:
    return Coordinate(restaurant.latitude, restaurant.longitude)


def select_nearest(
    restaurants: Sequence[RestaurantLocation], location: Coordinate
) -> Optional[Tuple[float, RestaurantLocation]]:
    nearest = None
    for restaurant in sorted(restaurants, key=lambda r: r.id):
        distance = distance_km(restaurant_coordinate(restaurant), location)
        if nearest is None or distance < nearest[0]:
            nearest = (distance, restaurant)
    return nearest


@dataclass(frozen=True)
class NearestRestaurant:
    restaurant: Dict[str, Any]
    distance_km: float
    zone: ZoneSnapshot
    delivery_fee: Decimal
    estimated_time: int
    is_open: bool

    def to_dict(self) -> dict:
        return {
            "restaurant": self.restaurant,
            "distance_km": round(self.distance_km, 3),
            "delivery_zone": {
                "id": self.zone.id,
                "name": self.zone.name,
                "base_fee": float(self.zone.base_fee),
                "min_order_amount": float(self.zone.min_order_amount),
                "max_delivery_time": self.zone.max_delivery_time,
                "radius_km": self.zone.radius_km,
            },
            "delivery_fee": float(self.delivery_fee),
            "estimated_time": self.estimated_time,
            "is_open": self.is_open,
        }


def _validate_restaurant_data(data: Dict[str, Any], partial: bool = False) -> None:
    if not partial:
        for required in REQUIRED_FIELDS:
            if data.get(required) is None:
                raise InvalidInputError(f"Field '{required}' is required")
    for field in TEXT_FIELDS:
        if field in data and data[field] is not None and not str(data[field]).strip():
            raise InvalidInputError(f"Field '{field}' must not be empty")
    if "latitude" in data or "longitude" in data:
        validate_coordinate(data.get("latitude"), data.get("longitude"))
    if "operating_hours" in data:
        validate_operating_hours(data["operating_hours"])


class RestaurantService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()

    def local_now(self) -> datetime:
        return datetime.now(ZoneInfo(self.settings.TIMEZONE))

    async def get_active_restaurants(self) -> List[RestaurantLocation]:
        result = await self.session.execute(
            select(RestaurantLocation)
            .where(RestaurantLocation.is_active == True)  # noqa: E712
            .order_by(RestaurantLocation.id)
        )
        return list(result.scalars().all())

    async def get_restaurants(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Active branches with their zones and whether they are open right now."""
        if now is None:
            now = self.local_now()
        return [self.restaurant_to_dict(r, now) for r in await self.get_active_restaurants()]

    async def get_restaurant(self, restaurant_id: int) -> RestaurantLocation:
        restaurant = await self.session.get(RestaurantLocation, restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant", restaurant_id)
        return restaurant

    async def find_nearest(self, latitude, longitude, now: Optional[datetime] = None) -> NearestRestaurant:
        """
        Nearest active branch plus the delivery terms for the location.

        Raises:
            InvalidInputError: missing or out-of-range coordinates
            NoRestaurantAvailableError: no active branch exists
            OutsideDeliveryAreaError: the nearest branch has no zone covering the location
        """
        location = validate_coordinate(latitude, longitude)
        if now is None:
            now = self.local_now()

        nearest = select_nearest(await self.get_active_restaurants(), location)
        if nearest is None:
            restaurant_lookups_total.labels(outcome="no_restaurant").inc()
            logger.warning("Nearest restaurant lookup failed: none active", latitude=latitude, longitude=longitude)
            raise NoRestaurantAvailableError()
        distance, restaurant = nearest

        zone = next(
            (
                snapshot
                for snapshot in (ZoneSnapshot.from_model(z) for z in restaurant.delivery_zones if z.is_active)
                if zone_contains(snapshot, location)
            ),
            None,
        )
        if zone is None:
            restaurant_lookups_total.labels(outcome="out_of_area").inc()
            logger.info(
                "Nearest restaurant does not deliver here",
                restaurant_id=restaurant.id,
                distance_km=round(distance, 3),
            )
            raise OutsideDeliveryAreaError(self.restaurant_to_dict(restaurant, now), distance)

        result = NearestRestaurant(
            restaurant=self.restaurant_to_dict(restaurant, now),
            distance_km=distance,
            zone=zone,
            delivery_fee=fee_for_location(zone, location),
            estimated_time=estimate_delivery_minutes(zone.max_delivery_time, distance, zone.radius_km),
            is_open=is_open(restaurant.operating_hours, now),
        )
        restaurant_lookups_total.labels(outcome="in_area").inc()
        logger.info(
            "Nearest restaurant found",
            restaurant_id=restaurant.id,
            zone_id=zone.id,
            distance_km=round(distance, 3),
            delivery_fee=float(result.delivery_fee),
        )
        return result

    async def create_restaurant(self, data: Dict[str, Any]) -> Dict[str, Any]:
        _validate_restaurant_data(data)
        restaurant = RestaurantLocation(
            **{field: data[field].strip() for field in TEXT_FIELDS},
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            is_active=data.get("is_active", True),
            operating_hours=data.get("operating_hours"),
            delivery_zones=await self._load_zones(data.get("delivery_zone_ids") or []),
        )
        self.session.add(restaurant)
        await self.session.flush()
        logger.info("Restaurant created", restaurant_id=restaurant.id, branch=restaurant.branch_name)
        return self.restaurant_to_dict(restaurant, self.local_now())

    async def update_restaurant(self, restaurant_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Partial update. A provided delivery_zone_ids list replaces the linked zones."""
        restaurant = await self.get_restaurant(restaurant_id)
        merged = {"latitude": restaurant.latitude, "longitude": restaurant.longitude, **data}
        _validate_restaurant_data(merged, partial=True)
        for field in RESTAURANT_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if value is None and field != "operating_hours":
                continue
            if field in TEXT_FIELDS:
                value = value.strip()
            setattr(restaurant, field, value)
        if data.get("delivery_zone_ids") is not None:
            restaurant.delivery_zones = await self._load_zones(data["delivery_zone_ids"])
        await self.session.flush()
        logger.info("Restaurant updated", restaurant_id=restaurant.id, fields=sorted(data.keys()))
        return self.restaurant_to_dict(restaurant, self.local_now())

    async def delete_restaurant(self, restaurant_id: int) -> None:
        """Hard delete: no order references a branch."""
        restaurant = await self.get_restaurant(restaurant_id)
        await self.session.delete(restaurant)
        await self.session.flush()
        logger.info("Restaurant deleted", restaurant_id=restaurant_id)

    async def _load_zones(self, zone_ids: List[int]) -> List[DeliveryZone]:
        unique_ids = list(dict.fromkeys(zone_ids))
        if not unique_ids:
            return []
        result = await self.session.execute(select(DeliveryZone).where(DeliveryZone.id.in_(unique_ids)))
        zones = {z.id: z for z in result.scalars().all()}
        missing = [zone_id for zone_id in unique_ids if zone_id not in zones]
        if missing:
            raise InvalidInputError(f"Unknown delivery zone ids: {missing}")
        return [zones[zone_id] for zone_id in unique_ids]

    @staticmethod
    def restaurant_to_dict(restaurant: RestaurantLocation, now: datetime) -> Dict[str, Any]:
        return {
            "id": restaurant.id,
            "name": restaurant.name,
            "branch_name": restaurant.branch_name,
            "address": restaurant.address,
            "city": restaurant.city,
            "district": restaurant.district,
            "province": restaurant.province,
            "country": restaurant.country,
            "latitude": restaurant.latitude,
            "longitude": restaurant.longitude,
            "contact_number": restaurant.contact_number,
            "is_active": restaurant.is_active,
            "operating_hours": restaurant.operating_hours or {},
            "is_open": is_open(restaurant.operating_hours, now),
            "delivery_zone_ids": [z.id for z in restaurant.delivery_zones],
        }
