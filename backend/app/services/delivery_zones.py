"""Delivery zone catalogue: storage, validation and geometric queries."""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Dict, Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.constants import WEEKDAYS, ZERO
from backend.app.core.exceptions import InvalidInputError, NotFoundError
from backend.app.core.geo import Coordinate, distance_km, validate_coordinate
from backend.app.core.logging import get_logger
from backend.app.core.timeutils import parse_hhmm
from backend.app.models.delivery_zone import DeliveryZone, DeliveryTimeSlot
from backend.app.services.cache import CacheService
from backend.app.services.zone_defaults import DEFAULT_ZONES

logger = get_logger(__name__)

ZONE_FIELDS = (
    "name", "center_latitude", "center_longitude", "radius_km", "base_fee",
    "min_order_amount", "max_delivery_time", "per_km_surcharge",
    "operating_hours", "is_active", "priority",
)


@dataclass(frozen=True)
class ZoneSnapshot:
    """Immutable view of an active zone used for resolution."""
    id: int
    name: str
    center: Coordinate
    radius_km: float
    base_fee: Decimal
    min_order_amount: Decimal
    max_delivery_time: int
    per_km_surcharge: Optional[Decimal]
    priority: int

    @classmethod
    def from_model(cls, zone: DeliveryZone) -> "ZoneSnapshot":
        return cls.from_dict(DeliveryZoneService.zone_to_dict(zone, include_slots=False))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ZoneSnapshot":
        surcharge = data.get("per_km_surcharge")
        return cls(
            id=data["id"],
            name=data["name"],
            center=Coordinate(float(data["center_latitude"]), float(data["center_longitude"])),
            radius_km=float(data["radius_km"]),
            base_fee=Decimal(str(data["base_fee"])),
            min_order_amount=Decimal(str(data.get("min_order_amount") or 0)),
            max_delivery_time=int(data.get("max_delivery_time") or 0),
            per_km_surcharge=Decimal(str(surcharge)) if surcharge is not None else None,
            priority=int(data.get("priority") or 0),
        )


def zone_contains(zone: ZoneSnapshot, location: Coordinate) -> bool:
    """A point at exactly radius_km from the center is inside."""
    return distance_km(zone.center, location) <= zone.radius_km


def fee_for_location(zone: ZoneSnapshot, location: Coordinate, distance: Optional[float] = None) -> Decimal:
    """base_fee plus the per-km surcharge for the part of the trip beyond the radius."""
    if distance is None:
        distance = distance_km(zone.center, location)
    fee = zone.base_fee
    overshoot = max(0.0, distance - zone.radius_km)
    if zone.per_km_surcharge and overshoot > 0:
        surcharge = (Decimal(str(overshoot)) * zone.per_km_surcharge).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        fee += surcharge
    return fee


def validate_operating_hours(hours: Any) -> None:
    if hours is None:
        return
    if not isinstance(hours, dict):
        raise InvalidInputError("operating_hours must be a mapping of weekday to {open, close}")
    for day, config in hours.items():
        if day not in WEEKDAYS:
            raise InvalidInputError(f"Unknown weekday '{day}' in operating_hours")
        if config is None:
            continue
        if not isinstance(config, dict) or "open" not in config or "close" not in config:
            raise InvalidInputError(f"operating_hours.{day} must have 'open' and 'close'")
        if parse_hhmm(config["open"]) >= parse_hhmm(config["close"]):
            raise InvalidInputError(f"operating_hours.{day}: open must be before close")


def _validate_slot(slot: Dict[str, Any]) -> None:
    start = parse_hhmm(slot.get("start_time", ""))
    end = parse_hhmm(slot.get("end_time", ""))
    if start >= end:
        raise InvalidInputError("Slot start_time must be before end_time")
    max_orders = slot.get("max_orders", 1)
    current = slot.get("current_orders", 0)
    if max_orders < 1:
        raise InvalidInputError("Slot max_orders must be at least 1")
    if current < 0 or current > max_orders:
        raise InvalidInputError("Slot current_orders must be between 0 and max_orders")


def _validate_zone_data(data: Dict[str, Any], partial: bool = False) -> None:
    if not partial:
        for required in ("name", "center_latitude", "center_longitude", "radius_km", "base_fee"):
            if data.get(required) is None:
                raise InvalidInputError(f"Field '{required}' is required")
    if data.get("name") is not None and not data["name"].strip():
        raise InvalidInputError("Zone name must not be empty")
    if "center_latitude" in data or "center_longitude" in data:
        validate_coordinate(data.get("center_latitude"), data.get("center_longitude"))
    for field in ("radius_km", "base_fee", "min_order_amount", "max_delivery_time", "per_km_surcharge"):
        value = data.get(field)
        if value is not None and value < 0:
            raise InvalidInputError(f"Field '{field}' must be non-negative")
    if "operating_hours" in data:
        validate_operating_hours(data["operating_hours"])
    for slot in data.get("time_slots") or []:
        _validate_slot(slot)


class DeliveryZoneService:
    def __init__(self, session: AsyncSession, cache: Optional[CacheService] = None):
        self.session = session
        self.cache = cache

    async def get_zones(self, include_inactive: bool = False) -> List[Dict[str, Any]]:
        """All zones, ordered by priority."""
        query = select(DeliveryZone).order_by(DeliveryZone.priority, DeliveryZone.id)
        if not include_inactive:
            query = query.where(DeliveryZone.is_active == True)  # noqa: E712
        result = await self.session.execute(query)
        return [self.zone_to_dict(z) for z in result.scalars().all()]

    async def get_active_zone_models(self) -> List[DeliveryZone]:
        result = await self.session.execute(
            select(DeliveryZone)
            .where(DeliveryZone.is_active == True)  # noqa: E712
            .order_by(DeliveryZone.priority, DeliveryZone.id)
        )
        return list(result.scalars().all())

    async def get_active_snapshots(self) -> List[ZoneSnapshot]:
        """Active zones for resolution, served from cache when available."""
        if self.cache is not None:
            cached = await self.cache.get_active_zones()
            if cached is not None:
                return [ZoneSnapshot.from_dict(z) for z in cached]

        zones = [self.zone_to_dict(z, include_slots=False) for z in await self.get_active_zone_models()]
        if self.cache is not None:
            await self.cache.set_active_zones(zones)
        return [ZoneSnapshot.from_dict(z) for z in zones]

    async def get_zone(self, zone_id: int) -> DeliveryZone:
        zone = await self.session.get(DeliveryZone, zone_id)
        if zone is None:
            raise NotFoundError("Delivery zone", zone_id)
        return zone

    async def create_zone(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new delivery zone (with optional explicit time slots)."""
        _validate_zone_data(data)
        zone = DeliveryZone(
            name=data["name"].strip(),
            center_latitude=float(data["center_latitude"]),
            center_longitude=float(data["center_longitude"]),
            radius_km=float(data["radius_km"]),
            base_fee=Decimal(str(data["base_fee"])),
            min_order_amount=Decimal(str(data.get("min_order_amount") or 0)),
            max_delivery_time=int(data.get("max_delivery_time") or 0),
            per_km_surcharge=(
                Decimal(str(data["per_km_surcharge"])) if data.get("per_km_surcharge") is not None else None
            ),
            operating_hours=data.get("operating_hours"),
            is_active=data.get("is_active", True),
            priority=data.get("priority", 0),
            time_slots=self._build_slots(data.get("time_slots") or []),
        )
        self.session.add(zone)
        await self.session.flush()
        await self._invalidate()
        logger.info("Delivery zone created", zone_id=zone.id, name=zone.name)
        return self.zone_to_dict(zone)

    async def update_zone(self, zone_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Partial update. A provided time_slots list replaces the existing slots."""
        zone = await self.get_zone(zone_id)
        merged = {
            "center_latitude": zone.center_latitude,
            "center_longitude": zone.center_longitude,
            **data,
        }
        _validate_zone_data(merged, partial=True)
        for field in ZONE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if value is None and field not in ("per_km_surcharge", "operating_hours"):
                continue
            if field in ("base_fee", "min_order_amount", "per_km_surcharge") and value is not None:
                value = Decimal(str(value))
            if field == "name":
                value = value.strip()
            setattr(zone, field, value)
        if "time_slots" in data and data["time_slots"] is not None:
            zone.time_slots = self._build_slots(data["time_slots"])
        await self.session.flush()
        await self._invalidate()
        logger.info("Delivery zone updated", zone_id=zone.id, fields=sorted(data.keys()))
        return self.zone_to_dict(zone)

    async def deactivate_zone(self, zone_id: int) -> Dict[str, Any]:
        """Soft delete: zones stay referenced by historical orders."""
        zone = await self.get_zone(zone_id)
        zone.is_active = False
        await self.session.flush()
        await self._invalidate()
        logger.info("Delivery zone deactivated", zone_id=zone.id)
        return self.zone_to_dict(zone)

    async def restore_defaults(self) -> List[Dict[str, Any]]:
        """Deactivate every current zone and recreate the built-in catalogue."""
        await self.session.execute(
            update(DeliveryZone)
            .where(DeliveryZone.is_active == True)  # noqa: E712
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        created = []
        for data in DEFAULT_ZONES:
            _validate_zone_data(data)
            zone = DeliveryZone(
                name=data["name"],
                center_latitude=data["center_latitude"],
                center_longitude=data["center_longitude"],
                radius_km=data["radius_km"],
                base_fee=Decimal(str(data["base_fee"])),
                min_order_amount=Decimal(str(data["min_order_amount"])),
                max_delivery_time=data["max_delivery_time"],
                per_km_surcharge=(
                    Decimal(str(data["per_km_surcharge"])) if data["per_km_surcharge"] is not None else None
                ),
                operating_hours=data["operating_hours"],
                is_active=True,
                priority=data["priority"],
                time_slots=[],
            )
            self.session.add(zone)
            created.append(zone)
        await self.session.flush()
        await self._invalidate()
        logger.info("Delivery zones restored to defaults", count=len(created))
        return [self.zone_to_dict(z) for z in created]

    async def _invalidate(self) -> None:
        if self.cache is not None:
            await self.cache.invalidate_zones()

    @staticmethod
    def _build_slots(slots: List[Dict[str, Any]]) -> List[DeliveryTimeSlot]:
        return [
            DeliveryTimeSlot(
                position=index,
                start_time=slot["start_time"],
                end_time=slot["end_time"],
                max_orders=slot.get("max_orders", 10),
                current_orders=slot.get("current_orders", 0),
                is_available=slot.get("is_available", True),
            )
            for index, slot in enumerate(slots)
        ]

    @staticmethod
    def zone_to_dict(zone: DeliveryZone, include_slots: bool = True) -> Dict[str, Any]:
        data = {
            "id": zone.id,
            "name": zone.name,
            "center_latitude": zone.center_latitude,
            "center_longitude": zone.center_longitude,
            "radius_km": zone.radius_km,
            "base_fee": float(zone.base_fee if zone.base_fee is not None else ZERO),
            "min_order_amount": float(zone.min_order_amount if zone.min_order_amount is not None else ZERO),
            "max_delivery_time": zone.max_delivery_time or 0,
            "per_km_surcharge": float(zone.per_km_surcharge) if zone.per_km_surcharge is not None else None,
            "operating_hours": zone.operating_hours or {},
            "is_active": zone.is_active,
            "priority": zone.priority or 0,
        }
        if include_slots:
            data["time_slots"] = [
                {
                    "id": s.id,
                    "start_time": s.start_time,
                    "end_time": s.end_time,
                    "max_orders": s.max_orders,
                    "current_orders": s.current_orders,
                    "is_available": s.is_available,
                }
                for s in zone.time_slots
            ]
        return data
