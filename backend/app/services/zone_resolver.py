"""
Resolve which delivery zone serves a location and what delivery costs there.

Selection policy:
    1. Among active zones whose circle contains the point, the nearest
       center wins; ties go to the lower base fee, then lower priority
       number, then lower id.
    2. When no zone contains the point, the active zone with the highest
       base fee is used as a catch-all and the result is flagged
       out-of-zone.
    3. With no active zones at all, resolution fails. Delivery is never
       silently free.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import NoZoneAvailableError
from backend.app.core.geo import Coordinate, distance_km, validate_coordinate
from backend.app.core.logging import get_logger
from backend.app.core.metrics import zone_resolutions_total
from backend.app.services.cache import CacheService
from backend.app.services.delivery_zones import DeliveryZoneService, ZoneSnapshot, fee_for_location

logger = get_logger(__name__)


@dataclass(frozen=True)
class ZoneResolution:
    zone: ZoneSnapshot
    delivery_charge: Decimal
    is_out_of_zone: bool
    distance_km: float

    def to_dict(self) -> dict:
        return {
            "zone": {
                "id": self.zone.id,
                "name": self.zone.name,
                "base_fee": float(self.zone.base_fee),
                "min_order_amount": float(self.zone.min_order_amount),
                "max_delivery_time": self.zone.max_delivery_time,
                "radius_km": self.zone.radius_km,
            },
            "delivery_charge": float(self.delivery_charge),
            "is_out_of_zone": self.is_out_of_zone,
            "distance_km": round(self.distance_km, 3),
        }


def select_zone(zones: Sequence[ZoneSnapshot], location: Coordinate) -> ZoneResolution:
    """Pure selection over a snapshot of active zones."""
    if not zones:
        raise NoZoneAvailableError()

    measured = [(distance_km(zone.center, location), zone) for zone in zones]

    containing = [(d, zone) for d, zone in measured if d <= zone.radius_km]
    if containing:
        distance, zone = min(
            containing,
            key=lambda pair: (pair[0], pair[1].base_fee, pair[1].priority, pair[1].id),
        )
        return ZoneResolution(
            zone=zone,
            delivery_charge=fee_for_location(zone, location, distance),
            is_out_of_zone=False,
            distance_km=distance,
        )

    distance, zone = min(
        measured,
        key=lambda pair: (-pair[1].base_fee, pair[1].priority, pair[1].id),
    )
    return ZoneResolution(
        zone=zone,
        delivery_charge=zone.base_fee,
        is_out_of_zone=True,
        distance_km=distance,
    )


class ZoneResolver:
    def __init__(self, session: AsyncSession, cache: Optional[CacheService] = None):
        self.zones = DeliveryZoneService(session, cache)

    async def resolve(self, latitude, longitude) -> ZoneResolution:
        location = validate_coordinate(latitude, longitude)
        snapshots = await self.zones.get_active_snapshots()
        try:
            resolution = select_zone(snapshots, location)
        except NoZoneAvailableError:
            logger.warning("Zone resolution failed: no active zones", latitude=latitude, longitude=longitude)
            zone_resolutions_total.labels(outcome="no_zone").inc()
            raise

        zone_resolutions_total.labels(
            outcome="out_of_zone" if resolution.is_out_of_zone else "in_zone"
        ).inc()
        logger.info(
            "Zone resolved",
            zone_id=resolution.zone.id,
            delivery_charge=float(resolution.delivery_charge),
            is_out_of_zone=resolution.is_out_of_zone,
            distance_km=round(resolution.distance_km, 3),
        )
        return resolution
