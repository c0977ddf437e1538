"""Delivery time slot service - list bookable slots and book capacity atomically."""

from dataclasses import dataclass, asdict
from datetime import date, datetime
from typing import Optional, List, Sequence, Union
from zoneinfo import ZoneInfo

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import CapacityExceededError, InvalidInputError, NotFoundError
from backend.app.core.logging import get_logger
from backend.app.core.metrics import slot_bookings_total
from backend.app.core.settings import get_settings
from backend.app.core.timeutils import day_hours, format_hhmm, normalize_weekday, parse_hhmm
from backend.app.models.delivery_zone import DeliveryZone, DeliveryTimeSlot

logger = get_logger(__name__)

SYNTHETIC_SLOT_MINUTES = 60


@dataclass(frozen=True)
class SlotView:
    id: Optional[int]
    start_time: str
    end_time: str
    max_orders: int
    current_orders: int
    is_available: bool

    @property
    def remaining(self) -> int:
        return max(0, self.max_orders - self.current_orders)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["remaining"] = self.remaining
        return data


def synthesize_hourly_slots(operating_hours: Optional[dict], weekday: str, capacity: int) -> List[SlotView]:
    """Hourly slots covering the day's open/close window; closed day -> []."""
    hours = day_hours(operating_hours, weekday)
    if hours is None:
        return []
    open_minutes, close_minutes = hours

    slots = []
    current_start = open_minutes
    while current_start + SYNTHETIC_SLOT_MINUTES <= close_minutes:
        slot_end = current_start + SYNTHETIC_SLOT_MINUTES
        slots.append(SlotView(
            id=None,
            start_time=format_hhmm(current_start),
            end_time=format_hhmm(slot_end),
            max_orders=capacity,
            current_orders=0,
            is_available=True,
        ))
        current_start = slot_end
    return slots


def filter_available_slots(
    slots: Sequence[SlotView],
    day: Union[str, int, date],
    now: datetime,
) -> List[SlotView]:
    """
    Keep slots that are still bookable, preserving their order.

    A slot qualifies when it is flagged available, has spare capacity and,
    if ``day`` is the weekday of ``now``, starts strictly after now's
    time of day (a slot starting this very minute is already gone).
    """
    weekday = normalize_weekday(day)
    cutoff = None
    if weekday == normalize_weekday(now):
        cutoff = now.hour * 60 + now.minute

    available = []
    for slot in slots:
        if not slot.is_available:
            continue
        if slot.current_orders >= slot.max_orders:
            continue
        if cutoff is not None and parse_hhmm(slot.start_time) <= cutoff:
            continue
        available.append(slot)
    return available


def zone_slot_views(zone: DeliveryZone, weekday: str, default_capacity: int) -> List[SlotView]:
    """Explicit slots in configured order, or synthesized hourly ones."""
    if zone.time_slots:
        return [
            SlotView(
                id=s.id,
                start_time=s.start_time,
                end_time=s.end_time,
                max_orders=s.max_orders,
                current_orders=s.current_orders,
                is_available=s.is_available,
            )
            for s in zone.time_slots
        ]
    return synthesize_hourly_slots(zone.operating_hours, weekday, default_capacity)


def available_slots(
    zone: DeliveryZone,
    day: Union[str, int, date],
    now: datetime,
    default_capacity: Optional[int] = None,
) -> List[SlotView]:
    if default_capacity is None:
        default_capacity = get_settings().DEFAULT_SLOT_CAPACITY
    weekday = normalize_weekday(day)
    return filter_available_slots(zone_slot_views(zone, weekday, default_capacity), weekday, now)


class DeliverySlotService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()

    def local_now(self) -> datetime:
        return datetime.now(ZoneInfo(self.settings.TIMEZONE))

    async def _get_zone(self, zone_id: int) -> DeliveryZone:
        zone = await self.session.get(DeliveryZone, zone_id)
        if zone is None or not zone.is_active:
            raise NotFoundError("Delivery zone", zone_id)
        return zone

    async def get_available_slots(
        self,
        zone_id: int,
        day: Optional[Union[str, int, date]] = None,
        now: Optional[datetime] = None,
    ) -> List[SlotView]:
        """
        Bookable slots of an active zone for a weekday (defaults to today).

        Returns:
            [SlotView(id=3, start_time="12:00", end_time="13:00", ...), ...]
        """
        zone = await self._get_zone(zone_id)
        if now is None:
            now = self.local_now()
        if day is None:
            day = now
        return available_slots(zone, day, now, self.settings.DEFAULT_SLOT_CAPACITY)

    async def book_slot(
        self,
        slot_id: int,
        zone_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Take one unit of today's capacity of a slot.

        A slot whose start_time is at or before now's local time of day has
        already started and cannot be booked. The capacity check and the
        increment are one conditional UPDATE, so concurrent bookings can
        never push current_orders past max_orders.
        """
        slot = await self.session.get(DeliveryTimeSlot, slot_id)
        if slot is None:
            raise NotFoundError("Delivery slot", slot_id)
        if zone_id is not None and slot.zone_id != zone_id:
            raise InvalidInputError(f"Delivery slot {slot_id} does not belong to zone {zone_id}")
        if now is None:
            now = self.local_now()
        if parse_hhmm(slot.start_time) <= now.hour * 60 + now.minute:
            slot_bookings_total.labels(result="started").inc()
            logger.info("Delivery slot booking rejected: started", slot_id=slot_id, start_time=slot.start_time)
            raise InvalidInputError(f"Delivery slot {slot_id} ({slot.start_time}) has already started")

        result = await self.session.execute(
            update(DeliveryTimeSlot)
            .where(
                DeliveryTimeSlot.id == slot_id,
                DeliveryTimeSlot.is_available == True,  # noqa: E712
                DeliveryTimeSlot.current_orders < DeliveryTimeSlot.max_orders,
            )
            .values(current_orders=DeliveryTimeSlot.current_orders + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            slot_bookings_total.labels(result="booked").inc()
            logger.info("Delivery slot booked", slot_id=slot_id, zone_id=slot.zone_id)
            return

        slot_bookings_total.labels(result="full").inc()
        logger.info("Delivery slot booking rejected: full", slot_id=slot_id)
        raise CapacityExceededError(slot_id)

    async def release_slot(self, slot_id: int) -> bool:
        """Give back one unit of capacity (e.g. when the order is cancelled)."""
        result = await self.session.execute(
            update(DeliveryTimeSlot)
            .where(DeliveryTimeSlot.id == slot_id, DeliveryTimeSlot.current_orders > 0)
            .values(current_orders=DeliveryTimeSlot.current_orders - 1)
            .execution_options(synchronize_session=False)
        )
        released = result.rowcount == 1
        if released:
            logger.info("Delivery slot released", slot_id=slot_id)
        return released

    async def materialize_hourly_slots(self, zone_id: int, day: Union[str, int, date]) -> List[SlotView]:
        """Persist the synthesized hourly slots of a weekday so they become bookable."""
        zone = await self._get_zone(zone_id)
        if zone.time_slots:
            raise InvalidInputError(f"Delivery zone {zone_id} already has explicit time slots")
        weekday = normalize_weekday(day)
        synthesized = synthesize_hourly_slots(
            zone.operating_hours, weekday, self.settings.DEFAULT_SLOT_CAPACITY
        )
        if not synthesized:
            raise InvalidInputError(f"Delivery zone {zone_id} has no operating hours on {weekday}")
        zone.time_slots = [
            DeliveryTimeSlot(
                position=index,
                start_time=view.start_time,
                end_time=view.end_time,
                max_orders=view.max_orders,
                current_orders=0,
                is_available=True,
            )
            for index, view in enumerate(synthesized)
        ]
        await self.session.flush()
        logger.info("Hourly slots materialized", zone_id=zone_id, weekday=weekday, count=len(synthesized))
        return zone_slot_views(zone, weekday, self.settings.DEFAULT_SLOT_CAPACITY)
