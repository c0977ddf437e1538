# backend/app/services/__init__.py
"""
Services layer for business logic.
Keeps API endpoints thin and business logic testable and reusable.
"""

from backend.app.services.delivery_zones import DeliveryZoneService, ZoneSnapshot
from backend.app.services.zone_resolver import ZoneResolver, ZoneResolution, select_zone
from backend.app.services.delivery_slots import DeliverySlotService, SlotView, available_slots
from backend.app.services.order_lifecycle import TransitionOutcome, apply_transition
from backend.app.services.orders import OrderService
from backend.app.services.notifications import NotificationDispatcher, get_dispatcher
from backend.app.services.printer import PrinterClient
from backend.app.services.broadcast import OrderBroadcaster
from backend.app.services.cache import CacheService

__all__ = [
    # Zones
    "DeliveryZoneService",
    "ZoneSnapshot",
    "ZoneResolver",
    "ZoneResolution",
    "select_zone",
    # Slots
    "DeliverySlotService",
    "SlotView",
    "available_slots",
    # Orders
    "OrderService",
    "TransitionOutcome",
    "apply_transition",
    # Side effects
    "NotificationDispatcher",
    "get_dispatcher",
    "PrinterClient",
    "OrderBroadcaster",
    # Cache service
    "CacheService",
]
