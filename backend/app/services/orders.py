# backend/app/services/orders.py
"""
Order service - places orders and drives them through their lifecycle.

Unlike the catalogue services, the mutating methods here own the
transaction: side effects (prints, live broadcast) may only start once the
order is committed, so each method commits and then hands the committed
order to the NotificationDispatcher.
"""
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, List, Dict, Any
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.auth import Actor
from backend.app.core.constants import (
    ItemSize,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
    ONE_CENT,
    ZERO,
)
from backend.app.core.exceptions import (
    BelowMinimumOrderError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from backend.app.core.geo import validate_coordinate
from backend.app.core.logging import get_logger
from backend.app.core.metrics import orders_created_total, order_status_transitions_total
from backend.app.core.settings import get_settings
from backend.app.models.order import Order, OrderItem
from backend.app.services.cache import CacheService
from backend.app.services.delivery_slots import DeliverySlotService
from backend.app.services.notifications import NotificationDispatcher
from backend.app.services.order_lifecycle import (
    apply_payment_transition,
    apply_transition,
    ensure_deletable,
    parse_status,
)
from backend.app.services.zone_resolver import ZoneResolver

logger = get_logger(__name__)

SORT_FIELDS = ("date", "status")
SORT_ORDERS = ("asc", "desc")


def _decimal(value, field: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidInputError(f"Field '{field}' must be a number")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInputError(f"Field '{field}' must be a number")
    if not result.is_finite():
        raise InvalidInputError(f"Field '{field}' must be a finite number")
    return result


def _parse_choice(enum_cls, value, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(e.value for e in enum_cls)
        raise InvalidInputError(f"Invalid {field} '{value}'. Must be one of: {valid}")


def build_items(items: Optional[List[Dict[str, Any]]]) -> List[OrderItem]:
    """Validate raw cart lines and turn them into OrderItem rows."""
    if not items:
        raise InvalidInputError("Order must contain at least one item")
    built = []
    for index, item in enumerate(items):
        product_id = item.get("product_id")
        if product_id is None or str(product_id).strip() == "":
            raise InvalidInputError(f"Item {index}: product_id is required")
        quantity = item.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise InvalidInputError(f"Item {index}: quantity must be a positive integer")
        unit_price = _decimal(item.get("unit_price"), "unit_price")
        if unit_price < 0:
            raise InvalidInputError(f"Item {index}: unit_price must be non-negative")
        size = _parse_choice(ItemSize, item.get("size") or ItemSize.MEDIUM.value, "size")
        built.append(OrderItem(
            position=index,
            product_id=str(product_id),
            product_name=item.get("product_name"),
            quantity=quantity,
            unit_price=unit_price.quantize(ONE_CENT),
            size=size.value,
            toppings=item.get("toppings") or [],
            special_instructions=item.get("special_instructions"),
        ))
    return built


def compute_subtotal(items: List[OrderItem]) -> Decimal:
    return sum((item.line_total for item in items), ZERO).quantize(ONE_CENT)


def compute_tax(subtotal: Decimal, rate) -> Decimal:
    return (subtotal * Decimal(str(rate))).quantize(ONE_CENT, rounding=ROUND_HALF_UP)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class OrderService:
    """Service class for order operations."""

    def __init__(
        self,
        session: AsyncSession,
        cache: Optional[CacheService] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.session = session
        self.cache = cache
        self.dispatcher = dispatcher
        self.settings = get_settings()

    async def _get_order(self, order_id: int, for_update: bool = False) -> Order:
        query = select(Order).where(Order.id == order_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    @staticmethod
    def _check_access(order: Order, actor: Actor) -> None:
        if not actor.is_admin and order.user_id != actor.user_id:
            raise UnauthorizedError()

    async def create_order(
        self,
        user_id: int,
        order_type: str,
        items: List[Dict[str, Any]],
        payment_method: str = PaymentMethod.CASH.value,
        delivery_address: Optional[Dict[str, Any]] = None,
        delivery_slot_id: Optional[int] = None,
        discount=0,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Price, validate and persist a new order, then schedule its side effects.

        Args:
            user_id: Owner of the order
            order_type: "delivery" or "pickup"
            items: [{"product_id", "product_name", "quantity", "unit_price",
                     "size", "toppings", "special_instructions"}, ...]
            payment_method: "cash" or "card"
            delivery_address: {"street", "city", "postal_code", "latitude",
                               "longitude", "delivery_instructions"}; delivery only
            delivery_slot_id: Explicit slot to book; delivery only
            discount: Non-negative amount subtracted from the total
            now: Naive UTC placement time; the slot start check uses it in TIMEZONE

        Returns:
            Order dict (see order_to_dict)

        Raises:
            InvalidInputError: Bad type, payment method, items, address or pricing
            NoZoneAvailableError: Delivery requested with no active zones
            BelowMinimumOrderError: Subtotal under the zone minimum
            CapacityExceededError: Requested slot is full
        """
        kind = _parse_choice(OrderType, order_type, "order type")
        method = _parse_choice(PaymentMethod, payment_method, "payment method")
        order_items = build_items(items)
        subtotal = compute_subtotal(order_items)
        discount_amount = _decimal(discount or 0, "discount").quantize(ONE_CENT)
        if discount_amount < 0:
            raise InvalidInputError("Discount must be non-negative")
        if now is None:
            now = datetime.utcnow()

        order = Order(
            user_id=user_id,
            order_type=kind.value,
            status=OrderStatus.PENDING.value,
            payment_method=method.value,
            payment_status=PaymentStatus.PENDING.value,
            subtotal=subtotal,
            delivery_charge=ZERO,
            discount=discount_amount,
            is_out_of_zone=False,
            notes=notes,
            items=order_items,
        )

        resolution = None
        if kind == OrderType.DELIVERY:
            address = delivery_address or {}
            if address.get("latitude") is None or address.get("longitude") is None:
                raise InvalidInputError("Delivery orders require an address with latitude and longitude")
            location = validate_coordinate(address["latitude"], address["longitude"])
            resolution = await ZoneResolver(self.session, self.cache).resolve(
                location.latitude, location.longitude
            )
            zone = resolution.zone
            if subtotal < zone.min_order_amount:
                raise BelowMinimumOrderError(zone.min_order_amount, subtotal, zone.id)

            order.delivery_charge = resolution.delivery_charge
            order.is_out_of_zone = resolution.is_out_of_zone
            order.delivery_zone_id = zone.id
            order.delivery_street = address.get("street")
            order.delivery_city = address.get("city")
            order.delivery_postal_code = address.get("postal_code")
            order.delivery_latitude = location.latitude
            order.delivery_longitude = location.longitude
            order.delivery_instructions = address.get("delivery_instructions")
            order.estimated_delivery_time = now + timedelta(minutes=zone.max_delivery_time)

        order.tax = compute_tax(subtotal, self.settings.TAX_RATE)
        if order.compute_final_price() < 0:
            raise InvalidInputError("Discount exceeds the order total")

        if kind == OrderType.DELIVERY and delivery_slot_id is not None:
            local_now = now.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(self.settings.TIMEZONE))
            await DeliverySlotService(self.session).book_slot(
                delivery_slot_id, zone_id=resolution.zone.id, now=local_now
            )
            order.delivery_slot_id = delivery_slot_id

        self.session.add(order)
        await self.session.flush()
        await self.session.commit()

        orders_created_total.labels(order_type=kind.value).inc()
        logger.info(
            "Order created",
            order_id=order.id,
            user_id=user_id,
            order_type=kind.value,
            final_price=float(order.final_price),
            delivery_zone_id=order.delivery_zone_id,
            is_out_of_zone=order.is_out_of_zone,
        )

        data = self.order_to_dict(order)
        if self.dispatcher is not None:
            self.dispatcher.dispatch_order_created(data)
        return data

    async def update_status(
        self,
        order_id: int,
        new_status: str,
        reason: Optional[str] = None,
        delivered_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Admin status change; commits, then schedules print/broadcast."""
        parse_status(new_status)
        order = await self._get_order(order_id, for_update=True)
        outcome = apply_transition(order, new_status, reason=reason, delivered_at=delivered_at)
        if outcome.release_slot_id is not None:
            await DeliverySlotService(self.session).release_slot(outcome.release_slot_id)
        await self.session.flush()
        await self.session.commit()

        order_status_transitions_total.labels(
            from_status=outcome.old_status.value,
            to_status=outcome.new_status.value,
        ).inc()
        logger.info(
            "Order status changed",
            order_id=order.id,
            old_status=outcome.old_status.value,
            new_status=outcome.new_status.value,
        )

        data = self.order_to_dict(order)
        data["old_status"] = outcome.old_status.value
        if self.dispatcher is not None:
            self.dispatcher.dispatch_status_changed(data, reprint_kitchen=outcome.reprint_kitchen)
        return data

    async def update_payment_status(self, order_id: int, payment_status: str) -> Dict[str, Any]:
        order = await self._get_order(order_id, for_update=True)
        old = apply_payment_transition(order, payment_status)
        await self.session.flush()
        await self.session.commit()
        logger.info(
            "Order payment status changed",
            order_id=order.id,
            old_payment_status=old.value,
            new_payment_status=order.payment_status,
        )
        return self.order_to_dict(order)

    async def delete_order(self, order_id: int, actor: Actor) -> None:
        """Owner or admin may delete, and only while the order is pending."""
        order = await self._get_order(order_id, for_update=True)
        self._check_access(order, actor)
        ensure_deletable(order)
        if order.delivery_slot_id is not None:
            await DeliverySlotService(self.session).release_slot(order.delivery_slot_id)
        await self.session.delete(order)
        await self.session.commit()
        logger.info("Order deleted", order_id=order_id, deleted_by=actor.user_id)

    async def get_order(self, order_id: int, actor: Actor) -> Dict[str, Any]:
        order = await self._get_order(order_id)
        self._check_access(order, actor)
        return self.order_to_dict(order)

    def _apply_sorting(self, query, sort_by: str, sort_order: str):
        if sort_by not in SORT_FIELDS:
            raise InvalidInputError(f"sort_by must be one of: {', '.join(SORT_FIELDS)}")
        if sort_order not in SORT_ORDERS:
            raise InvalidInputError(f"sort_order must be one of: {', '.join(SORT_ORDERS)}")
        column = Order.created_at if sort_by == "date" else Order.status
        primary = column.asc() if sort_order == "asc" else column.desc()
        return query.order_by(primary, Order.id.desc())

    def _apply_status_filter(self, query, status: Optional[str]):
        if status:
            statuses = [parse_status(s.strip()).value for s in status.split(",") if s.strip()]
            if statuses:
                query = query.where(Order.status.in_(statuses))
        return query

    async def get_user_orders(
        self,
        user_id: int,
        status: Optional[str] = None,
        sort_by: str = "date",
        sort_order: str = "desc",
    ) -> List[Dict[str, Any]]:
        """Orders of one customer. status can be comma-separated."""
        query = select(Order).where(Order.user_id == user_id)
        query = self._apply_status_filter(query, status)
        query = self._apply_sorting(query, sort_by, sort_order)
        result = await self.session.execute(query)
        return [self.order_to_dict(o) for o in result.scalars().all()]

    async def get_all_orders(
        self,
        status: Optional[str] = None,
        sort_by: str = "date",
        sort_order: str = "desc",
    ) -> List[Dict[str, Any]]:
        query = self._apply_status_filter(select(Order), status)
        query = self._apply_sorting(query, sort_by, sort_order)
        result = await self.session.execute(query)
        return [self.order_to_dict(o) for o in result.scalars().all()]

    async def get_orders_by_user(
        self,
        user_id: int,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """Admin view of a customer's orders; both dates are inclusive."""
        if start_date and end_date and start_date > end_date:
            raise InvalidInputError("start_date must not be after end_date")
        query = select(Order).where(Order.user_id == user_id)
        query = self._apply_status_filter(query, status)
        if start_date:
            query = query.where(Order.created_at >= datetime.combine(start_date, datetime.min.time()))
        if end_date:
            query = query.where(
                Order.created_at < datetime.combine(end_date + timedelta(days=1), datetime.min.time())
            )
        query = query.order_by(Order.created_at.desc(), Order.id.desc())
        result = await self.session.execute(query)
        return [self.order_to_dict(o) for o in result.scalars().all()]

    @staticmethod
    def order_to_dict(order: Order) -> Dict[str, Any]:
        delivery_address = None
        if order.order_type == OrderType.DELIVERY.value:
            delivery_address = {
                "street": order.delivery_street,
                "city": order.delivery_city,
                "postal_code": order.delivery_postal_code,
                "latitude": order.delivery_latitude,
                "longitude": order.delivery_longitude,
                "delivery_instructions": order.delivery_instructions,
            }
        return {
            "id": order.id,
            "user_id": order.user_id,
            "order_type": order.order_type,
            "status": order.status,
            "payment_method": order.payment_method,
            "payment_status": order.payment_status,
            "items": [
                {
                    "product_id": i.product_id,
                    "product_name": i.product_name,
                    "quantity": i.quantity,
                    "unit_price": float(i.unit_price),
                    "size": i.size,
                    "toppings": i.toppings or [],
                    "special_instructions": i.special_instructions,
                    "line_total": float(i.line_total),
                }
                for i in order.items
            ],
            "subtotal": float(order.subtotal or 0),
            "delivery_charge": float(order.delivery_charge or 0),
            "tax": float(order.tax or 0),
            "discount": float(order.discount or 0),
            "final_price": float(order.compute_final_price()),
            "is_out_of_zone": bool(order.is_out_of_zone),
            "delivery_address": delivery_address,
            "delivery_zone_id": order.delivery_zone_id,
            "delivery_slot_id": order.delivery_slot_id,
            "estimated_delivery_time": _iso(order.estimated_delivery_time),
            "actual_delivery_time": _iso(order.actual_delivery_time),
            "notes": order.notes,
            "cancellation_reason": order.cancellation_reason,
            "created_at": _iso(order.created_at),
            "updated_at": _iso(order.updated_at),
        }
