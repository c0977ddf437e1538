"""
Tests for order placement and the order lifecycle.

Tests cover:
- Pricing (pickup, delivery, out-of-zone, tax, discount)
- Validation errors (type, payment method, items, address, minimum order)
- Slot booking during placement and release on cancel/delete
- Side effects (prints, live events) scheduled after commit
- Status and payment status updates
- Access control and listings
- Orders API endpoints
"""
import pytest
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo
from decimal import Decimal
from httpx import AsyncClient
from prometheus_client import REGISTRY
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.auth import Actor
from backend.app.core.constants import ROLE_ADMIN, ROLE_CUSTOMER
from backend.app.core.exceptions import (
    BelowMinimumOrderError,
    CapacityExceededError,
    InvalidInputError,
    InvalidTransitionError,
    NoZoneAvailableError,
    NotFoundError,
    UnauthorizedError,
)
from backend.app.core.settings import get_settings
from backend.app.models.delivery_zone import DeliveryTimeSlot
from backend.app.models.order import Order
from backend.app.services.notifications import NotificationDispatcher
from backend.app.services.orders import OrderService
from backend.tests.conftest import (
    RecordingBroadcaster,
    RecordingPrinter,
    create_test_order,
    create_test_zone,
    pizza_item,
    MITHI_CENTER,
    INSIDE_CENTRAL,
    FAR_AWAY,
)

CUSTOMER = Actor(user_id=1001, role=ROLE_CUSTOMER)
OTHER_CUSTOMER = Actor(user_id=2002, role=ROLE_CUSTOMER)
ADMIN = Actor(user_id=1, role=ROLE_ADMIN)

# Monday 11:00 in the kitchen timezone, as the naive UTC instant create_order expects
MONDAY_11AM_UTC = (
    datetime(2026, 10, 12, 11, 0, tzinfo=ZoneInfo(get_settings().TIMEZONE))
    .astimezone(timezone.utc)
    .replace(tzinfo=None)
)


def address(point=MITHI_CENTER, **extra):
    data = {"street": "Station Road 4", "city": "Mithi", "postal_code": "69230", **point}
    data.update(extra)
    return data


async def slot_count(session: AsyncSession, slot_id: int) -> int:
    result = await session.execute(
        select(DeliveryTimeSlot.current_orders).where(DeliveryTimeSlot.id == slot_id)
    )
    return result.scalar_one()


# ============================================
# PLACEMENT
# ============================================

@pytest.mark.asyncio
async def test_pickup_order_has_no_delivery_charge(test_session: AsyncSession, dispatcher):
    service = OrderService(test_session, dispatcher=dispatcher)
    order = await service.create_order(
        user_id=1001,
        order_type="pickup",
        items=[pizza_item(unit_price=250, quantity=2)],
        payment_method="cash",
        delivery_address=address(),
    )
    assert order["status"] == "pending"
    assert order["payment_status"] == "pending"
    assert order["subtotal"] == 500.0
    assert order["delivery_charge"] == 0.0
    assert order["final_price"] == 500.0
    assert order["delivery_zone_id"] is None
    assert order["delivery_address"] is None
    assert order["estimated_delivery_time"] is None


@pytest.mark.asyncio
async def test_delivery_order_inside_zone(test_session: AsyncSession, dispatcher):
    zone = await create_test_zone(test_session)
    service = OrderService(test_session, dispatcher=dispatcher)
    now = datetime(2026, 10, 12, 18, 0)
    order = await service.create_order(
        user_id=1001,
        order_type="delivery",
        items=[pizza_item(unit_price=350)],
        payment_method="card",
        delivery_address=address(INSIDE_CENTRAL, delivery_instructions="Blue gate"),
        now=now,
    )
    assert order["delivery_zone_id"] == zone.id
    assert order["delivery_charge"] == 30.0
    assert order["is_out_of_zone"] is False
    assert order["final_price"] == 380.0
    assert order["payment_method"] == "card"
    assert order["delivery_address"]["delivery_instructions"] == "Blue gate"
    assert order["estimated_delivery_time"] == (now + timedelta(minutes=30)).isoformat()

    stored = await test_session.get(Order, order["id"])
    assert stored.final_price == Decimal("380.00")


@pytest.mark.asyncio
async def test_delivery_outside_all_zones_is_flagged(test_session: AsyncSession, dispatcher):
    await create_test_zone(test_session, name="Central", base_fee=30, min_order_amount=0)
    outskirts = await create_test_zone(
        test_session, name="Outskirts", radius_km=6.0, base_fee=100, min_order_amount=0, per_km_surcharge=10,
    )
    service = OrderService(test_session, dispatcher=dispatcher)
    order = await service.create_order(
        user_id=1001, order_type="delivery", items=[pizza_item()], delivery_address=address(FAR_AWAY),
    )
    assert order["delivery_zone_id"] == outskirts.id
    assert order["is_out_of_zone"] is True
    assert order["delivery_charge"] == 100.0


@pytest.mark.asyncio
async def test_delivery_below_minimum_discloses_minimum(test_session: AsyncSession, dispatcher):
    await create_test_zone(test_session, min_order_amount=300)
    service = OrderService(test_session, dispatcher=dispatcher)
    with pytest.raises(BelowMinimumOrderError) as exc:
        await service.create_order(
            user_id=1001, order_type="delivery", items=[pizza_item(unit_price=250)], delivery_address=address(),
        )
    assert exc.value.minimum == Decimal("300")
    assert exc.value.status_code == 400
    await test_session.rollback()
    assert (await test_session.execute(select(Order))).scalars().all() == []


@pytest.mark.asyncio
async def test_delivery_without_zones_fails(test_session: AsyncSession, dispatcher):
    service = OrderService(test_session, dispatcher=dispatcher)
    with pytest.raises(NoZoneAvailableError):
        await service.create_order(
            user_id=1001, order_type="delivery", items=[pizza_item()], delivery_address=address(),
        )


@pytest.mark.asyncio
@pytest.mark.parametrize("kwargs", [
    {"order_type": "drone"},
    {"payment_method": "crypto"},
    {"items": []},
    {"items": [pizza_item(quantity=0)]},
    {"items": [pizza_item(unit_price=-1)]},
    {"items": [pizza_item(size="huge")]},
    {"delivery_address": None},
    {"delivery_address": {"street": "No coordinates"}},
    {"delivery_address": address({"latitude": 91, "longitude": 69.79})},
    {"discount": -5},
    {"discount": 10000},
])
async def test_create_order_rejects_invalid_input(test_session: AsyncSession, dispatcher, kwargs):
    await create_test_zone(test_session, min_order_amount=0)
    service = OrderService(test_session, dispatcher=dispatcher)
    params = {
        "user_id": 1001,
        "order_type": "delivery",
        "items": [pizza_item()],
        "payment_method": "cash",
        "delivery_address": address(),
    }
    params.update(kwargs)
    with pytest.raises(InvalidInputError):
        await service.create_order(**params)


@pytest.mark.asyncio
async def test_tax_is_applied_to_subtotal(test_session: AsyncSession, dispatcher, monkeypatch):
    monkeypatch.setattr(get_settings(), "TAX_RATE", 0.05)
    service = OrderService(test_session, dispatcher=dispatcher)
    order = await service.create_order(
        user_id=1001, order_type="pickup", items=[pizza_item(unit_price="333.30")], discount=3,
    )
    assert order["tax"] == 16.67
    assert order["final_price"] == 346.97


@pytest.mark.asyncio
async def test_final_price_equals_components(test_session: AsyncSession, dispatcher):
    await create_test_zone(test_session, min_order_amount=0, base_fee="45.50")
    service = OrderService(test_session, dispatcher=dispatcher)
    order = await service.create_order(
        user_id=1001,
        order_type="delivery",
        items=[pizza_item(unit_price="199.99", quantity=3), pizza_item(unit_price="80.25")],
        discount="20.10",
        delivery_address=address(),
    )
    expected = Decimal(str(order["subtotal"])) + Decimal(str(order["delivery_charge"])) \
        + Decimal(str(order["tax"])) - Decimal(str(order["discount"]))
    assert Decimal(str(order["final_price"])) == expected
    assert order["subtotal"] == 680.22


@pytest.mark.asyncio
async def test_create_order_books_slot(test_session: AsyncSession, dispatcher):
    zone = await create_test_zone(test_session, slots=[{"start_time": "19:00", "end_time": "20:00", "max_orders": 1}])
    slot_id = zone.time_slots[0].id
    service = OrderService(test_session, dispatcher=dispatcher)

    order = await service.create_order(
        user_id=1001, order_type="delivery", items=[pizza_item(unit_price=400)],
        delivery_address=address(), delivery_slot_id=slot_id, now=MONDAY_11AM_UTC,
    )
    assert order["delivery_slot_id"] == slot_id
    assert await slot_count(test_session, slot_id) == 1

    with pytest.raises(CapacityExceededError):
        await service.create_order(
            user_id=2002, order_type="delivery", items=[pizza_item(unit_price=400)],
            delivery_address=address(), delivery_slot_id=slot_id, now=MONDAY_11AM_UTC,
        )
    await test_session.rollback()
    assert len((await test_session.execute(select(Order))).scalars().all()) == 1


@pytest.mark.asyncio
async def test_create_order_rejects_slot_that_already_started(test_session: AsyncSession, dispatcher):
    zone = await create_test_zone(test_session, slots=[
        {"start_time": "10:00", "end_time": "11:00", "max_orders": 5},
        {"start_time": "11:00", "end_time": "12:00", "max_orders": 5},
    ])
    started_ids = [s.id for s in zone.time_slots]
    service = OrderService(test_session, dispatcher=dispatcher)

    for slot_id in started_ids:
        with pytest.raises(InvalidInputError):
            await service.create_order(
                user_id=1001, order_type="delivery", items=[pizza_item(unit_price=400)],
                delivery_address=address(), delivery_slot_id=slot_id, now=MONDAY_11AM_UTC,
            )
        await test_session.rollback()

    for slot_id in started_ids:
        assert await slot_count(test_session, slot_id) == 0
    assert (await test_session.execute(select(Order))).scalars().all() == []


# ============================================
# SIDE EFFECTS
# ============================================

@pytest.mark.asyncio
async def test_delivery_order_prints_three_documents_and_broadcasts(
    test_session: AsyncSession, dispatcher, printer, broadcaster,
):
    await create_test_zone(test_session, min_order_amount=0)
    service = OrderService(test_session, dispatcher=dispatcher)
    order = await service.create_order(
        user_id=1001, order_type="delivery", items=[pizza_item()], delivery_address=address(),
    )
    await dispatcher.drain()
    assert sorted(printer.kinds_for(order["id"])) == ["customerReceipt", "deliverySlip", "kitchenOrder"]
    assert broadcaster.events == [("new-order", order["id"], "pending")]


@pytest.mark.asyncio
async def test_pickup_order_has_no_delivery_slip(test_session: AsyncSession, dispatcher, printer):
    service = OrderService(test_session, dispatcher=dispatcher)
    order = await service.create_order(user_id=1001, order_type="pickup", items=[pizza_item()])
    await dispatcher.drain()
    assert sorted(printer.kinds_for(order["id"])) == ["customerReceipt", "kitchenOrder"]


@pytest.mark.asyncio
async def test_failing_side_effects_do_not_fail_the_order(test_session: AsyncSession):
    dispatcher = NotificationDispatcher(RecordingPrinter(fail=True), RecordingBroadcaster(fail=True), timeout=1.0)
    service = OrderService(test_session, dispatcher=dispatcher)
    order = await service.create_order(user_id=1001, order_type="pickup", items=[pizza_item()])
    await dispatcher.drain()
    stored = await test_session.get(Order, order["id"])
    assert stored is not None
    assert stored.status == "pending"


@pytest.mark.asyncio
async def test_failed_order_triggers_no_side_effects(test_session: AsyncSession, dispatcher, printer, broadcaster):
    service = OrderService(test_session, dispatcher=dispatcher)
    with pytest.raises(NoZoneAvailableError):
        await service.create_order(user_id=1001, order_type="delivery", items=[pizza_item()], delivery_address=address())
    await dispatcher.drain()
    assert printer.jobs == []
    assert broadcaster.events == []


# ============================================
# STATUS UPDATES
# ============================================

@pytest.mark.asyncio
async def test_update_status_to_preparing_reprints_kitchen_ticket(
    test_session: AsyncSession, dispatcher, printer, broadcaster,
):
    order = await create_test_order(test_session, status="confirmed")
    service = OrderService(test_session, dispatcher=dispatcher)
    result = await service.update_status(order.id, "preparing")
    await dispatcher.drain()
    assert result["status"] == "preparing"
    assert result["old_status"] == "confirmed"
    assert printer.kinds_for(order.id) == ["kitchenOrder"]
    assert broadcaster.events == [("order-update", order.id, "preparing")]


@pytest.mark.asyncio
async def test_update_status_without_reprint(test_session: AsyncSession, dispatcher, printer, broadcaster):
    order = await create_test_order(test_session)
    service = OrderService(test_session, dispatcher=dispatcher)
    await service.update_status(order.id, "confirmed")
    await dispatcher.drain()
    assert printer.jobs == []
    assert broadcaster.events == [("order-update", order.id, "confirmed")]


@pytest.mark.asyncio
async def test_delivered_order_is_final(test_session: AsyncSession, dispatcher):
    order = await create_test_order(test_session, status="out_for_delivery")
    service = OrderService(test_session, dispatcher=dispatcher)
    result = await service.update_status(order.id, "delivered")
    assert result["actual_delivery_time"] is not None

    with pytest.raises(InvalidTransitionError):
        await service.update_status(order.id, "pending")


@pytest.mark.asyncio
async def test_cancel_releases_booked_slot(test_session: AsyncSession, dispatcher):
    zone = await create_test_zone(test_session, slots=[
        {"start_time": "19:00", "end_time": "20:00", "max_orders": 3, "current_orders": 1},
    ])
    slot_id = zone.time_slots[0].id
    order = await create_test_order(
        test_session, status="confirmed", order_type="delivery", delivery_slot_id=slot_id, delivery_zone_id=zone.id,
    )
    service = OrderService(test_session, dispatcher=dispatcher)
    result = await service.update_status(order.id, "cancelled")
    assert result["cancellation_reason"] == "Cancelled by administrator"
    assert await slot_count(test_session, slot_id) == 0


@pytest.mark.asyncio
async def test_update_status_unknown_value(test_session: AsyncSession, dispatcher):
    order = await create_test_order(test_session)
    service = OrderService(test_session, dispatcher=dispatcher)
    with pytest.raises(InvalidInputError):
        await service.update_status(order.id, "lost")


@pytest.mark.asyncio
async def test_update_status_missing_order(test_session: AsyncSession, dispatcher):
    service = OrderService(test_session, dispatcher=dispatcher)
    with pytest.raises(NotFoundError):
        await service.update_status(424242, "confirmed")


@pytest.mark.asyncio
async def test_update_payment_status(test_session: AsyncSession):
    order = await create_test_order(test_session, status="ready")
    service = OrderService(test_session)
    result = await service.update_payment_status(order.id, "paid")
    assert result["payment_status"] == "paid"
    assert result["status"] == "ready"
    with pytest.raises(InvalidTransitionError):
        await service.update_payment_status(order.id, "failed")


# ============================================
# ACCESS, DELETION, LISTINGS
# ============================================

@pytest.mark.asyncio
async def test_get_order_access(test_session: AsyncSession):
    order = await create_test_order(test_session, user_id=CUSTOMER.user_id)
    service = OrderService(test_session)
    assert (await service.get_order(order.id, CUSTOMER))["id"] == order.id
    assert (await service.get_order(order.id, ADMIN))["id"] == order.id
    with pytest.raises(UnauthorizedError):
        await service.get_order(order.id, OTHER_CUSTOMER)


@pytest.mark.asyncio
async def test_delete_pending_order_by_owner(test_session: AsyncSession):
    order = await create_test_order(test_session, user_id=CUSTOMER.user_id)
    service = OrderService(test_session)
    await service.delete_order(order.id, CUSTOMER)
    with pytest.raises(NotFoundError):
        await service.get_order(order.id, ADMIN)


@pytest.mark.asyncio
async def test_delete_rules(test_session: AsyncSession):
    confirmed_id = (await create_test_order(test_session, user_id=CUSTOMER.user_id, status="confirmed")).id
    pending_id = (await create_test_order(test_session, user_id=CUSTOMER.user_id)).id
    service = OrderService(test_session)

    with pytest.raises(InvalidTransitionError):
        await service.delete_order(confirmed_id, ADMIN)
    await test_session.rollback()
    with pytest.raises(UnauthorizedError):
        await service.delete_order(pending_id, OTHER_CUSTOMER)
    await test_session.rollback()
    await service.delete_order(pending_id, ADMIN)


@pytest.mark.asyncio
async def test_user_orders_filter_and_sort(test_session: AsyncSession):
    first = await create_test_order(test_session, user_id=CUSTOMER.user_id, status="pending")
    second = await create_test_order(test_session, user_id=CUSTOMER.user_id, status="delivered")
    await create_test_order(test_session, user_id=OTHER_CUSTOMER.user_id)
    service = OrderService(test_session)

    mine = await service.get_user_orders(CUSTOMER.user_id)
    assert {o["id"] for o in mine} == {first.id, second.id}

    delivered = await service.get_user_orders(CUSTOMER.user_id, status="delivered")
    assert [o["id"] for o in delivered] == [second.id]

    by_status = await service.get_user_orders(CUSTOMER.user_id, sort_by="status", sort_order="asc")
    assert [o["status"] for o in by_status] == ["delivered", "pending"]

    with pytest.raises(InvalidInputError):
        await service.get_user_orders(CUSTOMER.user_id, sort_by="price")
    with pytest.raises(InvalidInputError):
        await service.get_user_orders(CUSTOMER.user_id, status="teleported")


@pytest.mark.asyncio
async def test_orders_by_user_date_range(test_session: AsyncSession):
    order = await create_test_order(test_session, user_id=CUSTOMER.user_id)
    service = OrderService(test_session)
    today = order.created_at.date()

    found = await service.get_orders_by_user(CUSTOMER.user_id, start_date=today, end_date=today)
    assert [o["id"] for o in found] == [order.id]

    later = await service.get_orders_by_user(CUSTOMER.user_id, start_date=today + timedelta(days=1))
    assert later == []

    with pytest.raises(InvalidInputError):
        await service.get_orders_by_user(CUSTOMER.user_id, start_date=today, end_date=today - timedelta(days=1))


# ============================================
# ORDERS API
# ============================================

@pytest.mark.asyncio
async def test_api_create_delivery_order(
    client: AsyncClient, test_session: AsyncSession, customer_headers, dispatcher, broadcaster,
):
    zone = await create_test_zone(test_session)
    payload = {
        "order_type": "delivery",
        "items": [pizza_item(unit_price=350, toppings=[{"name": "Olives", "price": 50, "quantity": 1}])],
        "payment_method": "cash",
        "delivery_address": address(),
        "notes": "Extra napkins",
    }
    response = await client.post("/orders", json=payload, headers=customer_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["user_id"] == 1001
    assert data["delivery_zone_id"] == zone.id
    assert data["delivery_charge"] == 30.0
    assert data["items"][0]["toppings"][0]["name"] == "Olives"

    await dispatcher.drain()
    assert broadcaster.events == [("new-order", data["id"], "pending")]


@pytest.mark.asyncio
async def test_api_create_order_with_started_slot(client: AsyncClient, test_session: AsyncSession, customer_headers):
    # a midnight slot has always started by the time of the request
    zone = await create_test_zone(test_session, slots=[{"start_time": "00:00", "end_time": "01:00"}])
    slot_id = zone.time_slots[0].id
    payload = {
        "order_type": "delivery",
        "items": [pizza_item(unit_price=400)],
        "delivery_address": address(),
        "delivery_slot_id": slot_id,
    }
    response = await client.post("/orders", json=payload, headers=customer_headers)
    assert response.status_code == 400
    assert "already started" in response.json()["detail"]
    assert await slot_count(test_session, slot_id) == 0


@pytest.mark.asyncio
async def test_api_create_order_below_minimum(client: AsyncClient, test_session: AsyncSession, customer_headers):
    await create_test_zone(test_session, min_order_amount=300)
    payload = {
        "order_type": "delivery",
        "items": [pizza_item(unit_price=250)],
        "delivery_address": address(),
    }
    response = await client.post("/orders", json=payload, headers=customer_headers)
    assert response.status_code == 400
    assert response.json()["detail"]["min_order_amount"] == 300.0


@pytest.mark.asyncio
async def test_api_create_order_requires_auth(client: AsyncClient):
    response = await client.post("/orders", json={"order_type": "pickup", "items": [pizza_item()]})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_api_create_order_unknown_type(client: AsyncClient, customer_headers):
    response = await client.post(
        "/orders", json={"order_type": "teleport", "items": [pizza_item()]}, headers=customer_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_api_get_order_access(
    client: AsyncClient, test_session: AsyncSession, customer_headers, other_customer_headers, admin_headers,
):
    order = await create_test_order(test_session, user_id=1001)
    assert (await client.get(f"/orders/{order.id}", headers=customer_headers)).status_code == 200
    assert (await client.get(f"/orders/{order.id}", headers=admin_headers)).status_code == 200
    assert (await client.get(f"/orders/{order.id}", headers=other_customer_headers)).status_code == 403
    assert (await client.get("/orders/99999", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_api_list_own_orders(client: AsyncClient, test_session: AsyncSession, customer_headers):
    await create_test_order(test_session, user_id=1001, status="pending")
    await create_test_order(test_session, user_id=1001, status="cancelled")
    await create_test_order(test_session, user_id=2002)

    response = await client.get("/orders", headers=customer_headers)
    assert response.status_code == 200
    assert len(response.json()) == 2

    response = await client.get("/orders", params={"status": "cancelled"}, headers=customer_headers)
    assert [o["status"] for o in response.json()] == ["cancelled"]


@pytest.mark.asyncio
async def test_api_admin_listings(
    client: AsyncClient, test_session: AsyncSession, customer_headers, admin_headers,
):
    await create_test_order(test_session, user_id=1001)
    await create_test_order(test_session, user_id=2002)

    assert (await client.get("/orders/admin/all", headers=customer_headers)).status_code == 403
    response = await client.get("/orders/admin/all", headers=admin_headers)
    assert len(response.json()) == 2

    response = await client.get("/orders/user/2002", headers=admin_headers)
    assert [o["user_id"] for o in response.json()] == [2002]


@pytest.mark.asyncio
async def test_api_update_status(
    client: AsyncClient, test_session: AsyncSession, customer_headers, admin_headers, dispatcher, printer,
):
    order = await create_test_order(test_session, status="confirmed")
    url = f"/orders/{order.id}/status"

    assert (await client.put(url, json={"status": "preparing"}, headers=customer_headers)).status_code == 403

    response = await client.put(url, json={"status": "preparing"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "preparing"

    response = await client.put(url, json={"status": "nonsense"}, headers=admin_headers)
    assert response.status_code == 400

    response = await client.put(
        url, json={"status": "cancelled", "cancellation_reason": "Out of dough"}, headers=admin_headers,
    )
    assert response.json()["cancellation_reason"] == "Out of dough"

    response = await client.put(url, json={"status": "pending"}, headers=admin_headers)
    assert response.status_code == 409

    await dispatcher.drain()
    assert printer.kinds_for(order.id) == ["kitchenOrder"]


@pytest.mark.asyncio
async def test_api_update_payment_status(client: AsyncClient, test_session: AsyncSession, admin_headers):
    order = await create_test_order(test_session)
    response = await client.put(
        f"/orders/{order.id}/payment-status", json={"payment_status": "paid"}, headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["payment_status"] == "paid"
    assert response.json()["status"] == "pending"


@pytest.mark.asyncio
async def test_api_delete_order(
    client: AsyncClient, test_session: AsyncSession, customer_headers, other_customer_headers,
):
    pending = await create_test_order(test_session, user_id=1001)
    confirmed = await create_test_order(test_session, user_id=1001, status="confirmed")

    assert (await client.delete(f"/orders/{pending.id}", headers=other_customer_headers)).status_code == 403
    assert (await client.delete(f"/orders/{confirmed.id}", headers=customer_headers)).status_code == 409
    assert (await client.delete(f"/orders/{pending.id}", headers=customer_headers)).status_code == 200
    assert (await client.get(f"/orders/{pending.id}", headers=customer_headers)).status_code == 404


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "orders_created_total" in response.text


@pytest.mark.asyncio
async def test_request_metrics_use_route_template(client: AsyncClient, admin_headers):
    labels = {"method": "GET", "endpoint": "/orders/{order_id}", "status_code": "404"}
    before = REGISTRY.get_sample_value("http_requests_total", labels) or 0.0

    response = await client.get("/orders/31337", headers={**admin_headers, "X-Request-ID": "req-42"})

    assert response.status_code == 404
    assert response.headers["X-Request-ID"] == "req-42"
    assert REGISTRY.get_sample_value("http_requests_total", labels) == before + 1
