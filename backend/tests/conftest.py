"""
Test fixtures for the fulfillment backend tests.

Provides:
- In-memory SQLite database for isolated testing
- Async test client with proper session management
- Recording printer/broadcaster so side effects can be asserted
- Test data factories for zones, slots, restaurants and orders
"""
# IMPORTANT: Set environment variables BEFORE any other imports
import os

os.environ.setdefault("JWT_SECRET", "test_jwt_secret")
# DB settings required by Settings validation (tests use SQLite in-memory, these are not actually used)
os.environ.setdefault("DB_USER", "test")
os.environ.setdefault("DB_PASSWORD", "test")
os.environ.setdefault("DB_NAME", "test")
# Development mode for tests (disables ALLOWED_ORIGINS requirement)
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("TAX_RATE", "0")
os.environ.pop("PRINTER_SERVICE_URL", None)

import pytest
from decimal import Decimal
from typing import AsyncGenerator, Optional, List, Dict, Any

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.pool import StaticPool

from backend.app.core.base import Base
from backend.app.core.auth import create_access_token
from backend.app.core.constants import ROLE_ADMIN, ROLE_CUSTOMER
from backend.app.main import app
from backend.app.api.deps import get_session, get_cache, get_dispatcher
from backend.app.models.delivery_zone import DeliveryZone, DeliveryTimeSlot
from backend.app.models.order import Order, OrderItem
from backend.app.models.restaurant import RestaurantLocation
from backend.app.services.notifications import NotificationDispatcher


# Test database URL - SQLite in-memory
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Create test engine with StaticPool for in-memory SQLite
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)

TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

ALL_WEEK_HOURS = {
    day: {"open": "10:00", "close": "22:00"}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
}


class MockCacheService:
    """Mock Redis cache for testing without actual Redis."""

    KEY_ACTIVE_ZONES = "zones:active"

    def __init__(self):
        self._cache = {}

    async def get(self, key: str):
        return self._cache.get(key)

    async def set(self, key: str, value, ttl: int = 300):
        self._cache[key] = value

    async def delete(self, key: str):
        self._cache.pop(key, None)

    async def get_active_zones(self):
        return self._cache.get(self.KEY_ACTIVE_ZONES)

    async def set_active_zones(self, zones, ttl: Optional[int] = None):
        self._cache[self.KEY_ACTIVE_ZONES] = zones

    async def invalidate_zones(self):
        self._cache.pop(self.KEY_ACTIVE_ZONES, None)


class RecordingPrinter:
    """Stands in for PrinterClient; records (order_id, document_kind)."""

    def __init__(self, fail: bool = False):
        self.jobs: List[tuple] = []
        self.fail = fail

    async def print_order(self, order: Dict[str, Any], document_kind) -> bool:
        if self.fail:
            raise RuntimeError("printer offline")
        self.jobs.append((order["id"], getattr(document_kind, "value", document_kind)))
        return True

    def kinds_for(self, order_id: int) -> List[str]:
        return [kind for oid, kind in self.jobs if oid == order_id]


class RecordingBroadcaster:
    def __init__(self, fail: bool = False):
        self.events: List[tuple] = []
        self.fail = fail

    async def emit_new_order(self, order: Dict[str, Any]) -> int:
        if self.fail:
            raise RuntimeError("socket closed")
        self.events.append(("new-order", order["id"], order["status"]))
        return 1

    async def emit_order_status_update(self, order: Dict[str, Any]) -> int:
        if self.fail:
            raise RuntimeError("socket closed")
        self.events.append(("order-update", order["id"], order["status"]))
        return 1


@pytest.fixture(scope="function")
async def test_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test.
    Creates all tables before and drops after each test.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def mock_cache() -> MockCacheService:
    """Provide mock cache service for testing."""
    return MockCacheService()


@pytest.fixture
def printer() -> RecordingPrinter:
    return RecordingPrinter()


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def dispatcher(printer, broadcaster) -> NotificationDispatcher:
    return NotificationDispatcher(printer, broadcaster, timeout=2.0)


@pytest.fixture
async def client(
    test_session: AsyncSession,
    mock_cache: MockCacheService,
    dispatcher: NotificationDispatcher,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for testing API endpoints.
    Overrides database, cache and dispatcher dependencies.

    Note: We create a fresh session for each API call to avoid
    transaction conflicts with the test_session used for fixtures.
    """
    async def override_get_session():
        async with TestSessionLocal() as session:
            yield session

    async def override_get_cache():
        yield mock_cache

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_cache] = override_get_cache
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    await dispatcher.drain()
    app.dependency_overrides.clear()


# --- Auth helpers ---

def auth_headers(user_id: int, role: str = ROLE_CUSTOMER) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def customer_headers() -> Dict[str, str]:
    return auth_headers(1001)


@pytest.fixture
def other_customer_headers() -> Dict[str, str]:
    return auth_headers(2002)


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return auth_headers(1, ROLE_ADMIN)


# --- Test Data Factories ---

async def create_test_zone(
    session: AsyncSession,
    name: str = "Mithi Central",
    center_latitude: float = 24.7337,
    center_longitude: float = 69.7967,
    radius_km: float = 1.5,
    base_fee=30,
    min_order_amount=300,
    max_delivery_time: int = 30,
    per_km_surcharge=None,
    operating_hours: Optional[dict] = None,
    is_active: bool = True,
    priority: int = 0,
    slots: Optional[List[dict]] = None,
) -> DeliveryZone:
    """Create a delivery zone (with optional explicit slots) for testing."""
    zone = DeliveryZone(
        name=name,
        center_latitude=center_latitude,
        center_longitude=center_longitude,
        radius_km=radius_km,
        base_fee=Decimal(str(base_fee)),
        min_order_amount=Decimal(str(min_order_amount)),
        max_delivery_time=max_delivery_time,
        per_km_surcharge=Decimal(str(per_km_surcharge)) if per_km_surcharge is not None else None,
        operating_hours=operating_hours if operating_hours is not None else ALL_WEEK_HOURS,
        is_active=is_active,
        priority=priority,
        time_slots=[
            DeliveryTimeSlot(
                position=index,
                start_time=s["start_time"],
                end_time=s["end_time"],
                max_orders=s.get("max_orders", 10),
                current_orders=s.get("current_orders", 0),
                is_available=s.get("is_available", True),
            )
            for index, s in enumerate(slots or [])
        ],
    )
    session.add(zone)
    await session.commit()
    await session.refresh(zone)
    return zone


async def create_test_restaurant(
    session: AsyncSession,
    branch_name: str = "Mithi Main Branch",
    latitude: float = 24.7337,
    longitude: float = 69.7967,
    zones: Optional[List[DeliveryZone]] = None,
    operating_hours: Optional[dict] = None,
    is_active: bool = True,
) -> RestaurantLocation:
    """Create a restaurant branch linked to the given zones."""
    restaurant = RestaurantLocation(
        name="Pizza House",
        branch_name=branch_name,
        address="Main Bazaar Road",
        city="Mithi",
        district="Tharparkar",
        province="Sindh",
        country="Pakistan",
        latitude=latitude,
        longitude=longitude,
        contact_number="+92-333-1234567",
        is_active=is_active,
        operating_hours=operating_hours if operating_hours is not None else ALL_WEEK_HOURS,
        delivery_zones=list(zones or []),
    )
    session.add(restaurant)
    await session.commit()
    await session.refresh(restaurant)
    return restaurant


async def create_test_order(
    session: AsyncSession,
    user_id: int = 1001,
    status: str = "pending",
    order_type: str = "pickup",
    subtotal=500,
    delivery_charge=0,
    delivery_slot_id: Optional[int] = None,
    delivery_zone_id: Optional[int] = None,
) -> Order:
    """Create an order row directly, bypassing pricing and zone resolution."""
    order = Order(
        user_id=user_id,
        order_type=order_type,
        status=status,
        payment_method="cash",
        payment_status="pending",
        subtotal=Decimal(str(subtotal)),
        delivery_charge=Decimal(str(delivery_charge)),
        tax=Decimal("0"),
        discount=Decimal("0"),
        delivery_slot_id=delivery_slot_id,
        delivery_zone_id=delivery_zone_id,
        items=[
            OrderItem(
                position=0,
                product_id="pizza-margherita",
                product_name="Margherita",
                quantity=1,
                unit_price=Decimal(str(subtotal)),
                size="medium",
                toppings=[],
            )
        ],
    )
    session.add(order)
    await session.commit()
    await session.refresh(order)
    return order


def pizza_item(unit_price=250, quantity: int = 1, **extra) -> Dict[str, Any]:
    item = {
        "product_id": "pizza-tikka",
        "product_name": "Chicken Tikka",
        "quantity": quantity,
        "unit_price": unit_price,
        "size": "medium",
        "toppings": [],
    }
    item.update(extra)
    return item


# Points relative to the Mithi Central center (24.7337, 69.7967)
MITHI_CENTER = {"latitude": 24.7337, "longitude": 69.7967}
# ~1.1 km north of the center
INSIDE_CENTRAL = {"latitude": 24.7437, "longitude": 69.7967}
# ~11 km north of the center
FAR_AWAY = {"latitude": 24.8337, "longitude": 69.7967}
