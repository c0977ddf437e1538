"""
Shared constants for the backend application.
"""
from decimal import Decimal
from enum import Enum


# ---------------------------------------------------------------------------
# Order enums
# ---------------------------------------------------------------------------
class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class OrderType(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"


class ItemSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class DocumentKind(str, Enum):
    """Printable documents understood by the printer service."""
    KITCHEN_ORDER = "kitchenOrder"
    CUSTOMER_RECEIPT = "customerReceipt"
    DELIVERY_SLIP = "deliverySlip"


TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

DEFAULT_CANCELLATION_REASON = "Cancelled by administrator"

# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------
ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"

# ---------------------------------------------------------------------------
# Schedule
# ---------------------------------------------------------------------------
WEEKDAYS = (
    "monday", "tuesday", "wednesday", "thursday",
    "friday", "saturday", "sunday",
)

# ---------------------------------------------------------------------------
# Decimal helpers
# ---------------------------------------------------------------------------
ZERO = Decimal("0")
ONE_CENT = Decimal("0.01")
