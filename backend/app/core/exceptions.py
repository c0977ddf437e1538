"""
Unified exception taxonomy for the fulfillment services.

Every service error carries an HTTP status code so routers can translate
it into an HTTPException without knowing the concrete type.
"""
from decimal import Decimal
from typing import Optional


class ServiceError(Exception):
    """Base exception for all service-layer errors."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class InvalidInputError(ServiceError):
    """Malformed coordinates, missing fields, unknown order type or payment method."""

    def __init__(self, message: str):
        super().__init__(message, 400)


class NotFoundError(ServiceError):
    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found", 404)


class UnauthorizedError(ServiceError):
    def __init__(self, message: str = "Not authorized to access this order"):
        super().__init__(message, 403)


class NoZoneAvailableError(ServiceError):
    """Delivery requested but no active zone is configured."""

    def __init__(self, message: str = "Delivery is not available: no active delivery zones configured"):
        super().__init__(message, 422)


class BelowMinimumOrderError(ServiceError):
    def __init__(self, minimum: Decimal, subtotal: Decimal, zone_id: Optional[int] = None):
        self.minimum = minimum
        self.subtotal = subtotal
        self.zone_id = zone_id
        super().__init__(
            f"Minimum order amount for this delivery zone is {minimum} (cart subtotal {subtotal})",
            400,
        )


class InvalidTransitionError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, 409)


class CapacityExceededError(ServiceError):
    def __init__(self, slot_id: int):
        self.slot_id = slot_id
        super().__init__(f"Delivery slot {slot_id} is fully booked", 409)


class NoRestaurantAvailableError(ServiceError):
    def __init__(self, message: str = "No active restaurants found"):
        super().__init__(message, 404)


class OutsideDeliveryAreaError(ServiceError):
    """The nearest restaurant has no delivery zone covering the location."""

    def __init__(self, restaurant: dict, distance: float):
        self.restaurant = restaurant
        self.distance = distance
        super().__init__("Location is outside delivery zones", 400)
