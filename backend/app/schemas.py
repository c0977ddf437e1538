from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from decimal import Decimal
from backend.app.core.sanitize import clean_text


# --- Зоны доставки ---
class OperatingHours(BaseModel):
    open: str = Field(pattern=r"^\d{2}:\d{2}$")
    close: str = Field(pattern=r"^\d{2}:\d{2}$")


class TimeSlotIn(BaseModel):
    start_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    end_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    max_orders: int = Field(default=10, ge=1)
    current_orders: int = Field(default=0, ge=0)
    is_available: bool = True


class DeliveryZoneCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    center_latitude: float
    center_longitude: float
    radius_km: float = Field(ge=0)
    base_fee: Decimal = Field(ge=0)
    min_order_amount: Decimal = Field(default=Decimal(0), ge=0)
    max_delivery_time: int = Field(default=0, ge=0)
    per_km_surcharge: Optional[Decimal] = Field(default=None, ge=0)
    # {"monday": {"open": "11:00", "close": "23:00"}, ...}
    operating_hours: Optional[Dict[str, Optional[OperatingHours]]] = None
    is_active: bool = True
    priority: int = 0
    time_slots: List[TimeSlotIn] = []


class DeliveryZoneUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    center_latitude: Optional[float] = None
    center_longitude: Optional[float] = None
    radius_km: Optional[float] = Field(default=None, ge=0)
    base_fee: Optional[Decimal] = Field(default=None, ge=0)
    min_order_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_delivery_time: Optional[int] = Field(default=None, ge=0)
    per_km_surcharge: Optional[Decimal] = Field(default=None, ge=0)
    operating_hours: Optional[Dict[str, Optional[OperatingHours]]] = None
    is_active: Optional[bool] = None
    priority: Optional[int] = None
    time_slots: Optional[List[TimeSlotIn]] = None


# --- Рестораны ---
class RestaurantCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    branch_name: str = Field(min_length=1, max_length=255)
    address: str = Field(min_length=1, max_length=500)
    city: str = Field(min_length=1, max_length=100)
    district: str = Field(min_length=1, max_length=100)
    province: str = Field(min_length=1, max_length=100)
    country: str = Field(min_length=1, max_length=100)
    latitude: float
    longitude: float
    contact_number: str = Field(min_length=1, max_length=50)
    is_active: bool = True
    operating_hours: Optional[Dict[str, Optional[OperatingHours]]] = None
    delivery_zone_ids: List[int] = []


class RestaurantUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    branch_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address: Optional[str] = Field(default=None, min_length=1, max_length=500)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    district: Optional[str] = Field(default=None, min_length=1, max_length=100)
    province: Optional[str] = Field(default=None, min_length=1, max_length=100)
    country: Optional[str] = Field(default=None, min_length=1, max_length=100)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contact_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    is_active: Optional[bool] = None
    operating_hours: Optional[Dict[str, Optional[OperatingHours]]] = None
    delivery_zone_ids: Optional[List[int]] = None


# --- Заказы ---
class Topping(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    price: Decimal = Field(default=Decimal(0), ge=0)
    quantity: int = Field(default=1, ge=1)


class OrderItemIn(BaseModel):
    product_id: str = Field(min_length=1, max_length=64)
    product_name: Optional[str] = Field(default=None, max_length=255)
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    size: str = "medium"
    toppings: List[Topping] = []
    special_instructions: Optional[str] = None

    @field_validator("special_instructions")
    @classmethod
    def sanitize_instructions(cls, v: Optional[str]) -> Optional[str]:
        return clean_text(v, max_length=500)


class DeliveryAddressIn(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = Field(default=None, max_length=20)
    latitude: float
    longitude: float
    delivery_instructions: Optional[str] = None

    @field_validator("street", "city", "delivery_instructions")
    @classmethod
    def sanitize_text_fields(cls, v: Optional[str]) -> Optional[str]:
        """Sanitize user input to prevent XSS."""
        return clean_text(v, max_length=1000)


class OrderCreate(BaseModel):
    order_type: str
    items: List[OrderItemIn]
    payment_method: str = "cash"
    delivery_address: Optional[DeliveryAddressIn] = None
    delivery_slot_id: Optional[int] = None
    discount: Decimal = Field(default=Decimal(0), ge=0)
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def sanitize_notes(cls, v: Optional[str]) -> Optional[str]:
        return clean_text(v, max_length=2000)


class OrderStatusUpdate(BaseModel):
    status: str
    cancellation_reason: Optional[str] = None

    @field_validator("cancellation_reason")
    @classmethod
    def sanitize_reason(cls, v: Optional[str]) -> Optional[str]:
        return clean_text(v, max_length=500)


class PaymentStatusUpdate(BaseModel):
    payment_status: str
