from sqlalchemy import String, ForeignKey, DateTime, DECIMAL, Text, Index, Boolean, Integer, Float, JSON, event
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any
from backend.app.core.base import Base
from backend.app.core.constants import OrderStatus, PaymentStatus, OrderType, PaymentMethod, ItemSize, ZERO, ONE_CENT


def _money(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value))


class Order(Base):
    __tablename__ = 'orders'
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer)
    order_type: Mapped[str] = mapped_column(String(20), default=OrderType.DELIVERY.value)
    status: Mapped[str] = mapped_column(String(30), default=OrderStatus.PENDING.value)
    payment_method: Mapped[str] = mapped_column(String(20), default=PaymentMethod.CASH.value)
    payment_status: Mapped[str] = mapped_column(String(20), default=PaymentStatus.PENDING.value)
    # Pricing; final_price is always derived, see _recompute_final_price
    subtotal: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    delivery_charge: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    tax: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    discount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    final_price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    is_out_of_zone: Mapped[bool] = mapped_column(Boolean, default=False)
    # Delivery-only fields (NULL for pickup orders)
    delivery_street: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivery_city: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    delivery_postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    delivery_latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    delivery_longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    delivery_instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivery_zone_id: Mapped[Optional[int]] = mapped_column(ForeignKey('delivery_zones.id'), nullable=True)
    delivery_slot_id: Mapped[Optional[int]] = mapped_column(ForeignKey('delivery_time_slots.id', ondelete='SET NULL'), nullable=True)
    estimated_delivery_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    actual_delivery_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, onupdate=datetime.utcnow)

    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index('ix_orders_user_id', 'user_id'),
        Index('ix_orders_status', 'status'),
        Index('ix_orders_created_at', 'created_at'),
        Index('ix_orders_user_status', 'user_id', 'status'),
        Index('ix_orders_user_created', 'user_id', 'created_at'),
        Index('ix_orders_zone_id', 'delivery_zone_id'),
    )

    def compute_final_price(self) -> Decimal:
        """subtotal + delivery_charge + tax - discount, rounded to cents."""
        total = (
            _money(self.subtotal)
            + _money(self.delivery_charge)
            + _money(self.tax)
            - _money(self.discount)
        )
        return total.quantize(ONE_CENT)


class OrderItem(Base):
    __tablename__ = 'order_items'
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey('orders.id', ondelete='CASCADE'))
    position: Mapped[int] = mapped_column(Integer, default=0)
    product_id: Mapped[str] = mapped_column(String(64))
    product_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer)
    unit_price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    size: Mapped[str] = mapped_column(String(10), default=ItemSize.MEDIUM.value)
    # [{"name": "Olives", "price": 50, "quantity": 1}]
    toppings: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSON(), nullable=True)
    special_instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    order: Mapped["Order"] = relationship(back_populates="items")

    __table_args__ = (
        Index('ix_order_items_order_id', 'order_id'),
    )

    @property
    def line_total(self) -> Decimal:
        return (_money(self.unit_price) * self.quantity).quantize(ONE_CENT)


@event.listens_for(Order, "before_insert")
@event.listens_for(Order, "before_update")
def _recompute_final_price(mapper, connection, target: Order) -> None:
    target.final_price = target.compute_final_price()
