from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict

from sqlalchemy import String, ForeignKey, Integer, DECIMAL, Boolean, Index, JSON, Float, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from backend.app.core.base import Base


class DeliveryZone(Base):
    __tablename__ = 'delivery_zones'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    # Circular coverage area
    center_latitude: Mapped[float] = mapped_column(Float)
    center_longitude: Mapped[float] = mapped_column(Float)
    radius_km: Mapped[float] = mapped_column(Float, default=0.0)
    base_fee: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    min_order_amount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    max_delivery_time: Mapped[int] = mapped_column(Integer, default=0)  # minutes
    per_km_surcharge: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)
    # {"monday": {"open": "11:00", "close": "23:00"}, ...}; missing day = closed
    operating_hours: Mapped[Optional[Dict[str, Dict[str, str]]]] = mapped_column(JSON(), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # Lower priority number wins ties between otherwise identical zones
    priority: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, onupdate=datetime.utcnow)

    time_slots: Mapped[List["DeliveryTimeSlot"]] = relationship(
        back_populates="zone",
        order_by="DeliveryTimeSlot.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint('radius_km >= 0', name='ck_delivery_zones_radius_non_negative'),
        CheckConstraint('base_fee >= 0', name='ck_delivery_zones_fee_non_negative'),
        CheckConstraint('min_order_amount >= 0', name='ck_delivery_zones_min_order_non_negative'),
        Index('ix_delivery_zones_active', 'is_active'),
        Index('ix_delivery_zones_active_priority', 'is_active', 'priority'),
    )


class DeliveryTimeSlot(Base):
    __tablename__ = 'delivery_time_slots'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    zone_id: Mapped[int] = mapped_column(ForeignKey('delivery_zones.id', ondelete='CASCADE'))
    position: Mapped[int] = mapped_column(Integer, default=0)
    start_time: Mapped[str] = mapped_column(String(5))  # "10:00"
    end_time: Mapped[str] = mapped_column(String(5))  # "11:00"
    max_orders: Mapped[int] = mapped_column(Integer, default=10)
    current_orders: Mapped[int] = mapped_column(Integer, default=0)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)

    zone: Mapped["DeliveryZone"] = relationship(back_populates="time_slots")

    __table_args__ = (
        CheckConstraint('current_orders >= 0', name='ck_delivery_time_slots_booked_non_negative'),
        CheckConstraint('current_orders <= max_orders', name='ck_delivery_time_slots_within_capacity'),
        Index('ix_delivery_time_slots_zone_position', 'zone_id', 'position'),
    )
