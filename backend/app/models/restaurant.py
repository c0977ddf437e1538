from datetime import datetime
from typing import Optional, List, Dict

from sqlalchemy import String, ForeignKey, Boolean, Index, JSON, Float, DateTime, Table, Column
from sqlalchemy.orm import Mapped, mapped_column, relationship
from backend.app.core.base import Base
from backend.app.models.delivery_zone import DeliveryZone

restaurant_delivery_zones = Table(
    'restaurant_delivery_zones',
    Base.metadata,
    Column('restaurant_id', ForeignKey('restaurant_locations.id', ondelete='CASCADE'), primary_key=True),
    Column('zone_id', ForeignKey('delivery_zones.id', ondelete='CASCADE'), primary_key=True),
)


class RestaurantLocation(Base):
    __tablename__ = 'restaurant_locations'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    branch_name: Mapped[str] = mapped_column(String(255))
    address: Mapped[str] = mapped_column(String(500))
    city: Mapped[str] = mapped_column(String(100))
    district: Mapped[str] = mapped_column(String(100))
    province: Mapped[str] = mapped_column(String(100))
    country: Mapped[str] = mapped_column(String(100))
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)
    contact_number: Mapped[str] = mapped_column(String(50))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # Same shape as DeliveryZone.operating_hours; missing day = closed
    operating_hours: Mapped[Optional[Dict[str, Dict[str, str]]]] = mapped_column(JSON(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, onupdate=datetime.utcnow)

    delivery_zones: Mapped[List[DeliveryZone]] = relationship(
        secondary=restaurant_delivery_zones,
        order_by=[DeliveryZone.priority, DeliveryZone.id],
        lazy="selectin",
    )

    __table_args__ = (
        Index('ix_restaurant_locations_active', 'is_active'),
    )
