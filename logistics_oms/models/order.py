"""
Order models

Orders are created together with their carrier assignment in one
transaction. carrier_id and shipping_cost are set together or not at all.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Boolean, CheckConstraint, Column, Integer, String, Float, ForeignKey,
    DateTime, JSON, Numeric, Index
)
from sqlalchemy.orm import relationship

from logistics_oms.core.database import Base


class OrderStatus:
    PENDING = "pending"
    CARRIER_ASSIGNED = "carrier_assigned"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(50), unique=True, index=True, nullable=False)
    customer_id = Column(String(100), nullable=False)
    # Resolved by the warehouse lookup inside the booking transaction
    warehouse_id = Column(Integer, nullable=False, index=True)
    status = Column(String(30), default=OrderStatus.PENDING, nullable=False, index=True)

    total_amount = Column(Numeric(12, 2), nullable=False)
    priority = Column(String(20), default="standard", nullable=False)
    express_delivery = Column(Boolean, default=False, nullable=False)
    special_instructions = Column(String(1000), nullable=True)

    # Delivery destination
    delivery_address = Column(String(500), nullable=False)
    delivery_latitude = Column(Float, nullable=False)
    delivery_longitude = Column(Float, nullable=False)
    delivery_postal_code = Column(String(20), nullable=False)

    # Carrier assignment (written by the booking transaction)
    carrier_id = Column(Integer, ForeignKey("carriers.id"), nullable=True)
    shipping_cost = Column(Numeric(12, 2), nullable=True)
    shipping_currency = Column(String(3), nullable=True)
    estimated_delivery_days = Column(Integer, nullable=True)
    estimated_delivery_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    items = relationship("OrderItem", back_populates="order")

    __table_args__ = (
        Index("ix_orders_customer_id", "customer_id"),
        CheckConstraint(
            "(carrier_id IS NULL) = (shipping_cost IS NULL)",
            name="ck_orders_carrier_cost_together",
        ),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    # Shipping attributes captured at order time
    weight_kg = Column(Float, nullable=False)
    dimensions = Column(JSON, nullable=True)  # {"length": cm, "width": cm, "height": cm}
    is_fragile = Column(Boolean, default=False, nullable=False)
    requires_cold_storage = Column(Boolean, default=False, nullable=False)

    order = relationship("Order", back_populates="items")
