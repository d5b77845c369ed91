"""
Carrier quote audit models

Every quote and every carrier failure collected while booking an order is
stored alongside the order. The chosen quote is flagged by its quote_id.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Float, ForeignKey,
    JSON, Numeric, Index
)

from logistics_oms.core.database import Base


class CarrierQuote(Base):
    __tablename__ = "carrier_quotes"
    __table_args__ = (
        Index("ix_carrier_quotes_order_id", "order_id"),
        Index("ix_carrier_quotes_selected", "order_id", "is_selected"),
    )

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(String(50), unique=True, nullable=False)

    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    carrier_id = Column(Integer, ForeignKey("carriers.id"), nullable=True)
    carrier_code = Column(String(50), nullable=False)
    carrier_name = Column(String(100), nullable=False)

    quoted_price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    estimated_delivery_days = Column(Integer, nullable=False)
    estimated_delivery_date = Column(DateTime(timezone=True), nullable=True)
    service_type = Column(String(50), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=True)

    breakdown = Column(JSON, nullable=True)
    raw_payload = Column(JSON, nullable=True)

    # Selection audit
    is_selected = Column(Boolean, default=False, nullable=False)
    selected_at = Column(DateTime(timezone=True), nullable=True)
    composite_score = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class CarrierRejection(Base):
    __tablename__ = "carrier_rejections"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    carrier_code = Column(String(50), nullable=False)
    carrier_name = Column(String(100), nullable=False)
    reason = Column(String(50), nullable=False)  # api_error, timeout, weight_exceeded, ...
    message = Column(String(500), nullable=True)
    rejected_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
