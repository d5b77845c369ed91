"""
Carrier assignment model

One row per booked order. Status starts at "pending"; later transitions
(accepted, picked up, ...) are driven by the fulfilment side.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON

from logistics_oms.core.database import Base


class CarrierAssignment(Base):
    __tablename__ = "carrier_assignments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False)
    carrier_id = Column(Integer, ForeignKey("carriers.id"), nullable=True)
    carrier_code = Column(String(50), nullable=False)
    quote_id = Column(String(50), nullable=False)
    status = Column(String(30), default="pending", nullable=False)

    # Full decision context: order input, selected quote, criteria, pickup, delivery
    request_payload = Column(JSON, nullable=False)

    assigned_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
