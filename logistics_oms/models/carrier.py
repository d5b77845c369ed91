"""
Carrier model

Stores per-carrier configuration: API endpoint, timeout, acceptance limits,
the reliability figure used for selection, and an optional rate card for
carriers quoted by tariff instead of API.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Float, Numeric, Index
)
import enum

from logistics_oms.core.database import Base


class CarrierCode(str, enum.Enum):
    """Carriers with a registered wire adapter."""
    DHL = "DHL"
    FEDEX = "FEDEX"
    BLUEDART = "BLUEDART"
    DELHIVERY = "DELHIVERY"


class Carrier(Base):
    """Carrier configuration and settings."""
    __tablename__ = "carriers"
    __table_args__ = (
        Index("ix_carriers_active", "is_active"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Carrier identification; code is free text so tariff-only carriers fit too
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    display_name = Column(String(100), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    # API configuration
    api_endpoint = Column(String(255), nullable=True)
    api_key = Column(String(255), nullable=True)
    timeout_seconds = Column(Float, nullable=True)  # None = settings default
    service_type = Column(String(50), default="STANDARD", nullable=False)

    # Acceptance limits
    max_weight_kg = Column(Float, nullable=True)  # None = unlimited
    max_distance_km = Column(Float, nullable=True)  # None = no route limit
    supports_cold_storage = Column(Boolean, default=False, nullable=False)
    supports_fragile = Column(Boolean, default=True, nullable=False)

    # Historical on-time delivery rate (0-1), feeds reliability scoring
    on_time_rate = Column(Float, nullable=True)

    # Rate card (tariff carriers only)
    base_rate = Column(Numeric(12, 2), nullable=True)
    per_kg_rate = Column(Numeric(12, 2), nullable=True)
    transit_days = Column(Integer, nullable=True)
    long_haul_transit_days = Column(Integer, nullable=True)
    currency = Column(String(3), default="INR", nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    @property
    def has_rate_card(self) -> bool:
        return self.base_rate is not None and self.per_kg_rate is not None and self.transit_days is not None

    def __repr__(self):
        return f"<Carrier {self.code}: {self.name}>"
