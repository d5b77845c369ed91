"""
Shipping Schemas

Checkout shipping options and quick estimates.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from logistics_oms.schemas.booking import DeliveryLocation, ShipmentItemInput


# ==================== Checkout Options ====================


class CheckoutInput(BaseModel):
    """Shipping options for a cart; no order exists yet."""
    warehouse_id: int = Field(..., gt=0)
    items: List[ShipmentItemInput] = Field(..., min_length=1)
    delivery: DeliveryLocation


class QuoteOptionResponse(BaseModel):
    quote_id: str
    carrier_code: str
    carrier_name: str
    price: Decimal
    currency: str
    delivery_days: int
    estimated_delivery: Optional[datetime] = None
    service_type: str
    breakdown: Dict[str, Decimal] = {}


class CheckoutOptionsResponse(BaseModel):
    options: List[QuoteOptionResponse]


# ==================== Quick Estimate ====================


class EstimateRequest(BaseModel):
    """Instant estimate from postal codes and weight, no carrier calls."""
    origin_postal_code: str = Field(..., min_length=3, max_length=20)
    destination_postal_code: str = Field(..., min_length=3, max_length=20)
    weight_kg: float = Field(..., ge=0, le=10000)
    express: bool = False


class EstimateResponse(BaseModel):
    min_cost: int
    max_cost: int
    estimated_days: str
    distance_km: float
    currency: str
    is_estimate: bool = True


# ==================== Quote Audit ====================


class StoredQuoteResponse(BaseModel):
    quote_id: str
    carrier_id: Optional[int] = None
    carrier_code: str
    carrier_name: str
    quoted_price: Decimal
    currency: str
    estimated_delivery_days: int
    estimated_delivery_date: Optional[datetime] = None
    service_type: str
    valid_until: Optional[datetime] = None
    breakdown: Optional[Dict[str, str]] = None
    is_selected: bool
    selected_at: Optional[datetime] = None
    composite_score: Optional[float] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RejectionResponse(BaseModel):
    carrier_code: str
    carrier_name: str
    reason: str
    message: Optional[str] = None
    rejected_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderQuotesResponse(BaseModel):
    """Everything a booking recorded about its carriers."""
    order_id: int
    order_number: str
    quotes: List[StoredQuoteResponse]
    selected: Optional[StoredQuoteResponse] = None
    total_quotes: int
    rejections: List[RejectionResponse]
