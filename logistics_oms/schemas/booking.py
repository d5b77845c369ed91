"""
Booking Schemas

Pydantic models for order booking requests and responses.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from logistics_oms.modules.shipping.carriers.base import Dimensions, Location, ManifestItem


# ==================== Shared ====================


class DeliveryLocation(BaseModel):
    """Where the shipment goes."""
    address: str = Field(..., min_length=1, max_length=500)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    postal_code: str = Field(..., min_length=3, max_length=20)

    @field_validator("postal_code")
    @classmethod
    def strip_postal_code(cls, v):
        return v.strip()

    def to_location(self) -> Location:
        return Location(
            latitude=self.latitude,
            longitude=self.longitude,
            postal_code=self.postal_code,
            address=self.address,
        )


class ShipmentItemInput(BaseModel):
    """Physical attributes of one line, as carriers need them."""
    quantity: int = Field(1, gt=0, le=10000)
    weight_kg: float = Field(..., ge=0, le=10000)
    length_cm: float = Field(0, ge=0)
    width_cm: float = Field(0, ge=0)
    height_cm: float = Field(0, ge=0)
    is_fragile: bool = False
    requires_cold_storage: bool = False

    def to_manifest_item(self) -> ManifestItem:
        return ManifestItem(
            weight_kg=self.weight_kg,
            dimensions=Dimensions(
                length_cm=self.length_cm,
                width_cm=self.width_cm,
                height_cm=self.height_cm,
            ),
            is_fragile=self.is_fragile,
            requires_cold_storage=self.requires_cold_storage,
            quantity=self.quantity,
        )


class CriteriaInput(BaseModel):
    """Explicit selection weights; overrides the express/standard preset."""
    price_weight: float = Field(..., ge=0)
    speed_weight: float = Field(..., ge=0)
    reliability_weight: float = Field(..., ge=0)


# ==================== Booking ====================


class OrderLineInput(ShipmentItemInput):
    product_id: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0, decimal_places=2)


class OrderInput(BaseModel):
    """Create an order and book its carrier in one step."""
    customer_id: str = Field(..., min_length=1, max_length=100)
    warehouse_id: int = Field(..., gt=0)
    items: List[OrderLineInput] = Field(..., min_length=1)
    delivery: DeliveryLocation
    express_delivery: bool = False
    priority: str = Field("standard", max_length=20)
    special_instructions: Optional[str] = Field(None, max_length=1000)
    criteria: Optional[CriteriaInput] = None

    @property
    def total_amount(self) -> Decimal:
        return sum((line.price * line.quantity for line in self.items), Decimal("0.00"))


class QuoteSummary(BaseModel):
    quote_id: str
    carrier_code: str
    carrier_name: str
    price: Decimal
    currency: str
    delivery_days: int
    service_type: str


class BookingResponse(BaseModel):
    order_id: int
    order_number: str
    selected_carrier: str
    carrier_code: str
    quote_id: str
    shipping_cost: Decimal
    currency: str
    estimated_delivery_days: int
    estimated_delivery_date: Optional[datetime] = None
    criteria: Dict[str, float]
    all_quotes: List[QuoteSummary]
