"""
Shipping Module

- BaseCarrier interface for all carrier quote adapters
- CarrierFactory builds adapters from carrier configuration rows
- Carrier-agnostic value objects shared by quoting and booking
"""
from logistics_oms.modules.shipping.carriers import CarrierFactory, register_carrier
from logistics_oms.modules.shipping.carriers.base import (
    BaseCarrier,
    CarrierProfile,
    Dimensions,
    Location,
    ManifestItem,
    Quote,
    ShipmentRequest,
)

__all__ = [
    "CarrierFactory",
    "register_carrier",
    "BaseCarrier",
    "CarrierProfile",
    "Dimensions",
    "Location",
    "ManifestItem",
    "Quote",
    "ShipmentRequest",
]
