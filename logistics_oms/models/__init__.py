from logistics_oms.models.carrier import Carrier, CarrierCode
from logistics_oms.models.warehouse import Warehouse
from logistics_oms.models.order import Order, OrderItem, OrderStatus
from logistics_oms.models.carrier_quote import CarrierQuote, CarrierRejection
from logistics_oms.models.carrier_assignment import CarrierAssignment

__all__ = [
    "Carrier",
    "CarrierCode",
    "Warehouse",
    "Order",
    "OrderItem",
    "OrderStatus",
    "CarrierQuote",
    "CarrierRejection",
    "CarrierAssignment",
]
