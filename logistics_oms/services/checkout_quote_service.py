"""
Checkout Quote Service

Read-side quoting for the checkout page: same carrier fan-out as booking,
but nothing is stored and nothing is selected. The customer sees every
option, cheapest first.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from logistics_oms.core.exceptions import NoShippingOptionsError
from logistics_oms.modules.shipping.carriers.base import BaseCarrier, Quote, ShipmentRequest
from logistics_oms.schemas.shipping import CheckoutInput
from logistics_oms.services.quote_aggregator import QuoteAggregator
from logistics_oms.services.warehouse_lookup import WarehouseLookup

logger = logging.getLogger(__name__)

CHECKOUT_ORDER_REF = "CHECKOUT-TEMP"


@dataclass(frozen=True)
class QuoteOption:
    """One shipping choice as shown at checkout."""
    quote_id: str
    carrier_code: str
    carrier_name: str
    price: Decimal
    currency: str
    delivery_days: int
    service_type: str
    estimated_delivery: Optional[datetime] = None
    breakdown: Dict[str, Decimal] = field(default_factory=dict, hash=False)

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteOption":
        return cls(
            quote_id=quote.quote_id,
            carrier_code=quote.carrier_code,
            carrier_name=quote.carrier_name,
            price=quote.price,
            currency=quote.currency,
            delivery_days=quote.estimated_delivery_days,
            service_type=quote.service_type,
            estimated_delivery=quote.estimated_delivery_date,
            breakdown=dict(quote.breakdown),
        )


class CheckoutQuoteService:

    def __init__(
        self,
        aggregator: QuoteAggregator,
        adapters: Sequence[BaseCarrier],
        warehouses: Optional[WarehouseLookup] = None,
        order_ref: str = CHECKOUT_ORDER_REF,
    ):
        self.aggregator = aggregator
        self.adapters = list(adapters)
        self.warehouses = warehouses
        self.order_ref = order_ref

    async def get_checkout_options(self, request: ShipmentRequest) -> List[QuoteOption]:
        """
        Quote every carrier and list the results by ascending price.

        Raises:
            NoShippingOptionsError: no carrier produced a quote
        """
        collection = await self.aggregator.collect(request, self.adapters)
        if not collection.quotes:
            raise NoShippingOptionsError(
                "No shipping options available",
                details={
                    "order_ref": request.order_ref,
                    "failures": [
                        {"carrier_code": f.carrier_code, "reason": f.reason}
                        for f in collection.failures
                    ],
                },
            )

        quotes = sorted(
            collection.quotes,
            key=lambda q: (q.price, q.estimated_delivery_days, q.carrier_code, q.quote_id),
        )
        return [QuoteOption.from_quote(q) for q in quotes]

    async def options_for_checkout(self, checkout_input: CheckoutInput) -> List[QuoteOption]:
        """Resolve the shipping warehouse and quote a cart that is not yet an order."""
        if self.warehouses is None:
            raise RuntimeError("CheckoutQuoteService was built without a warehouse lookup")

        warehouse = await self.warehouses.get_warehouse(checkout_input.warehouse_id)
        request = ShipmentRequest(
            origin=warehouse.to_location(),
            destination=checkout_input.delivery.to_location(),
            items=tuple(item.to_manifest_item() for item in checkout_input.items),
            order_ref=self.order_ref,
        )
        options = await self.get_checkout_options(request)
        logger.info(
            f"Checkout offered {len(options)} shipping options from warehouse {warehouse.id}",
            extra={"event": "checkout_options", "warehouse_id": warehouse.id, "count": len(options)},
        )
        return options
