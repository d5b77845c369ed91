"""
DHL Express rates adapter

Metric units (kg, cm). The rates reply lists several products; the
cheapest one is quoted.
"""
import logging
from decimal import Decimal

from logistics_oms.core.exceptions import ProviderError
from logistics_oms.models.carrier import CarrierCode
from logistics_oms.modules.shipping.carriers import register_carrier
from logistics_oms.modules.shipping.carriers.base import BaseCarrier, Quote, ShipmentRequest, utcnow
from logistics_oms.modules.shipping.utils import parse_iso_datetime

logger = logging.getLogger(__name__)


@register_carrier(CarrierCode.DHL)
class DHLCarrier(BaseCarrier):

    def build_payload(self, request: ShipmentRequest) -> dict:
        return {
            "plannedShippingDateAndTime": utcnow().strftime("%Y-%m-%dT%H:%M:%S GMT+00:00"),
            "unitOfMeasurement": "metric",
            "isCustomsDeclarable": False,
            "customerDetails": {
                "shipperDetails": {
                    "postalCode": request.origin.postal_code,
                    "addressLine1": request.origin.address,
                    "countryCode": "IN",
                },
                "receiverDetails": {
                    "postalCode": request.destination.postal_code,
                    "addressLine1": request.destination.address,
                    "countryCode": "IN",
                },
            },
            "packages": [
                {
                    "weight": item.total_weight_kg,
                    "dimensions": {
                        "length": item.dimensions.length_cm,
                        "width": item.dimensions.width_cm,
                        "height": item.dimensions.height_cm,
                    },
                }
                for item in request.items
            ],
            "messageReference": request.order_ref,
        }

    async def _fetch_quote(self, request: ShipmentRequest) -> Quote:
        headers = {"Content-Type": "application/json"}
        if self.profile.api_key:
            headers["Authorization"] = f"Basic {self.profile.api_key}"

        data = await self._request_json("POST", "/rates", headers=headers, json=self.build_payload(request))

        products = data.get("products") or []
        priced = []
        for product in products:
            prices = product.get("totalPrice") or []
            if not prices:
                continue
            priced.append((Decimal(str(prices[0]["price"])), product))

        if not priced:
            raise ProviderError(f"{self.name} returned no priced products", carrier_code=self.code)

        priced.sort(key=lambda pair: (pair[0], pair[1].get("productCode", "")))
        price, product = priced[0]
        capabilities = product.get("deliveryCapabilities") or {}

        breakdown = {}
        for detail in product.get("detailedPriceBreakdown") or []:
            for line in detail.get("breakdown") or []:
                breakdown[line["name"]] = line["price"]

        return self._build_quote(
            price=price,
            delivery_days=capabilities.get("totalTransitDays"),
            service_type=product.get("productName") or self.profile.service_type,
            currency=product["totalPrice"][0].get("priceCurrency"),
            breakdown=breakdown,
            raw_payload=product,
            delivery_date=parse_iso_datetime(capabilities.get("estimatedDeliveryDateAndTime")),
        )
