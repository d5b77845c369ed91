"""
Blue Dart transit time and price adapter

Blue Dart bills on chargeable weight, the greater of actual and volumetric,
which the request computes client-side.
"""
import logging

from logistics_oms.core.exceptions import ProviderError
from logistics_oms.models.carrier import CarrierCode
from logistics_oms.modules.shipping.carriers import register_carrier
from logistics_oms.modules.shipping.carriers.base import BaseCarrier, Quote, ShipmentRequest, utcnow
from logistics_oms.modules.shipping.utils import parse_iso_datetime, volumetric_weight_kg

logger = logging.getLogger(__name__)


@register_carrier(CarrierCode.BLUEDART)
class BlueDartCarrier(BaseCarrier):

    def chargeable_weight_kg(self, request: ShipmentRequest) -> float:
        volumetric = sum(
            volumetric_weight_kg(
                item.dimensions.length_cm,
                item.dimensions.width_cm,
                item.dimensions.height_cm,
            ) * item.quantity
            for item in request.items
        )
        return round(max(request.total_weight_kg, volumetric), 3)

    def build_payload(self, request: ShipmentRequest) -> dict:
        return {
            "pPinCodeFrom": request.origin.postal_code,
            "pPinCodeTo": request.destination.postal_code,
            "pProductCode": "A",
            "pSubProductCode": "P",
            "pPudate": utcnow().strftime("%Y-%m-%d"),
            "pPickupTime": "16:00",
            "pActualWeight": request.total_weight_kg,
            "pChargeableWeight": self.chargeable_weight_kg(request),
            "pReference": request.order_ref,
        }

    async def _fetch_quote(self, request: ShipmentRequest) -> Quote:
        headers = {"Content-Type": "application/json"}
        if self.profile.api_key:
            headers["JWTToken"] = self.profile.api_key

        data = await self._request_json(
            "POST", "/transit-time-price", headers=headers, json=self.build_payload(request)
        )

        result = data["TransitTimePriceResult"]
        if result.get("IsError"):
            raise ProviderError(
                result.get("ErrorMessage") or f"{self.name} reported an error",
                carrier_code=self.code,
                details={"response": result},
            )

        price = result.get("Price") or {}
        return self._build_quote(
            price=price.get("Total"),
            delivery_days=result.get("TransitDays"),
            service_type=result.get("ServiceName") or self.profile.service_type,
            currency=price.get("Currency"),
            breakdown={
                "baseRate": price.get("Base"),
                "fuelSurcharge": price.get("FuelSurcharge"),
                "handlingFee": price.get("Handling"),
            },
            raw_payload=result,
            delivery_date=parse_iso_datetime(result.get("ExpectedDateDelivery")),
        )
