"""
Delhivery invoice charges adapter

Query-string API, weight in grams. Replies with a one-element list.
"""
import logging

from logistics_oms.core.exceptions import ProviderError
from logistics_oms.models.carrier import CarrierCode
from logistics_oms.modules.shipping.carriers import register_carrier
from logistics_oms.modules.shipping.carriers.base import BaseCarrier, Quote, ShipmentRequest
from logistics_oms.modules.shipping.utils import kg_to_grams

logger = logging.getLogger(__name__)

# Delhivery mode codes
MODE_EXPRESS = "E"
MODE_SURFACE = "S"


@register_carrier(CarrierCode.DELHIVERY)
class DelhiveryCarrier(BaseCarrier):

    @property
    def mode(self) -> str:
        return MODE_EXPRESS if self.profile.service_type == "EXPRESS" else MODE_SURFACE

    def build_params(self, request: ShipmentRequest) -> dict:
        return {
            "md": self.mode,
            "ss": "Delivered",
            "o_pin": request.origin.postal_code,
            "d_pin": request.destination.postal_code,
            "cgm": kg_to_grams(request.total_weight_kg),
            "pt": "Pre-paid",
            "ref": request.order_ref,
        }

    async def _fetch_quote(self, request: ShipmentRequest) -> Quote:
        headers = {"Accept": "application/json"}
        if self.profile.api_key:
            headers["Authorization"] = f"Token {self.profile.api_key}"

        data = await self._request_json(
            "GET",
            "/api/kinko/v1/invoice/charges/.json",
            headers=headers,
            params=self.build_params(request),
        )

        if not isinstance(data, list) or not data:
            raise ProviderError(f"{self.name} returned no charges", carrier_code=self.code)

        charges = data[0]
        return self._build_quote(
            price=charges.get("total_amount"),
            delivery_days=charges.get("tat"),
            service_type="SURFACE" if self.mode == MODE_SURFACE else "EXPRESS",
            breakdown={
                "baseRate": charges.get("charge_DL"),
                "fuelSurcharge": charges.get("charge_FSC"),
                "handlingFee": charges.get("charge_DPH"),
            },
            raw_payload=charges,
        )
