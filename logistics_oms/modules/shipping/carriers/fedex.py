"""
FedEx rate quote adapter

The FedEx API works in pounds and inches, so the manifest is converted on
the way out. Transit time comes back as a word ("TWO_DAYS").
"""
import logging

from logistics_oms.core.exceptions import ProviderError
from logistics_oms.models.carrier import CarrierCode
from logistics_oms.modules.shipping.carriers import register_carrier
from logistics_oms.modules.shipping.carriers.base import BaseCarrier, Quote, ShipmentRequest
from logistics_oms.modules.shipping.utils import cm_to_in, kg_to_lb, parse_iso_datetime

logger = logging.getLogger(__name__)

TRANSIT_TIME_DAYS = {
    "ONE_DAY": 1,
    "TWO_DAYS": 2,
    "THREE_DAYS": 3,
    "FOUR_DAYS": 4,
    "FIVE_DAYS": 5,
    "SIX_DAYS": 6,
    "SEVEN_DAYS": 7,
    "EIGHT_DAYS": 8,
    "NINE_DAYS": 9,
    "TEN_DAYS": 10,
}


@register_carrier(CarrierCode.FEDEX)
class FedExCarrier(BaseCarrier):

    def build_payload(self, request: ShipmentRequest) -> dict:
        return {
            "accountNumber": {"value": self.profile.api_key or ""},
            "requestedShipment": {
                "shipper": {"address": {"postalCode": request.origin.postal_code, "countryCode": "IN"}},
                "recipient": {"address": {"postalCode": request.destination.postal_code, "countryCode": "IN"}},
                "pickupType": "DROPOFF_AT_FEDEX_LOCATION",
                "rateRequestType": ["LIST"],
                "requestedPackageLineItems": [
                    {
                        "weight": {"units": "LB", "value": kg_to_lb(item.total_weight_kg)},
                        "dimensions": {
                            "length": cm_to_in(item.dimensions.length_cm),
                            "width": cm_to_in(item.dimensions.width_cm),
                            "height": cm_to_in(item.dimensions.height_cm),
                            "units": "IN",
                        },
                    }
                    for item in request.items
                ],
            },
            "customerReference": request.order_ref,
        }

    async def _fetch_quote(self, request: ShipmentRequest) -> Quote:
        data = await self._request_json(
            "POST",
            "/rate/v1/rates/quotes",
            headers={"Content-Type": "application/json", "X-locale": "en_US"},
            json=self.build_payload(request),
        )

        details = (data.get("output") or {}).get("rateReplyDetails") or []
        if not details:
            raise ProviderError(f"{self.name} returned no rate details", carrier_code=self.code)

        # Prefer the configured service, fall back to the first offered
        reply = next(
            (d for d in details if d.get("serviceType") == self.profile.service_type),
            details[0],
        )
        rated = reply["ratedShipmentDetails"][0]
        rate_detail = rated.get("shipmentRateDetail") or {}

        breakdown = {"baseRate": rate_detail.get("totalBaseCharge")}
        for surcharge in rate_detail.get("surCharges") or []:
            breakdown[surcharge["type"]] = surcharge["amount"]

        operational = reply.get("operationalDetail") or {}
        transit = operational.get("transitTime")
        delivery_days = TRANSIT_TIME_DAYS.get(transit) if transit else None

        return self._build_quote(
            price=rated.get("totalNetCharge"),
            delivery_days=delivery_days,
            service_type=reply.get("serviceType") or self.profile.service_type,
            currency=rated.get("currency"),
            breakdown=breakdown,
            raw_payload=reply,
            delivery_date=parse_iso_datetime(operational.get("deliveryDate")),
        )
