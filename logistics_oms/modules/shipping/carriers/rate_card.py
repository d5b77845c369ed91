"""
Rate card adapter

Quotes from the tariff stored on the carriers row, for carriers without an
API. Only used when the row carries base_rate, per_kg_rate and transit_days.
"""
import logging
from decimal import Decimal

from logistics_oms.core.exceptions import ProviderError
from logistics_oms.modules.shipping.carriers.base import BaseCarrier, Quote, ShipmentRequest, to_money

logger = logging.getLogger(__name__)


class RateCardCarrier(BaseCarrier):

    async def _fetch_quote(self, request: ShipmentRequest) -> Quote:
        profile = self.profile
        if not profile.has_rate_card:
            raise ProviderError(f"{profile.name} has no rate card", carrier_code=profile.code)

        base = to_money(profile.base_rate)
        weight_charge = to_money(Decimal(str(profile.per_kg_rate)) * Decimal(str(request.total_weight_kg)))

        if request.is_long_haul and profile.long_haul_transit_days is not None:
            days = profile.long_haul_transit_days
        else:
            days = profile.transit_days

        return self._build_quote(
            price=base + weight_charge,
            delivery_days=days,
            service_type=profile.service_type,
            breakdown={"baseRate": base, "weightCharge": weight_charge},
            raw_payload={
                "source": "rate_card",
                "weight_kg": request.total_weight_kg,
                "distance_km": round(request.distance_km, 1),
            },
        )
