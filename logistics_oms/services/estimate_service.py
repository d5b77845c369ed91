"""
Quick shipping estimate

Instant price range from postal codes and weight for product and cart pages,
before any carrier is asked. Real prices come from checkout options.
"""
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from logistics_oms.modules.shipping.utils import LONG_HAUL_KM, zone_distance_km
from logistics_oms.schemas.shipping import EstimateRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EstimateTariff:
    base_standard: float = 50.0
    base_express: float = 100.0
    per_kg: float = 20.0
    short_haul_rate: float = 15.0
    long_haul_rate: float = 30.0
    spread: float = 0.2
    currency: str = "INR"

    @classmethod
    def from_settings(cls, settings) -> "EstimateTariff":
        return cls(
            base_standard=settings.ESTIMATE_BASE_STANDARD,
            base_express=settings.ESTIMATE_BASE_EXPRESS,
            per_kg=settings.ESTIMATE_PER_KG,
            short_haul_rate=settings.ESTIMATE_SHORT_HAUL_RATE,
            long_haul_rate=settings.ESTIMATE_LONG_HAUL_RATE,
            spread=settings.ESTIMATE_SPREAD,
            currency=settings.SHIPPING_CURRENCY,
        )


@dataclass(frozen=True)
class ShippingEstimate:
    min_cost: int
    max_cost: int
    estimated_days: str
    distance_km: float
    currency: str
    is_estimate: bool = True


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def get_quick_estimate(request: EstimateRequest, tariff: EstimateTariff = EstimateTariff()) -> ShippingEstimate:
    """Rough cost band; no I/O."""
    distance = zone_distance_km(request.origin_postal_code, request.destination_postal_code)

    base = tariff.base_express if request.express else tariff.base_standard
    distance_charge = tariff.long_haul_rate if distance > LONG_HAUL_KM else tariff.short_haul_rate
    cost = round_half_up(base + distance_charge + request.weight_kg * tariff.per_kg)

    return ShippingEstimate(
        min_cost=round_half_up(cost * (1 - tariff.spread)),
        max_cost=round_half_up(cost * (1 + tariff.spread)),
        estimated_days="1-2" if request.express else "3-5",
        distance_km=distance,
        currency=tariff.currency,
    )
