"""
Carrier Registry and Factory

- Adapters register themselves by carrier code with @register_carrier
- CarrierFactory builds adapters from carriers rows
- Carriers without an adapter but with a rate card get the tariff adapter
- Carriers with neither are skipped, never replaced by a default
"""
from typing import Dict, List, Optional, Type
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import httpx

from logistics_oms.models.carrier import Carrier
from logistics_oms.modules.shipping.carriers.base import BaseCarrier, CarrierProfile

logger = logging.getLogger(__name__)

# Registry of carrier implementations
_CARRIER_REGISTRY: Dict[str, Type[BaseCarrier]] = {}


def register_carrier(carrier_code):
    """
    Decorator to register a carrier implementation.

    Usage:
        @register_carrier(CarrierCode.DHL)
        class DHLCarrier(BaseCarrier):
            ...
    """
    code = getattr(carrier_code, "value", carrier_code)

    def decorator(cls: Type[BaseCarrier]):
        _CARRIER_REGISTRY[code] = cls
        cls.carrier_code = code
        logger.debug(f"Registered carrier: {code} -> {cls.__name__}")
        return cls
    return decorator


class CarrierFactory:
    """
    Builds carrier adapters that share one HTTP client.

    The client's lifetime belongs to the caller (the application lifespan).
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient],
        default_timeout: float = 8.0,
        quote_validity_hours: int = 24,
        expected_currency: Optional[str] = None,
    ):
        self.http_client = http_client
        self.default_timeout = default_timeout
        self.quote_validity_hours = quote_validity_hours
        self.expected_currency = expected_currency

    def build(self, profile: CarrierProfile) -> Optional[BaseCarrier]:
        """
        Build the adapter for one carrier.

        Returns:
            BaseCarrier instance, or None when the carrier cannot be quoted
        """
        carrier_cls = _CARRIER_REGISTRY.get(profile.code)

        if carrier_cls is not None and profile.api_endpoint:
            return carrier_cls(
                profile,
                http_client=self.http_client,
                default_timeout=self.default_timeout,
                quote_validity_hours=self.quote_validity_hours,
                expected_currency=self.expected_currency,
            )

        if profile.has_rate_card:
            return RateCardCarrier(
                profile,
                default_timeout=self.default_timeout,
                quote_validity_hours=self.quote_validity_hours,
                expected_currency=self.expected_currency,
            )

        logger.warning(
            f"Carrier {profile.code} has neither an API adapter with endpoint nor a rate card, skipping"
        )
        return None

    async def load_enabled(self, db: AsyncSession) -> List[BaseCarrier]:
        """Build adapters for every active carrier row."""
        result = await db.execute(
            select(Carrier).where(Carrier.is_active.is_(True)).order_by(Carrier.code)
        )
        adapters = []
        for row in result.scalars().all():
            adapter = self.build(CarrierProfile.from_model(row))
            if adapter:
                adapters.append(adapter)

        logger.info(f"Loaded {len(adapters)} carrier adapters: {[a.code for a in adapters]}")
        return adapters

    @classmethod
    def get_registered_carriers(cls) -> List[str]:
        """Get list of all registered carrier codes."""
        return list(_CARRIER_REGISTRY.keys())


# Import carriers to trigger registration
# These imports must be at the bottom to avoid circular imports
from logistics_oms.modules.shipping.carriers.dhl import DHLCarrier  # noqa: E402, F401
from logistics_oms.modules.shipping.carriers.fedex import FedExCarrier  # noqa: E402, F401
from logistics_oms.modules.shipping.carriers.bluedart import BlueDartCarrier  # noqa: E402, F401
from logistics_oms.modules.shipping.carriers.delhivery import DelhiveryCarrier  # noqa: E402, F401
from logistics_oms.modules.shipping.carriers.rate_card import RateCardCarrier  # noqa: E402
