"""
Base Carrier Interface

All carrier adapters implement fetch_quote(): turn one ShipmentRequest into
one normalized Quote, or raise a ProviderError. Adapters share the HTTP and
acceptance plumbing defined here; each subclass owns only its wire format.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

import httpx

from logistics_oms.core.exceptions import (
    CarrierRejectedError,
    CarrierTimeoutError,
    CurrencyMismatchError,
    InvalidInputError,
    ProviderError,
)
from logistics_oms.modules.shipping.utils import (
    LONG_HAUL_KM,
    add_days,
    add_hours,
    haversine_km,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Coerce a carrier amount to a two-place Decimal."""
    return Decimal(str(value)).quantize(CENTS)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Carrier-Agnostic Data Classes
# =============================================================================

@dataclass(frozen=True)
class Location:
    """A pickup or delivery point."""
    latitude: float
    longitude: float
    postal_code: str
    address: str = ""


@dataclass(frozen=True)
class Dimensions:
    """Package dimensions in centimetres."""
    length_cm: float = 0.0
    width_cm: float = 0.0
    height_cm: float = 0.0


@dataclass(frozen=True)
class ManifestItem:
    """One order line as the carriers see it. Weight is per unit."""
    weight_kg: float
    dimensions: Dimensions = field(default_factory=Dimensions)
    is_fragile: bool = False
    requires_cold_storage: bool = False
    quantity: int = 1

    @property
    def total_weight_kg(self) -> float:
        return self.weight_kg * self.quantity


@dataclass(frozen=True)
class ShipmentRequest:
    """
    Everything a carrier needs to quote one shipment.

    Built once per booking or checkout attempt and shared read-only by every
    adapter. order_ref correlates carrier calls with the order (or the
    checkout placeholder).
    """
    origin: Location
    destination: Location
    items: Tuple[ManifestItem, ...]
    order_ref: str

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))
        if not self.items:
            raise InvalidInputError("Shipment must contain at least one item")
        for item in self.items:
            if item.weight_kg < 0:
                raise InvalidInputError(
                    "Item weight cannot be negative",
                    details={"weight_kg": item.weight_kg},
                )
            if item.quantity <= 0:
                raise InvalidInputError(
                    "Item quantity must be positive",
                    details={"quantity": item.quantity},
                )

    @property
    def total_weight_kg(self) -> float:
        return round(sum(item.total_weight_kg for item in self.items), 3)

    @property
    def has_fragile_items(self) -> bool:
        return any(item.is_fragile for item in self.items)

    @property
    def requires_cold_storage(self) -> bool:
        return any(item.requires_cold_storage for item in self.items)

    @property
    def distance_km(self) -> float:
        return haversine_km(
            self.origin.latitude, self.origin.longitude,
            self.destination.latitude, self.destination.longitude,
        )

    @property
    def is_long_haul(self) -> bool:
        return self.distance_km > LONG_HAUL_KM


@dataclass(frozen=True)
class Quote:
    """A normalized, immutable carrier quote."""
    carrier_code: str
    carrier_name: str
    price: Decimal
    currency: str
    estimated_delivery_days: int
    service_type: str
    estimated_delivery_date: Optional[datetime] = None
    breakdown: Dict[str, Decimal] = field(default_factory=dict, hash=False)
    raw_payload: Dict[str, Any] = field(default_factory=dict, hash=False, repr=False)
    carrier_id: Optional[int] = None
    valid_until: Optional[datetime] = None
    quote_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    requested_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe view, used for audit payloads."""
        return {
            "quote_id": self.quote_id,
            "carrier_id": self.carrier_id,
            "carrier_code": self.carrier_code,
            "carrier_name": self.carrier_name,
            "price": str(self.price),
            "currency": self.currency,
            "estimated_delivery_days": self.estimated_delivery_days,
            "estimated_delivery_date": (
                self.estimated_delivery_date.isoformat() if self.estimated_delivery_date else None
            ),
            "service_type": self.service_type,
            "breakdown": {k: str(v) for k, v in self.breakdown.items()},
            "valid_until": self.valid_until.isoformat() if self.valid_until else None,
        }


@dataclass(frozen=True)
class CarrierProfile:
    """
    Snapshot of a carriers row, detached from any session.

    Adapters outlive the session that loaded them, so they hold this instead
    of the ORM object.
    """
    code: str
    name: str
    carrier_id: Optional[int] = None
    api_endpoint: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: Optional[float] = None
    service_type: str = "STANDARD"
    max_weight_kg: Optional[float] = None
    max_distance_km: Optional[float] = None
    supports_cold_storage: bool = False
    supports_fragile: bool = True
    on_time_rate: Optional[float] = None
    base_rate: Optional[Decimal] = None
    per_kg_rate: Optional[Decimal] = None
    transit_days: Optional[int] = None
    long_haul_transit_days: Optional[int] = None
    currency: str = "INR"

    @classmethod
    def from_model(cls, carrier) -> "CarrierProfile":
        return cls(
            code=carrier.code,
            name=carrier.display_name or carrier.name,
            carrier_id=carrier.id,
            api_endpoint=carrier.api_endpoint,
            api_key=carrier.api_key,
            timeout_seconds=carrier.timeout_seconds,
            service_type=carrier.service_type or "STANDARD",
            max_weight_kg=carrier.max_weight_kg,
            max_distance_km=carrier.max_distance_km,
            supports_cold_storage=bool(carrier.supports_cold_storage),
            supports_fragile=carrier.supports_fragile is not False,
            on_time_rate=carrier.on_time_rate,
            base_rate=carrier.base_rate,
            per_kg_rate=carrier.per_kg_rate,
            transit_days=carrier.transit_days,
            long_haul_transit_days=carrier.long_haul_transit_days,
            currency=carrier.currency or "INR",
        )

    @property
    def has_rate_card(self) -> bool:
        return self.base_rate is not None and self.per_kg_rate is not None and self.transit_days is not None


# =============================================================================
# Base Carrier
# =============================================================================

class BaseCarrier(ABC):
    """
    Abstract base class for carrier quote adapters.

    Subclasses implement _fetch_quote() for their wire protocol. The public
    fetch_quote() runs the acceptance checks first and turns malformed
    replies into ProviderError.
    """

    carrier_code: str = ""

    def __init__(
        self,
        profile: CarrierProfile,
        http_client: Optional[httpx.AsyncClient] = None,
        default_timeout: float = 8.0,
        quote_validity_hours: int = 24,
        expected_currency: Optional[str] = None,
    ):
        self.profile = profile
        self.http_client = http_client
        self.timeout = profile.timeout_seconds or default_timeout
        self.quote_validity_hours = quote_validity_hours
        self.expected_currency = expected_currency.upper() if expected_currency else None

    @property
    def code(self) -> str:
        return self.profile.code

    @property
    def name(self) -> str:
        return self.profile.name

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.code}>"

    async def fetch_quote(self, request: ShipmentRequest) -> Quote:
        """
        Quote one shipment.

        Raises:
            CarrierRejectedError: carrier cannot handle this shipment
            CarrierTimeoutError: carrier did not answer in time
            ProviderError: unreachable carrier or unusable reply
        """
        self.check_acceptance(request)
        try:
            return await self._fetch_quote(request)
        except (KeyError, IndexError, TypeError, ValueError, InvalidOperation) as e:
            raise ProviderError(
                f"{self.name} returned an unusable quote: {type(e).__name__}: {e}",
                carrier_code=self.code,
            ) from e

    @abstractmethod
    async def _fetch_quote(self, request: ShipmentRequest) -> Quote:
        """Call the carrier and normalize its reply."""
        pass

    def check_acceptance(self, request: ShipmentRequest) -> None:
        """Refuse shipments this carrier is configured not to carry."""
        profile = self.profile

        if profile.max_weight_kg is not None and request.total_weight_kg > profile.max_weight_kg:
            raise CarrierRejectedError(
                f"{profile.name} weight limit is {profile.max_weight_kg} kg",
                rejection_reason="weight_exceeded",
                carrier_code=profile.code,
            )

        if profile.max_distance_km is not None and request.distance_km > profile.max_distance_km:
            raise CarrierRejectedError(
                f"{profile.name} does not serve routes beyond {profile.max_distance_km} km",
                rejection_reason="route_not_serviceable",
                carrier_code=profile.code,
            )

        if request.requires_cold_storage and not profile.supports_cold_storage:
            raise CarrierRejectedError(
                f"{profile.name} does not offer cold storage",
                rejection_reason="no_cold_storage",
                carrier_code=profile.code,
            )

        if request.has_fragile_items and not profile.supports_fragile:
            raise CarrierRejectedError(
                f"{profile.name} does not handle fragile items",
                rejection_reason="fragile_not_supported",
                carrier_code=profile.code,
            )

    # ==================== HTTP ====================

    def _require_endpoint(self) -> str:
        if not self.profile.api_endpoint:
            raise ProviderError(
                f"{self.name} has no API endpoint configured",
                carrier_code=self.code,
            )
        if self.http_client is None:
            raise ProviderError(
                f"{self.name} adapter was built without an HTTP client",
                carrier_code=self.code,
            )
        return self.profile.api_endpoint.rstrip("/")

    async def _request_json(
        self,
        method: str,
        path: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs,
    ) -> Any:
        """Send one request to the carrier API and decode its JSON reply."""
        url = f"{self._require_endpoint()}{path}"

        try:
            response = await self.http_client.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except httpx.TimeoutException as e:
            raise CarrierTimeoutError(
                f"{self.name} timed out after {self.timeout}s",
                carrier_code=self.code,
            ) from e
        except httpx.RequestError as e:
            logger.warning(f"{self.code} API request failed: {e}")
            raise ProviderError(
                f"Network error: {e}",
                carrier_code=self.code,
            ) from e

        logger.debug(f"{self.code} API {method} {path} -> {response.status_code}")

        if response.status_code >= 400:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {"raw": response.text[:500]}
            raise ProviderError(
                self._extract_error_message(error_data) or f"{self.name} API error",
                carrier_code=self.code,
                status_code=response.status_code,
                details={"response": error_data},
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                f"{self.name} returned a non-JSON reply",
                carrier_code=self.code,
                status_code=response.status_code,
            ) from e

    def _extract_error_message(self, error_data: Any) -> Optional[str]:
        if isinstance(error_data, dict):
            for key in ("message", "detail", "error"):
                value = error_data.get(key)
                if isinstance(value, str) and value:
                    return value
        return None

    # ==================== Normalization ====================

    def _build_quote(
        self,
        price: Any,
        delivery_days: Any,
        service_type: str,
        currency: Optional[str] = None,
        breakdown: Optional[Dict[str, Any]] = None,
        raw_payload: Optional[Dict[str, Any]] = None,
        delivery_date: Optional[datetime] = None,
    ) -> Quote:
        """Assemble a Quote, rejecting replies without a usable price or ETA."""
        if price is None or delivery_days is None:
            raise ProviderError(
                f"{self.name} reply is missing price or delivery estimate",
                carrier_code=self.code,
            )

        amount = to_money(price)
        days = int(delivery_days)
        if amount < 0 or days < 0:
            raise ProviderError(
                f"{self.name} returned a negative price or transit time",
                carrier_code=self.code,
                details={"price": str(amount), "days": days},
            )

        quote_currency = (currency or self.profile.currency).upper()
        if self.expected_currency and quote_currency != self.expected_currency:
            raise CurrencyMismatchError(
                f"{self.name} quoted in {quote_currency}, expected {self.expected_currency}",
                carrier_code=self.code,
                details={"currency": quote_currency, "expected": self.expected_currency},
            )

        now = utcnow()
        return Quote(
            carrier_code=self.code,
            carrier_name=self.name,
            carrier_id=self.profile.carrier_id,
            price=amount,
            currency=quote_currency,
            estimated_delivery_days=days,
            estimated_delivery_date=delivery_date or add_days(now, days),
            service_type=service_type or self.profile.service_type,
            breakdown={k: to_money(v) for k, v in (breakdown or {}).items() if v is not None},
            raw_payload=raw_payload or {},
            valid_until=add_hours(now, self.quote_validity_hours),
            requested_at=now,
        )
