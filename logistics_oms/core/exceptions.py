"""
Logistics OMS Exception Hierarchy

All exceptions include code, message, and details for audit trail and
debugging. The HTTP layer maps them to status codes via HTTP_STATUS_MAP.

Exception Hierarchy:
    OMSBaseError
    ├── ShippingError
    │   ├── ProviderError
    │   │   ├── CarrierTimeoutError
    │   │   ├── CurrencyMismatchError
    │   │   └── CarrierRejectedError
    │   └── NoQuotesAvailableError
    │       └── NoShippingOptionsError
    ├── InvalidInputError
    ├── NotFoundError
    └── TransactionFailureError
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class OMSBaseError(Exception):
    """
    Base exception for all Logistics OMS custom errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging/audit
        severity: P0-P3 severity level
    """

    default_code: str = "OMS_ERROR"
    default_severity: str = "P2"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[str] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.severity = severity or self.default_severity
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# SHIPPING ERRORS
# =============================================================================

class ShippingError(OMSBaseError):
    """Base exception for carrier quoting and booking errors."""
    default_code = "SHIPPING_ERROR"
    default_severity = "P2"


class ProviderError(ShippingError):
    """A single carrier could not produce a quote."""
    default_code = "CARRIER_QUOTE_FAILED"
    default_severity = "P3"

    def __init__(
        self,
        message: str,
        carrier_code: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "carrier_code": carrier_code,
            "status_code": status_code,
        })
        self.carrier_code = carrier_code
        self.status_code = status_code
        super().__init__(message, details=details, **kwargs)

    @property
    def reason(self) -> str:
        return "api_error"


class CarrierTimeoutError(ProviderError):
    """Carrier did not answer within its timeout."""
    default_code = "CARRIER_TIMEOUT"

    @property
    def reason(self) -> str:
        return "timeout"


class CurrencyMismatchError(ProviderError):
    """Carrier quoted in a currency other than the shipping currency."""
    default_code = "CARRIER_CURRENCY_MISMATCH"

    @property
    def reason(self) -> str:
        return "currency_mismatch"


class CarrierRejectedError(ProviderError):
    """Carrier declined the shipment (weight, route, cold chain, fragile handling)."""
    default_code = "CARRIER_REJECTED"

    def __init__(self, message: str, rejection_reason: str, **kwargs):
        details = kwargs.pop("details", {})
        details["rejection_reason"] = rejection_reason
        self.rejection_reason = rejection_reason
        super().__init__(message, details=details, **kwargs)

    @property
    def reason(self) -> str:
        return self.rejection_reason


class NoQuotesAvailableError(ShippingError):
    """Every carrier failed or none is configured."""
    default_code = "NO_QUOTES_AVAILABLE"
    default_severity = "P2"


class NoShippingOptionsError(NoQuotesAvailableError):
    """Checkout found nothing to offer the customer."""
    default_code = "NO_SHIPPING_OPTIONS"


# =============================================================================
# GENERAL ERRORS
# =============================================================================

class InvalidInputError(OMSBaseError):
    """Malformed order, shipment or selection input."""
    default_code = "INVALID_INPUT"
    default_severity = "P3"


class NotFoundError(OMSBaseError):
    """A referenced record does not exist."""
    default_code = "NOT_FOUND"
    default_severity = "P3"

    def __init__(self, resource: str, resource_id: Any, **kwargs):
        details = kwargs.pop("details", {})
        details.update({"resource": resource, "resource_id": resource_id})
        self.resource = resource
        self.resource_id = resource_id
        message = kwargs.pop("message", None) or f"{resource} not found: {resource_id}"
        super().__init__(message, details=details, **kwargs)


class TransactionFailureError(OMSBaseError):
    """The booking transaction could not be committed."""
    default_code = "TRANSACTION_FAILED"
    default_severity = "P1"


# =============================================================================
# HTTP MAPPING
# =============================================================================

HTTP_STATUS_MAP = {
    InvalidInputError: 400,
    NotFoundError: 404,
    NoQuotesAvailableError: 422,
    ProviderError: 502,
    TransactionFailureError: 500,
}


def http_status_for(error: OMSBaseError) -> int:
    """Resolve the HTTP status for an error, walking its class hierarchy."""
    for cls in type(error).__mro__:
        if cls in HTTP_STATUS_MAP:
            return HTTP_STATUS_MAP[cls]
    return 500


EXCEPTION_CATALOG = {
    "CARRIER_QUOTE_FAILED": {
        "class": ProviderError,
        "severity": "P3",
        "description": "Carrier API unreachable or returned an unusable reply",
        "recovery": "Excluded from the quote set; other carriers still compete",
    },
    "CARRIER_TIMEOUT": {
        "class": CarrierTimeoutError,
        "severity": "P3",
        "description": "Carrier exceeded its quote timeout",
        "recovery": "Excluded from the quote set",
    },
    "CARRIER_CURRENCY_MISMATCH": {
        "class": CurrencyMismatchError,
        "severity": "P3",
        "description": "Carrier quoted in a foreign currency",
        "recovery": "Excluded from the quote set, rejection stored for audit",
    },
    "CARRIER_REJECTED": {
        "class": CarrierRejectedError,
        "severity": "P3",
        "description": "Carrier cannot handle the shipment",
        "recovery": "Excluded from the quote set, rejection stored for audit",
    },
    "NO_QUOTES_AVAILABLE": {
        "class": NoQuotesAvailableError,
        "severity": "P2",
        "description": "No carrier produced a quote",
        "recovery": "Booking aborted and rolled back; caller may retry",
    },
    "NO_SHIPPING_OPTIONS": {
        "class": NoShippingOptionsError,
        "severity": "P2",
        "description": "No shipping option could be offered at checkout",
        "recovery": "Customer retries or changes the address",
    },
    "INVALID_INPUT": {
        "class": InvalidInputError,
        "severity": "P3",
        "description": "Input failed validation",
        "recovery": "Fix the request",
    },
    "NOT_FOUND": {
        "class": NotFoundError,
        "severity": "P3",
        "description": "Referenced record missing",
        "recovery": "Fix the reference",
    },
    "TRANSACTION_FAILED": {
        "class": TransactionFailureError,
        "severity": "P1",
        "description": "Database rejected the booking transaction",
        "recovery": "Transaction rolled back; caller may retry",
    },
}
