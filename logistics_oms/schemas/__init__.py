from logistics_oms.schemas.booking import (
    BookingResponse,
    CriteriaInput,
    DeliveryLocation,
    OrderInput,
    OrderLineInput,
    QuoteSummary,
    ShipmentItemInput,
)
from logistics_oms.schemas.shipping import (
    CheckoutInput,
    CheckoutOptionsResponse,
    EstimateRequest,
    EstimateResponse,
    OrderQuotesResponse,
    QuoteOptionResponse,
    RejectionResponse,
    StoredQuoteResponse,
)
