"""
Shipping API Routes

- POST /shipping/options: live carrier options for a cart, cheapest first
- POST /shipping/estimate: instant price band, no carrier calls
- GET /shipping/quotes/order/{order_id}: quotes and rejections stored by a booking
"""
import logging

from fastapi import APIRouter, Depends

from logistics_oms.api.deps import (
    get_checkout_service,
    get_estimate_tariff,
    get_quote_audit_service,
    to_http_exception,
)
from logistics_oms.core.exceptions import OMSBaseError
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
from logistics_oms.services.checkout_quote_service import CheckoutQuoteService
from logistics_oms.services.estimate_service import EstimateTariff, get_quick_estimate
from logistics_oms.services.quote_audit import QuoteAuditService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Shipping"])


@router.post("/options", response_model=CheckoutOptionsResponse)
async def get_shipping_options(
    checkout_input: CheckoutInput,
    checkout_service: CheckoutQuoteService = Depends(get_checkout_service),
):
    try:
        options = await checkout_service.options_for_checkout(checkout_input)
    except OMSBaseError as e:
        logger.warning(f"Shipping options failed: {e.code} - {e.message}")
        raise to_http_exception(e)

    return CheckoutOptionsResponse(
        options=[
            QuoteOptionResponse(
                quote_id=o.quote_id,
                carrier_code=o.carrier_code,
                carrier_name=o.carrier_name,
                price=o.price,
                currency=o.currency,
                delivery_days=o.delivery_days,
                estimated_delivery=o.estimated_delivery,
                service_type=o.service_type,
                breakdown=o.breakdown,
            )
            for o in options
        ]
    )


@router.post("/estimate", response_model=EstimateResponse)
async def get_shipping_estimate(
    estimate_request: EstimateRequest,
    tariff: EstimateTariff = Depends(get_estimate_tariff),
):
    estimate = get_quick_estimate(estimate_request, tariff)
    return EstimateResponse(
        min_cost=estimate.min_cost,
        max_cost=estimate.max_cost,
        estimated_days=estimate.estimated_days,
        distance_km=estimate.distance_km,
        currency=estimate.currency,
        is_estimate=estimate.is_estimate,
    )


@router.get("/quotes/order/{order_id}", response_model=OrderQuotesResponse)
async def get_quotes_for_order(
    order_id: int,
    audit_service: QuoteAuditService = Depends(get_quote_audit_service),
):
    """Quote audit trail of a booked order."""
    try:
        audit = await audit_service.get_quotes_for_order(order_id)
    except OMSBaseError as e:
        logger.warning(f"Quote audit lookup failed: {e.code} - {e.message}")
        raise to_http_exception(e)

    selected = audit.selected
    return OrderQuotesResponse(
        order_id=audit.order_id,
        order_number=audit.order_number,
        quotes=[StoredQuoteResponse.model_validate(q) for q in audit.quotes],
        selected=StoredQuoteResponse.model_validate(selected) if selected else None,
        total_quotes=len(audit.quotes),
        rejections=[RejectionResponse.model_validate(r) for r in audit.rejections],
    )
