"""
Order booking routes

POST /orders/book creates the order and assigns its carrier atomically.
Express orders are weighted toward speed, standard orders toward price,
unless the request carries explicit weights.
"""
import logging

from fastapi import APIRouter, Depends, status

from logistics_oms.api.deps import (
    get_booking_orchestrator,
    get_settings,
    to_http_exception,
)
from logistics_oms.core.config import Settings
from logistics_oms.core.exceptions import OMSBaseError
from logistics_oms.schemas.booking import BookingResponse, OrderInput
from logistics_oms.services.booking_orchestrator import BookingOrchestrator
from logistics_oms.services.quote_selector import SelectionCriteria, criteria_from_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Orders"])


@router.post("/book", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book_order(
    order_input: OrderInput,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
    settings: Settings = Depends(get_settings),
):
    """Create an order and book the best carrier for it."""
    try:
        if order_input.criteria:
            criteria = SelectionCriteria(**order_input.criteria.model_dump())
        else:
            criteria = criteria_from_settings(settings, express=order_input.express_delivery)

        result = await orchestrator.book_order(order_input, criteria)
    except OMSBaseError as e:
        logger.warning(f"Booking failed: {e.code} - {e.message}")
        raise to_http_exception(e)

    return result.to_dict()
