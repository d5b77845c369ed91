"""
API dependencies

Services are built once in the application lifespan and kept on app.state;
routes receive them through these dependencies so tests can override them.
"""
from fastapi import HTTPException, Request

from logistics_oms.core.config import Settings
from logistics_oms.core.exceptions import OMSBaseError, http_status_for
from logistics_oms.services.booking_orchestrator import BookingOrchestrator
from logistics_oms.services.checkout_quote_service import CheckoutQuoteService
from logistics_oms.services.estimate_service import EstimateTariff
from logistics_oms.services.quote_audit import QuoteAuditService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_booking_orchestrator(request: Request) -> BookingOrchestrator:
    return request.app.state.booking_orchestrator


def get_checkout_service(request: Request) -> CheckoutQuoteService:
    return request.app.state.checkout_service


def get_estimate_tariff(request: Request) -> EstimateTariff:
    return request.app.state.estimate_tariff


def get_quote_audit_service(request: Request) -> QuoteAuditService:
    return request.app.state.quote_audit_service


def to_http_exception(error: OMSBaseError) -> HTTPException:
    """Translate a domain error into the matching HTTP response."""
    return HTTPException(
        status_code=http_status_for(error),
        detail={"code": error.code, "message": error.message},
    )
