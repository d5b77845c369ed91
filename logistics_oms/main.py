"""
Logistics OMS Backend
FastAPI application entry point

- Carrier adapters, database and the shared HTTP client are built in the
  lifespan and closed on shutdown
- Error sanitization middleware
- Health endpoint with DB ping
- JSON metrics endpoint
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from logistics_oms.api.routes import orders, shipping
from logistics_oms.core.config import Settings, settings as default_settings
from logistics_oms.core.database import Database
from logistics_oms.core.monitoring import MetricsCollector
from logistics_oms.middleware.error_handler import ErrorSanitizationMiddleware
from logistics_oms.modules.shipping.carriers import CarrierFactory
from logistics_oms.services.booking_orchestrator import BookingOrchestrator
from logistics_oms.services.checkout_quote_service import CheckoutQuoteService
from logistics_oms.services.estimate_service import EstimateTariff
from logistics_oms.services.quote_aggregator import QuoteAggregator
from logistics_oms.services.quote_audit import QuoteAuditService
from logistics_oms.services.warehouse_lookup import CarrierReliabilitySource, DatabaseWarehouseLookup

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and carrier HTTP client, wire the services, close both on shutdown."""
    settings: Settings = app.state.settings
    metrics: MetricsCollector = app.state.metrics

    database = Database.from_settings(settings)
    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.CARRIER_QUOTE_TIMEOUT_SECONDS),
        limits=httpx.Limits(max_connections=settings.CARRIER_HTTP_MAX_CONNECTIONS),
    )

    try:
        factory = CarrierFactory(
            http_client,
            default_timeout=settings.CARRIER_QUOTE_TIMEOUT_SECONDS,
            quote_validity_hours=settings.QUOTE_VALIDITY_HOURS,
            expected_currency=settings.SHIPPING_CURRENCY,
        )
        async with database.session_factory() as db:
            adapters = await factory.load_enabled(db)

        aggregator = QuoteAggregator(metrics=metrics, default_timeout=settings.CARRIER_QUOTE_TIMEOUT_SECONDS)
        warehouses = DatabaseWarehouseLookup(database.session_factory)

        app.state.database = database
        app.state.booking_orchestrator = BookingOrchestrator(
            session_factory=database.session_factory,
            aggregator=aggregator,
            adapters=adapters,
            warehouses=warehouses,
            reliability=CarrierReliabilitySource(database.session_factory),
            default_reliability=settings.DEFAULT_CARRIER_RELIABILITY,
            metrics=metrics,
        )
        app.state.checkout_service = CheckoutQuoteService(
            aggregator=aggregator,
            adapters=adapters,
            warehouses=warehouses,
            order_ref=settings.CHECKOUT_ORDER_REF,
        )
        app.state.estimate_tariff = EstimateTariff.from_settings(settings)
        app.state.quote_audit_service = QuoteAuditService(database.session_factory)
        metrics.gauge("carriers_enabled", len(adapters))
        logger.info(f"{settings.APP_NAME} started with {len(adapters)} carriers")

        yield
    finally:
        await http_client.aclose()
        logger.info("Carrier HTTP client closed")
        await database.close()
        logger.info("Database engine disposed")


def create_app(settings: Optional[Settings] = None, use_lifespan: bool = True) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        lifespan=lifespan if use_lifespan else None,
        title=f"{settings.APP_NAME} API",
        description="Carrier rate aggregation and order booking",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.metrics = MetricsCollector()

    app.add_middleware(ErrorSanitizationMiddleware, debug=settings.DEBUG)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(orders.router, prefix="/api/orders")
    app.include_router(shipping.router, prefix="/api/shipping")

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check with a real database ping. 503 if unreachable."""
        health_status = {
            "status": "healthy",
            "database": "unknown",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        database: Optional[Database] = getattr(request.app.state, "database", None)
        if database is None:
            health_status["status"] = "starting"
            return JSONResponse(status_code=503, content=health_status)

        try:
            async with database.session_factory() as db:
                await db.execute(text("SELECT 1"))
            health_status["database"] = "connected"
        except Exception as e:
            health_status["database"] = f"error: {type(e).__name__}"
            health_status["status"] = "unhealthy"
            return JSONResponse(status_code=503, content=health_status)

        return health_status

    @app.get("/metrics/json", tags=["Health"])
    async def json_metrics(request: Request):
        """All collected metrics in JSON format for dashboards."""
        return request.app.state.metrics.get_all_metrics()

    return app


app = create_app()
