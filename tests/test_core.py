"""
Tests for configuration, error mapping, metrics and the database wrapper.
"""
import pytest
from pydantic import ValidationError
from sqlalchemy import func, inspect, select

from logistics_oms.core.config import Settings
from logistics_oms.core.exceptions import (
    EXCEPTION_CATALOG,
    CarrierRejectedError,
    CarrierTimeoutError,
    InvalidInputError,
    NoQuotesAvailableError,
    NoShippingOptionsError,
    NotFoundError,
    ProviderError,
    TransactionFailureError,
    http_status_for,
)
from logistics_oms.core.monitoring import MetricsCollector
from logistics_oms.models import Warehouse
from logistics_oms.middleware.error_handler import sanitize_error_message


class TestExceptions:

    @pytest.mark.parametrize("error, status", [
        (InvalidInputError("bad"), 400),
        (NotFoundError("Warehouse", 9), 404),
        (NoQuotesAvailableError("none"), 422),
        (NoShippingOptionsError("none"), 422),
        (ProviderError("down"), 502),
        (CarrierTimeoutError("slow"), 502),
        (TransactionFailureError("db"), 500),
    ])
    def test_http_status(self, error, status):
        assert http_status_for(error) == status

    def test_failure_reasons(self):
        assert ProviderError("x").reason == "api_error"
        assert CarrierTimeoutError("x").reason == "timeout"
        assert CarrierRejectedError("x", rejection_reason="no_cold_storage").reason == "no_cold_storage"

    def test_not_found_message_and_details(self):
        error = NotFoundError("Warehouse", 9)
        assert error.message == "Warehouse not found: 9"
        assert error.details == {"resource": "Warehouse", "resource_id": 9}
        assert error.code == "NOT_FOUND"

    def test_catalog_codes_match_classes(self):
        for code, entry in EXCEPTION_CATALOG.items():
            assert entry["class"].default_code == code


class TestSettings:

    def test_development_defaults(self):
        s = Settings(DATABASE_URL="sqlite+aiosqlite://", ENVIRONMENT="development")
        assert s.CARRIER_QUOTE_TIMEOUT_SECONDS == 8.0
        assert s.DEFAULT_CARRIER_RELIABILITY == 0.80
        assert s.CHECKOUT_ORDER_REF == "CHECKOUT-TEMP"

    def test_postgres_url_uses_asyncpg(self):
        s = Settings(DATABASE_URL="postgres://u:p@db:5432/oms", ENVIRONMENT="development")
        assert s.DATABASE_URL == "postgresql+asyncpg://u:p@db:5432/oms"

    def test_cors_comma_separated(self):
        s = Settings(
            DATABASE_URL="sqlite+aiosqlite://",
            ENVIRONMENT="development",
            CORS_ORIGINS="https://a.example, https://b.example",
        )
        assert s.CORS_ORIGINS == ["https://a.example", "https://b.example"]

    def test_production_rejects_debug_and_localhost(self):
        with pytest.raises(ValidationError) as exc_info:
            Settings(
                DATABASE_URL="postgresql+asyncpg://u:p@localhost/oms",
                ENVIRONMENT="production",
                DEBUG=True,
            )
        message = str(exc_info.value)
        assert "DEBUG=True is forbidden" in message
        assert "Localhost DATABASE_URL" in message

    @pytest.mark.parametrize("field, value", [
        ("CARRIER_QUOTE_TIMEOUT_SECONDS", 0),
        ("DEFAULT_CARRIER_RELIABILITY", 1.5),
    ])
    def test_rejects_out_of_range_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(DATABASE_URL="sqlite+aiosqlite://", ENVIRONMENT="development", **{field: value})


class TestSanitize:

    def test_hides_database_errors(self):
        message = sanitize_error_message("sqlalchemy.exc.OperationalError: connection refused")
        assert message == "An internal error occurred. Please try again later."

    def test_debug_passes_through(self):
        assert sanitize_error_message("asyncpg failed", debug=True) == "asyncpg failed"

    def test_truncates_long_messages(self):
        assert sanitize_error_message("x" * 300).endswith("...")


class TestMetricsCollector:

    def test_labelled_counters_are_separate(self):
        metrics = MetricsCollector()
        metrics.increment("carrier_quote_failure", labels={"carrier": "A", "reason": "timeout"})
        metrics.increment("carrier_quote_failure", labels={"carrier": "A", "reason": "timeout"})
        metrics.increment("carrier_quote_failure", labels={"carrier": "B", "reason": "api_error"})

        assert metrics.get_counter("carrier_quote_failure", {"carrier": "A", "reason": "timeout"}) == 2
        assert metrics.get_counter("carrier_quote_failure", {"reason": "api_error", "carrier": "B"}) == 1
        assert metrics.get_counter("carrier_quote_failure") == 0

    def test_histogram_and_export(self):
        metrics = MetricsCollector()
        for latency in (10.0, 20.0, 30.0):
            metrics.observe("carrier_quote_latency_ms", latency, labels={"carrier": "A"})
        metrics.gauge("carriers_enabled", 4)

        stats = metrics.get_histogram_stats("carrier_quote_latency_ms", {"carrier": "A"})
        assert stats["count"] == 3
        assert stats["avg"] == 20.0
        assert (stats["min"], stats["max"]) == (10.0, 30.0)

        exported = metrics.get_all_metrics()
        assert exported["gauges"] == {"carriers_enabled": 4}
        assert exported["histograms"]["carrier_quote_latency_ms{carrier=A}"]["count"] == 3


class TestDatabase:

    @pytest.mark.asyncio
    async def test_session_rolls_back_on_error(self, database):
        with pytest.raises(RuntimeError):
            async with database.session() as session:
                session.add(Warehouse(code="X", name="X", address="X", latitude=0, longitude=0,
                                      postal_code="000000"))
                await session.flush()
                raise RuntimeError("boom")

        async with database.session_factory() as session:
            count = (await session.execute(select(func.count()).select_from(Warehouse))).scalar_one()
        assert count == 0

    @pytest.mark.asyncio
    async def test_drop_tables(self, database):
        await database.drop_tables()

        async with database.engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        assert tables == []
