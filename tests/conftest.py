"""
Pytest configuration and fixtures for Logistics OMS tests.
"""
import asyncio
import os
from decimal import Decimal
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"

from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from logistics_oms.core.database import Database  # noqa: E402
from logistics_oms.models import Carrier, Warehouse  # noqa: E402
from logistics_oms.modules.shipping.carriers.base import (  # noqa: E402
    BaseCarrier,
    CarrierProfile,
    Dimensions,
    Location,
    ManifestItem,
    Quote,
    ShipmentRequest,
)


class FakeCarrier(BaseCarrier):
    """In-process carrier with a scripted reply, delay or failure."""

    def __init__(
        self,
        code: str,
        price=None,
        days: Optional[int] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        carrier_id: Optional[int] = None,
        timeout: Optional[float] = None,
        service_type: str = "STANDARD",
        currency: str = "INR",
        expected_currency: Optional[str] = None,
        **profile_fields,
    ):
        super().__init__(
            CarrierProfile(
                code=code,
                name=f"{code} Logistics",
                carrier_id=carrier_id,
                timeout_seconds=timeout,
                service_type=service_type,
                currency=currency,
                **profile_fields,
            ),
            default_timeout=2.0,
            expected_currency=expected_currency,
        )
        self.price = price
        self.days = days
        self.error = error
        self.delay = delay
        self.calls = 0
        self.cancelled = False

    async def _fetch_quote(self, request: ShipmentRequest) -> Quote:
        self.calls += 1
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error:
            raise self.error
        return self._build_quote(
            price=self.price,
            delivery_days=self.days,
            service_type=self.profile.service_type,
        )


@pytest.fixture
def make_carrier():
    """Factory for scripted carrier adapters."""
    return FakeCarrier


@pytest.fixture
def make_quote():
    """Factory for literal quotes."""
    def _make(carrier_code: str, price, days: int, **kwargs) -> Quote:
        kwargs.setdefault("carrier_name", f"{carrier_code} Logistics")
        kwargs.setdefault("currency", "INR")
        kwargs.setdefault("service_type", "STANDARD")
        return Quote(
            carrier_code=carrier_code,
            price=Decimal(str(price)),
            estimated_delivery_days=days,
            **kwargs,
        )
    return _make


@pytest.fixture
def sample_request() -> ShipmentRequest:
    """Mumbai warehouse to a Pune address, two boxes."""
    return ShipmentRequest(
        origin=Location(latitude=19.0760, longitude=72.8777, postal_code="400001",
                        address="Central Warehouse, Fort, Mumbai"),
        destination=Location(latitude=18.5204, longitude=73.8567, postal_code="411001",
                             address="12 MG Road, Pune"),
        items=(
            ManifestItem(weight_kg=2.0, dimensions=Dimensions(30, 20, 10)),
            ManifestItem(weight_kg=1.5, dimensions=Dimensions(20, 20, 20), quantity=2),
        ),
        order_ref="ORD-TEST-0001",
    )


@pytest.fixture
def sample_order_payload() -> dict:
    return {
        "customer_id": "cust-42",
        "warehouse_id": 1,
        "items": [
            {"product_id": "SKU-1", "quantity": 2, "price": "199.00", "weight_kg": 1.5,
             "length_cm": 20, "width_cm": 15, "height_cm": 10},
            {"product_id": "SKU-2", "quantity": 1, "price": "49.50", "weight_kg": 0.5,
             "is_fragile": True},
        ],
        "delivery": {
            "address": "12 MG Road, Pune",
            "latitude": 18.5204,
            "longitude": 73.8567,
            "postal_code": "411001",
        },
    }


@pytest.fixture
def mock_db() -> AsyncMock:
    """Create mock async database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest_asyncio.fixture
async def database():
    """Fresh in-memory SQLite database with all tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db = Database("sqlite+aiosqlite://", engine=engine)
    await db.create_tables()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def seeded_database(database):
    """Database with one warehouse and three carriers (A, B, C)."""
    async with database.session() as session:
        session.add(Warehouse(
            id=1,
            code="MUM-01",
            name="Central Warehouse",
            address="Fort, Mumbai",
            latitude=19.0760,
            longitude=72.8777,
            postal_code="400001",
            is_active=True,
        ))
        session.add_all([
            Carrier(id=1, code="A", name="A Logistics", on_time_rate=0.9, is_active=True),
            Carrier(id=2, code="B", name="B Logistics", on_time_rate=0.7, is_active=True),
            Carrier(id=3, code="C", name="C Logistics", on_time_rate=0.8, is_active=True),
        ])
    return database
