"""
Warehouse and carrier reliability lookups

Read-only collaborators of the booking and checkout services. Both accept an
optional session so the booking transaction can run them on its own
connection.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from logistics_oms.core.exceptions import NotFoundError
from logistics_oms.models.carrier import Carrier
from logistics_oms.models.warehouse import Warehouse
from logistics_oms.modules.shipping.carriers.base import Location

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WarehouseLocation:
    id: int
    name: str
    address: str
    latitude: float
    longitude: float
    postal_code: str

    def to_location(self) -> Location:
        return Location(
            latitude=self.latitude,
            longitude=self.longitude,
            postal_code=self.postal_code,
            address=f"{self.name}, {self.address}",
        )


class WarehouseLookup(ABC):

    @abstractmethod
    async def get_warehouse(self, warehouse_id: int, session: Optional[AsyncSession] = None) -> WarehouseLocation:
        """Resolve a warehouse; raises NotFoundError for unknown ids."""
        pass


class DatabaseWarehouseLookup(WarehouseLookup):

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_warehouse(self, warehouse_id: int, session: Optional[AsyncSession] = None) -> WarehouseLocation:
        if session is not None:
            return await self._load(session, warehouse_id)
        async with self.session_factory() as own_session:
            return await self._load(own_session, warehouse_id)

    async def _load(self, session: AsyncSession, warehouse_id: int) -> WarehouseLocation:
        result = await session.execute(
            select(Warehouse).where(Warehouse.id == warehouse_id, Warehouse.is_active.is_(True))
        )
        warehouse = result.scalar_one_or_none()
        if not warehouse:
            raise NotFoundError("Warehouse", warehouse_id, message="Warehouse not found")

        return WarehouseLocation(
            id=warehouse.id,
            name=warehouse.name,
            address=warehouse.address,
            latitude=warehouse.latitude,
            longitude=warehouse.longitude,
            postal_code=warehouse.postal_code,
        )


# =============================================================================
# Reliability
# =============================================================================

class ReliabilitySource(ABC):

    @abstractmethod
    async def get_scores(
        self, carrier_codes: Iterable[str], session: Optional[AsyncSession] = None
    ) -> Dict[str, float]:
        """Carrier code -> reliability figure for the codes that have one."""
        pass


class StaticReliabilitySource(ReliabilitySource):
    """Fixed figures, e.g. from configuration or tests."""

    def __init__(self, scores: Mapping[str, float]):
        self.scores = dict(scores)

    async def get_scores(self, carrier_codes, session=None) -> Dict[str, float]:
        return {code: self.scores[code] for code in carrier_codes if code in self.scores}


class CarrierReliabilitySource(ReliabilitySource):
    """Historical on-time rate stored on the carriers table."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_scores(self, carrier_codes, session=None) -> Dict[str, float]:
        codes = list(carrier_codes)
        if not codes:
            return {}
        if session is not None:
            return await self._load(session, codes)
        async with self.session_factory() as own_session:
            return await self._load(own_session, codes)

    async def _load(self, session: AsyncSession, codes) -> Dict[str, float]:
        result = await session.execute(
            select(Carrier.code, Carrier.on_time_rate).where(Carrier.code.in_(codes))
        )
        return {code: rate for code, rate in result.all() if rate is not None}
