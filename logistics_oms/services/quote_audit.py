"""
Quote audit read path

Returns what a booking stored about its carriers: every quote collected,
which one was selected, and every carrier that was excluded and why.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from logistics_oms.core.exceptions import NotFoundError
from logistics_oms.models import CarrierQuote, CarrierRejection, Order

logger = logging.getLogger(__name__)


@dataclass
class OrderQuoteAudit:
    order_id: int
    order_number: str
    quotes: List[CarrierQuote] = field(default_factory=list)
    rejections: List[CarrierRejection] = field(default_factory=list)

    @property
    def selected(self) -> Optional[CarrierQuote]:
        return next((q for q in self.quotes if q.is_selected), None)


class QuoteAuditService:

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_quotes_for_order(self, order_id: int) -> OrderQuoteAudit:
        """
        Load the stored quotes and rejections of one order.

        Raises:
            NotFoundError: no such order
        """
        async with self.session_factory() as session:
            return await self._load(session, order_id)

    async def _load(self, session: AsyncSession, order_id: int) -> OrderQuoteAudit:
        result = await session.execute(select(Order.order_number).where(Order.id == order_id))
        order_number = result.scalar_one_or_none()
        if order_number is None:
            raise NotFoundError("Order", order_id, message="Order not found")

        quotes = (await session.execute(
            select(CarrierQuote)
            .where(CarrierQuote.order_id == order_id)
            .order_by(
                CarrierQuote.quoted_price,
                CarrierQuote.estimated_delivery_days,
                CarrierQuote.carrier_code,
                CarrierQuote.quote_id,
            )
        )).scalars().all()

        rejections = (await session.execute(
            select(CarrierRejection)
            .where(CarrierRejection.order_id == order_id)
            .order_by(CarrierRejection.carrier_code, CarrierRejection.id)
        )).scalars().all()

        logger.debug(f"Order {order_id}: {len(quotes)} quotes, {len(rejections)} rejections on record")

        return OrderQuoteAudit(
            order_id=order_id,
            order_number=order_number,
            quotes=list(quotes),
            rejections=list(rejections),
        )
